"""
Data layer for Tranche Settlement Engine

프로토콜 스냅샷/정산 결과 타입 및 가격 소스 정의
"""

from .types import (
    Rebasing,
    Frozen,
    IndexMode,
    balance_of,
    TrancheState,
    ProtocolState,
    SettlementInputs,
    SettlementResult,
)
from .price_source import PriceSource, FixturePriceSource, ReservesPriceSource
