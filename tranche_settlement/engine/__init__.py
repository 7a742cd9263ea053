"""
Engine layer for Tranche Settlement Engine

- oracle: Senior gross value 결정 및 편차 검증
- settlement: 기간 정산 오케스트레이터, 결과 적용 헬퍼
"""

from .oracle import TrancheOracle, OracleReading
from .settlement import (
    SettlementEngine,
    WithdrawalResult,
    settle_period,
    apply_settlement,
    genesis_state,
    freeze_index,
    deposit,
    withdraw,
)
