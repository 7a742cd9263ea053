"""
Tranche Settlement Engine

3-트랜치(Senior/Junior/Reserve) 담보 시스템의 기간 정산을 온체인 수준
정밀도로 계산하는 순수 고정소수점 엔진.
Waterfall APY 선택, rebase index 성장, 3-존 재분배, 수수료 계산 구현.
"""

__version__ = "0.1.0"

from .constants import PRECISION, BPS_DENOMINATOR, SECONDS_PER_MONTH, SECONDS_PER_YEAR
from .errors import (
    SettlementError,
    DivisionByZero,
    InvalidParameter,
    ValueDeviationTooHigh,
    TooSoon,
)
from .config import FeeConfig, ZoneConfig, OracleConfig, SettlementConfig, Settings, load_settings
from .data.types import (
    Rebasing,
    Frozen,
    TrancheState,
    ProtocolState,
    SettlementInputs,
    SettlementResult,
)
from .math.price_math import PoolQuote
from .math.rate_math import TierLevel, RateTier
from .math.spillover_math import Zone
from .engine.settlement import SettlementEngine, settle_period, apply_settlement, genesis_state
