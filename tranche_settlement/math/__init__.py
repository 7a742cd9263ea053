"""
Math layer for Tranche Settlement Engine

온체인 수준 정밀도의 수학 함수들:
- fixed_point: 고정소수점 연산, 백킹 비율, shares ↔ balance
- price_math: 풀 내재 가격, LP 가격, 트랜치 가치
- fee_math: 관리/성과/출금 수수료
- rate_math: Waterfall APY 선택, rebase index
- spillover_math: 3-존 재분배
"""

from .fixed_point import (
    backing_ratio,
    balance_from_shares,
    shares_from_balance,
    shares_from_balance_ceil,
    total_supply,
    deposit_cap,
    mul_div,
    mul_div_rounding_up,
    mul_precision,
    div_rounding_up,
    bps_of,
)
from .price_math import (
    PoolQuote,
    LPHolding,
    implied_price,
    pool_value,
    lp_price,
    total_vault_value,
    total_vault_value_from_holdings,
    validate_manual_value,
    value_deviation_bps,
    profit_bps,
    apply_profit_bps,
)
from .fee_math import (
    WithdrawalBreakdown,
    management_fee,
    management_fee_monthly,
    performance_fee,
    withdrawal_fee,
    early_withdrawal_penalty,
    withdrawal_breakdown,
)
from .rate_math import (
    TierLevel,
    RateTier,
    MIN_TIER,
    MID_TIER,
    MAX_TIER,
    DEFAULT_RATE_TIERS,
    select_rate,
    simulate_tier,
    simulate_all_tiers,
    scale_rate,
    new_rebase_index,
)
from .spillover_math import (
    Zone,
    ZoneThresholds,
    SpilloverSplit,
    SpilloverResult,
    determine_zone,
    calculate_profit_spillover,
    calculate_backstop,
    calculate_spillover,
    zone_thresholds,
)
