"""
Rate Math - 동적 APY 선택 (Waterfall)

여러 APY 티어 중 Senior 백킹 100%를 유지하면서 지급 가능한
가장 높은 티어를 탐욕적으로 선택하고, rebase index 성장을 계산.

핵심 공식 (티어별, 높은 수익률부터):
    r_scaled = r_month × t_elapsed / 30 days
    S_users  = S × r_scaled / P
    S_fee    = S_users × perf_bps / 10000
    S_new    = S + S_users + S_fee + S_mgmt        # 관리 수수료 토큰 포함 필수
    R_new    = V_net × P / S_new
    R_new >= 100% 이면 선택, 종료

    I_new = I_old × (P + r_scaled × (1 + f_perf)) / P

모든 티어가 실패하면 최저 티어를 선택하고 backstop_needed = True.
"""

import logging
from enum import IntEnum
from typing import List, NamedTuple, Optional, Sequence

from ..constants import (
    PRECISION,
    SECONDS_PER_MONTH,
    MIN_APY_BPS,
    MID_APY_BPS,
    MAX_APY_BPS,
    MIN_MONTHLY_RATE,
    MID_MONTHLY_RATE,
    MAX_MONTHLY_RATE,
)
from ..errors import DivisionByZero, InvalidParameter
from .fee_math import performance_fee
from .fixed_point import mul_precision

logger = logging.getLogger(__name__)


class TierLevel(IntEnum):
    """APY 티어 식별자 (숫자가 클수록 높은 수익률)"""
    MIN = 1
    MID = 2
    MAX = 3


class RateTier(NamedTuple):
    """APY 티어 디스크립터"""
    level: TierLevel
    apy_bps: int        # 연간 수익률 (bps)
    monthly_rate: int   # 월간 수익률 (PRECISION 스케일)


MIN_TIER = RateTier(TierLevel.MIN, MIN_APY_BPS, MIN_MONTHLY_RATE)
MID_TIER = RateTier(TierLevel.MID, MID_APY_BPS, MID_MONTHLY_RATE)
MAX_TIER = RateTier(TierLevel.MAX, MAX_APY_BPS, MAX_MONTHLY_RATE)

# 내림차순 (waterfall 평가 순서)
DEFAULT_RATE_TIERS = (MAX_TIER, MID_TIER, MIN_TIER)


class TierCandidate(NamedTuple):
    """단일 티어 시뮬레이션 결과"""
    tier: RateTier
    scaled_rate: int
    user_tokens: int
    fee_tokens: int
    new_supply: int
    backing: int

    @property
    def maintains_peg(self) -> bool:
        return self.backing >= PRECISION


class RateSelection(NamedTuple):
    """Waterfall 선택 결과"""
    tier: RateTier
    scaled_rate: int
    user_tokens: int
    fee_tokens: int
    mgmt_fee_tokens: int
    new_supply: int
    backing: int
    backstop_needed: bool
    evaluated: int  # 평가한 티어 수


def order_tiers(tiers: Sequence[RateTier]) -> List[RateTier]:
    """티어를 월간 수익률 내림차순으로 정렬"""
    if not tiers:
        raise InvalidParameter("at least one rate tier is required")
    for tier in tiers:
        if tier.monthly_rate <= 0:
            raise InvalidParameter("monthly rate must be positive", details={"level": tier.level})
    return sorted(tiers, key=lambda t: t.monthly_rate, reverse=True)


def scale_rate(monthly_rate: int, elapsed_seconds: int) -> int:
    """r_scaled = r_month × t / 30 days (경과 시간에 선형, 복리 없음)"""
    if elapsed_seconds < 0:
        raise InvalidParameter("elapsed time must be non-negative", details={"elapsed_seconds": elapsed_seconds})
    return monthly_rate * elapsed_seconds // SECONDS_PER_MONTH


def simulate_tier(
    tier: RateTier,
    current_supply: int,
    net_value: int,
    elapsed_seconds: int,
    perf_fee_bps: int,
    mgmt_fee_tokens: int = 0
) -> TierCandidate:
    """단일 티어 적용 시 발행량과 백킹 비율

    Raises:
        DivisionByZero: 후보 발행량이 0
    """
    scaled = scale_rate(tier.monthly_rate, elapsed_seconds)
    user_tokens = mul_precision(current_supply, scaled)
    fee_tokens = performance_fee(user_tokens, perf_fee_bps)
    new_supply = current_supply + user_tokens + fee_tokens + mgmt_fee_tokens
    if new_supply == 0:
        raise DivisionByZero("candidate backing with zero supply", details={"net_value": net_value})
    backing = net_value * PRECISION // new_supply
    return TierCandidate(
        tier=tier,
        scaled_rate=scaled,
        user_tokens=user_tokens,
        fee_tokens=fee_tokens,
        new_supply=new_supply,
        backing=backing
    )


def select_rate(
    current_supply: int,
    net_value: int,
    elapsed_seconds: int,
    perf_fee_bps: int,
    mgmt_fee_tokens: int = 0,
    tiers: Optional[Sequence[RateTier]] = None
) -> RateSelection:
    """Waterfall APY 선택

    높은 티어부터 평가하여 백킹 100% 이상을 유지하는 첫 티어를 선택.
    선택 이후의 낮은 티어는 평가하지 않습니다.

    Args:
        current_supply: 현재 Senior 발행량
        net_value: 관리 수수료 차감 후 Senior 가치
        elapsed_seconds: 경과 시간
        perf_fee_bps: 성과 수수료 (bps)
        mgmt_fee_tokens: 이번 기간 이미 발행된 관리 수수료 토큰
        tiers: 후보 티어 (기본값: 13% / 12% / 11%)

    Returns:
        RateSelection
    """
    if mgmt_fee_tokens < 0:
        raise InvalidParameter("mgmt fee tokens must be non-negative", details={"mgmt_fee_tokens": mgmt_fee_tokens})
    ordered = order_tiers(tiers if tiers is not None else DEFAULT_RATE_TIERS)

    candidate = None
    for evaluated, tier in enumerate(ordered, start=1):
        candidate = simulate_tier(tier, current_supply, net_value, elapsed_seconds, perf_fee_bps, mgmt_fee_tokens)
        logger.debug(
            "tier %s (%d bps): supply=%d backing=%d",
            tier.level.name, tier.apy_bps, candidate.new_supply, candidate.backing
        )
        if candidate.maintains_peg:
            return _selection(candidate, mgmt_fee_tokens, backstop_needed=False, evaluated=evaluated)

    # 모든 티어 실패: 최저 티어 + backstop
    return _selection(candidate, mgmt_fee_tokens, backstop_needed=True, evaluated=len(ordered))


def simulate_all_tiers(
    current_supply: int,
    net_value: int,
    elapsed_seconds: int,
    perf_fee_bps: int,
    mgmt_fee_tokens: int = 0,
    tiers: Optional[Sequence[RateTier]] = None
) -> List[TierCandidate]:
    """모든 티어의 백킹 비율 (대시보드/분석용, 내림차순)"""
    ordered = order_tiers(tiers if tiers is not None else DEFAULT_RATE_TIERS)
    return [
        simulate_tier(tier, current_supply, net_value, elapsed_seconds, perf_fee_bps, mgmt_fee_tokens)
        for tier in ordered
    ]


def new_rebase_index(old_index: int, scaled_rate: int, perf_fee_bps: int) -> int:
    """I_new = I_old × (P + r_scaled + r_scaled × perf_bps / 10000) / P

    성과 수수료 몫을 성장률에 포함시켜 수수료로 발행된 shares도
    사용자 shares와 동일하게 복리 성장하도록 합니다.
    """
    growth = scaled_rate + performance_fee(scaled_rate, perf_fee_bps)
    return old_index * (PRECISION + growth) // PRECISION


def tier_for_level(level: TierLevel, tiers: Sequence[RateTier] = DEFAULT_RATE_TIERS) -> RateTier:
    for tier in tiers:
        if tier.level == level:
            return tier
    raise InvalidParameter("unknown tier level", details={"level": int(level)})


def _selection(candidate: TierCandidate, mgmt_fee_tokens: int, backstop_needed: bool, evaluated: int) -> RateSelection:
    return RateSelection(
        tier=candidate.tier,
        scaled_rate=candidate.scaled_rate,
        user_tokens=candidate.user_tokens,
        fee_tokens=candidate.fee_tokens,
        mgmt_fee_tokens=mgmt_fee_tokens,
        new_supply=candidate.new_supply,
        backing=candidate.backing,
        backstop_needed=backstop_needed,
        evaluated=evaluated
    )
