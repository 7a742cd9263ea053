"""
Spillover Math - 3-존 재분배 계산

Senior 백킹 비율에 따라 트랜치 간 담보 이동량을 계산합니다.
이 모듈은 금액만 반환하며 실제 이동은 수행하지 않습니다.

Zone 구분:
    SPILLOVER  R > 110%          초과분 E를 Junior 80% / Reserve 20%로 분배
    HEALTHY    100% <= R <= 110% 이동 없음
    BACKSTOP   R < 100%          100.9%까지 Reserve → Junior 순서로 보충

핵심 공식:
    V_target  = 1.10 × S_new
    E         = V_s - V_target
    E_j       = E × 80%,  E_r = E - E_j            # 나머지 방식으로 합계 보존
    V_restore = 1.009 × S_new
    D         = V_restore - V_s
    X_r       = min(V_r, D)
    X_j       = min(V_j, D - X_r)
    shortfall = D - X_r - X_j
"""

import logging
from enum import IntEnum
from typing import NamedTuple, Optional

from ..constants import (
    PRECISION,
    SENIOR_TARGET_BACKING,
    SENIOR_TRIGGER_BACKING,
    SENIOR_RESTORE_BACKING,
    JUNIOR_SPILLOVER_SHARE,
    RESERVE_SPILLOVER_SHARE,
)
from ..errors import InvalidParameter
from .fixed_point import backing_ratio, mul_precision

logger = logging.getLogger(__name__)


class Zone(IntEnum):
    BACKSTOP = 0
    HEALTHY = 1
    SPILLOVER = 2


class ZoneThresholds(NamedTuple):
    """존 경계 (PRECISION 스케일)"""
    target: int = SENIOR_TARGET_BACKING
    trigger: int = SENIOR_TRIGGER_BACKING
    restore: int = SENIOR_RESTORE_BACKING


class SpilloverSplit(NamedTuple):
    """초과분 분배 비율 (합계 = PRECISION)"""
    junior_share: int = JUNIOR_SPILLOVER_SHARE
    reserve_share: int = RESERVE_SPILLOVER_SHARE


DEFAULT_THRESHOLDS = ZoneThresholds()
DEFAULT_SPLIT = SpilloverSplit()


class ProfitSpillover(NamedTuple):
    """Zone SPILLOVER 계산 결과"""
    excess: int
    to_junior: int
    to_reserve: int
    final_senior_value: int


class Backstop(NamedTuple):
    """Zone BACKSTOP 계산 결과"""
    deficit: int
    from_reserve: int
    from_junior: int
    shortfall: int
    final_senior_value: int

    @property
    def fully_restored(self) -> bool:
        return self.shortfall == 0


class SpilloverResult(NamedTuple):
    """3-존 재분배 결과"""
    zone: Zone
    backing: int
    excess: int
    to_junior: int
    to_reserve: int
    deficit: int
    from_reserve: int
    from_junior: int
    shortfall: int
    final_senior_value: int
    final_junior_value: int
    final_reserve_value: int

    @property
    def fully_restored(self) -> bool:
        return self.shortfall == 0


class ZoneLevels(NamedTuple):
    """발행량 기준 존 경계의 가치 수준"""
    target_value: int
    trigger_value: int
    restore_value: int


def validate_thresholds(thresholds: ZoneThresholds) -> ZoneThresholds:
    """trigger <= restore <= target, trigger > 0"""
    if thresholds.trigger <= 0:
        raise InvalidParameter("trigger backing must be positive", details={"trigger": thresholds.trigger})
    if not thresholds.trigger <= thresholds.restore <= thresholds.target:
        raise InvalidParameter(
            "zone thresholds must satisfy trigger <= restore <= target",
            details=thresholds._asdict()
        )
    return thresholds


def validate_split(split: SpilloverSplit) -> SpilloverSplit:
    if split.junior_share < 0 or split.reserve_share < 0:
        raise InvalidParameter("spillover shares must be non-negative", details=split._asdict())
    if split.junior_share + split.reserve_share != PRECISION:
        raise InvalidParameter("spillover shares must sum to 100%", details=split._asdict())
    return split


def determine_zone(backing: int, thresholds: ZoneThresholds = DEFAULT_THRESHOLDS) -> Zone:
    """백킹 비율 → 존 (경계 [trigger, target]는 양쪽 포함 HEALTHY)"""
    if backing > thresholds.target:
        return Zone.SPILLOVER
    if backing >= thresholds.trigger:
        return Zone.HEALTHY
    return Zone.BACKSTOP


def needs_profit_spillover(backing: int, thresholds: ZoneThresholds = DEFAULT_THRESHOLDS) -> bool:
    return determine_zone(backing, thresholds) == Zone.SPILLOVER


def is_healthy_buffer(backing: int, thresholds: ZoneThresholds = DEFAULT_THRESHOLDS) -> bool:
    return determine_zone(backing, thresholds) == Zone.HEALTHY


def needs_backstop(backing: int, thresholds: ZoneThresholds = DEFAULT_THRESHOLDS) -> bool:
    return determine_zone(backing, thresholds) == Zone.BACKSTOP


def zone_thresholds(new_supply: int, thresholds: ZoneThresholds = DEFAULT_THRESHOLDS) -> ZoneLevels:
    """발행량 S_new에서 각 경계에 해당하는 Senior 가치"""
    return ZoneLevels(
        target_value=mul_precision(thresholds.target, new_supply),
        trigger_value=mul_precision(thresholds.trigger, new_supply),
        restore_value=mul_precision(thresholds.restore, new_supply)
    )


def calculate_profit_spillover(
    senior_value: int,
    new_supply: int,
    thresholds: ZoneThresholds = DEFAULT_THRESHOLDS,
    split: SpilloverSplit = DEFAULT_SPLIT
) -> ProfitSpillover:
    """초과 담보 분배 (Zone SPILLOVER)

    Senior 최종 가치는 정확히 target × S_new / P 가 됩니다.
    to_reserve는 나머지로 계산하여 to_junior + to_reserve == excess를 보장.
    """
    target_value = mul_precision(thresholds.target, new_supply)
    if senior_value <= target_value:
        return ProfitSpillover(excess=0, to_junior=0, to_reserve=0, final_senior_value=senior_value)
    excess = senior_value - target_value
    to_junior = mul_precision(excess, split.junior_share)
    to_reserve = excess - to_junior
    return ProfitSpillover(
        excess=excess,
        to_junior=to_junior,
        to_reserve=to_reserve,
        final_senior_value=target_value
    )


def calculate_backstop(
    senior_value: int,
    new_supply: int,
    reserve_value: int,
    junior_value: int,
    thresholds: ZoneThresholds = DEFAULT_THRESHOLDS
) -> Backstop:
    """부족 담보 보충 (Zone BACKSTOP)

    Reserve에서 먼저, 부족하면 Junior에서 가져옵니다 (둘 다 전액 소진 가능).
    그래도 남는 부족분은 shortfall로 보고되며 0으로 조정되지 않습니다.
    """
    restore_value = mul_precision(thresholds.restore, new_supply)
    if senior_value >= restore_value:
        return Backstop(deficit=0, from_reserve=0, from_junior=0, shortfall=0, final_senior_value=senior_value)
    deficit = restore_value - senior_value
    from_reserve = min(reserve_value, deficit)
    remaining = deficit - from_reserve
    from_junior = min(junior_value, remaining)
    shortfall = remaining - from_junior
    return Backstop(
        deficit=deficit,
        from_reserve=from_reserve,
        from_junior=from_junior,
        shortfall=shortfall,
        final_senior_value=senior_value + from_reserve + from_junior
    )


def calculate_spillover(
    new_supply: int,
    net_senior_value: int,
    junior_value: int,
    reserve_value: int,
    thresholds: Optional[ZoneThresholds] = None,
    split: Optional[SpilloverSplit] = None
) -> SpilloverResult:
    """3-존 분류 및 트랜치 간 이동량 계산

    Args:
        new_supply: rebase 후 Senior 발행량
        net_senior_value: 관리 수수료 차감 후 Senior 가치
        junior_value: Junior 가치
        reserve_value: Reserve 가치
        thresholds: 존 경계 (기본 110% / 100% / 100.9%)
        split: 초과분 분배 (기본 80% / 20%)

    Returns:
        SpilloverResult. 모든 존에서
        final_senior + final_junior + final_reserve == net_senior + junior + reserve

    Raises:
        DivisionByZero: new_supply == 0
    """
    thresholds = validate_thresholds(thresholds or DEFAULT_THRESHOLDS)
    split = validate_split(split or DEFAULT_SPLIT)

    backing = backing_ratio(net_senior_value, new_supply)
    zone = determine_zone(backing, thresholds)
    logger.debug("backing=%d zone=%s", backing, zone.name)

    if zone == Zone.SPILLOVER:
        spill = calculate_profit_spillover(net_senior_value, new_supply, thresholds, split)
        return SpilloverResult(
            zone=zone,
            backing=backing,
            excess=spill.excess,
            to_junior=spill.to_junior,
            to_reserve=spill.to_reserve,
            deficit=0,
            from_reserve=0,
            from_junior=0,
            shortfall=0,
            final_senior_value=spill.final_senior_value,
            final_junior_value=junior_value + spill.to_junior,
            final_reserve_value=reserve_value + spill.to_reserve
        )

    if zone == Zone.BACKSTOP:
        stop = calculate_backstop(net_senior_value, new_supply, reserve_value, junior_value, thresholds)
        return SpilloverResult(
            zone=zone,
            backing=backing,
            excess=0,
            to_junior=0,
            to_reserve=0,
            deficit=stop.deficit,
            from_reserve=stop.from_reserve,
            from_junior=stop.from_junior,
            shortfall=stop.shortfall,
            final_senior_value=stop.final_senior_value,
            final_junior_value=junior_value - stop.from_junior,
            final_reserve_value=reserve_value - stop.from_reserve
        )

    return SpilloverResult(
        zone=zone,
        backing=backing,
        excess=0,
        to_junior=0,
        to_reserve=0,
        deficit=0,
        from_reserve=0,
        from_junior=0,
        shortfall=0,
        final_senior_value=net_senior_value,
        final_junior_value=junior_value,
        final_reserve_value=reserve_value
    )
