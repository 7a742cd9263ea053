"""
Period Settlement - 기간 정산 오케스트레이터

오라클 → 관리 수수료 → Waterfall APY 선택 → 3-존 재분배 → rebase index
순서로 한 번의 정산을 계산하여 불변 SettlementResult를 반환합니다.

엔진은 외부 상태를 변경하지 않습니다. 결과 적용(shares 발행, 담보 이동)은
호출자의 책임이며, apply_settlement()는 다음 스냅샷을 계산하는 순수 함수입니다.

정산 단계:
    1. t_elapsed = now - t_last
    2. V_gross   = oracle(calculated | manual, 편차 검증)
    3. F_mgmt    = V_gross × mgmt × t / 365 days,  V_net = V_gross - F_mgmt
    4. (tier, S_users, S_fee, S_new, backstop) = waterfall(S, V_net, t)
    5. (zone, transfers) = spillover(S_new, V_net, V_j, V_r)
    6. I_new
"""

import logging
from dataclasses import replace
from typing import List, NamedTuple, Optional, Tuple

from ..config import SettlementConfig
from ..constants import INITIAL_INDEX
from ..data.price_source import PriceSource
from ..data.types import (
    Frozen,
    ProtocolState,
    Rebasing,
    SettlementInputs,
    SettlementResult,
    TrancheState,
)
from ..errors import InvalidParameter, TooSoon
from ..math.fee_math import WithdrawalBreakdown, management_fee, withdrawal_breakdown
from ..math.fixed_point import backing_ratio, deposit_cap, shares_from_balance, shares_from_balance_ceil
from ..math.rate_math import TierCandidate, new_rebase_index, select_rate, simulate_all_tiers
from ..math.spillover_math import Zone, calculate_spillover, determine_zone
from .oracle import TrancheOracle

logger = logging.getLogger(__name__)


class WithdrawalResult(NamedTuple):
    """출금 결과"""
    shares_burned: int
    breakdown: WithdrawalBreakdown


def settle_period(
    state: ProtocolState,
    now: int,
    inputs: SettlementInputs,
    config: Optional[SettlementConfig] = None,
    source: Optional[PriceSource] = None
) -> SettlementResult:
    """한 기간 정산 계산 (순수 함수)

    Args:
        state: 프로토콜 스냅샷
        now: 현재 Unix timestamp
        inputs: 오라클 입력 (LP 잔고, idle 잔고, quote, manual value)
        config: 정산 설정 (기본값 사용 시 None)
        source: 입력에 quote가 없을 때 사용할 가격 소스

    Returns:
        SettlementResult

    Raises:
        InvalidParameter: now < 마지막 정산 시각, 잘못된 설정
        TooSoon: 최소 간격 미달 + enforce_min_interval 설정
        ValueDeviationTooHigh: 수동 가치 편차 초과
        DivisionByZero: 빈 풀 또는 발행량 0
    """
    config = config or SettlementConfig()
    senior = state.senior
    fees = config.fees

    # 1. 경과 시간
    elapsed = now - senior.last_settlement_time
    if elapsed < 0:
        raise InvalidParameter(
            "settlement time precedes last settlement",
            details={"now": now, "last_settlement_time": senior.last_settlement_time}
        )
    too_soon = elapsed < config.min_settlement_interval
    if too_soon:
        if config.enforce_min_interval:
            raise TooSoon(elapsed, config.min_settlement_interval)
        logger.warning("settling after %ds, below minimum interval %ds", elapsed, config.min_settlement_interval)

    # 2. Senior gross value
    reading = TrancheOracle(config.oracle, source).read(inputs)
    gross_value = reading.gross_value

    # 3. 관리 수수료
    mgmt_fee_value, net_value = _net_of_management_fee(gross_value, elapsed, fees.mgmt_fee_bps)

    # 4. Waterfall APY 선택
    selection = select_rate(
        current_supply=senior.supply,
        net_value=net_value,
        elapsed_seconds=elapsed,
        perf_fee_bps=fees.perf_fee_bps,
        mgmt_fee_tokens=inputs.mgmt_fee_tokens,
        tiers=config.tiers
    )

    # 5. 3-존 재분배
    spill = calculate_spillover(
        new_supply=selection.new_supply,
        net_senior_value=net_value,
        junior_value=state.junior.value,
        reserve_value=state.reserve.value,
        thresholds=config.zones.thresholds,
        split=config.zones.split
    )

    # 6. Rebase index
    mode = senior.mode
    if isinstance(mode, Frozen):
        new_index = mode.index
        yield_sink = mode.sink
    else:
        new_index = new_rebase_index(mode.index, selection.scaled_rate, fees.perf_fee_bps)
        yield_sink = None

    final_backing = backing_ratio(spill.final_senior_value, selection.new_supply)
    cap = deposit_cap(spill.final_reserve_value, config.deposit_cap_multiplier)
    exceeds_cap = selection.new_supply > cap

    if spill.shortfall > 0:
        logger.warning(
            "backstop shortfall %d: reserve and junior drained (deficit %d)",
            spill.shortfall, spill.deficit
        )
    if exceeds_cap:
        logger.warning("senior supply %d exceeds deposit cap %d", selection.new_supply, cap)

    logger.info(
        "settled %ds: tier=%s zone=%s supply %d -> %d index %d -> %d",
        elapsed, selection.tier.level.name, spill.zone.name,
        senior.supply, selection.new_supply, mode.index, new_index
    )

    return SettlementResult(
        selected_tier=selection.tier,
        new_index=new_index,
        new_senior_supply=selection.new_supply,
        user_mint=selection.user_tokens,
        perf_fee_mint=selection.fee_tokens,
        mgmt_fee_value=mgmt_fee_value,
        zone=spill.zone,
        to_junior=spill.to_junior,
        to_reserve=spill.to_reserve,
        from_reserve=spill.from_reserve,
        from_junior=spill.from_junior,
        shortfall=spill.shortfall,
        backstop_needed=selection.backstop_needed,
        elapsed=elapsed,
        gross_value=gross_value,
        net_value=net_value,
        mgmt_fee_tokens=selection.mgmt_fee_tokens,
        excess=spill.excess,
        deficit=spill.deficit,
        backing_ratio=spill.backing,
        final_backing_ratio=final_backing,
        final_senior_value=spill.final_senior_value,
        final_junior_value=spill.final_junior_value,
        final_reserve_value=spill.final_reserve_value,
        too_soon=too_soon,
        value_deviation_bps=reading.deviation_bps,
        deposit_cap=cap,
        exceeds_deposit_cap=exceeds_cap,
        yield_sink=yield_sink
    )


def _net_of_management_fee(gross_value: int, elapsed: int, mgmt_fee_bps: int) -> Tuple[int, int]:
    """(F_mgmt, V_net) - 수수료는 gross value를 넘지 않음 (V_net >= 0)"""
    fee = min(management_fee(gross_value, elapsed, mgmt_fee_bps), gross_value)
    return fee, gross_value - fee


def apply_settlement(state: ProtocolState, result: SettlementResult, now: int) -> ProtocolState:
    """정산 결과를 적용한 다음 스냅샷 (입력 state는 변경되지 않음)"""
    senior = state.senior
    return ProtocolState(
        senior=replace(
            senior,
            supply=result.new_senior_supply,
            value=result.final_senior_value,
            last_settlement_time=now,
            mode=replace(senior.mode, index=result.new_index)
        ),
        junior=replace(state.junior, value=result.final_junior_value, last_settlement_time=now),
        reserve=replace(state.reserve, value=result.final_reserve_value, last_settlement_time=now)
    )


def genesis_state(senior_value: int, junior_value: int, reserve_value: int, now: int) -> ProtocolState:
    """초기 자본 기준 프로토콜 생성 (index = 1.0, 발행량 = 가치)"""
    return ProtocolState(
        senior=TrancheState(supply=senior_value, value=senior_value, last_settlement_time=now,
                            mode=Rebasing(INITIAL_INDEX)),
        junior=TrancheState(supply=junior_value, value=junior_value, last_settlement_time=now),
        reserve=TrancheState(supply=reserve_value, value=reserve_value, last_settlement_time=now)
    )


def freeze_index(state: ProtocolState, sink: str) -> ProtocolState:
    """종료 모드로 전환: 현재 index 고정, 이후 수익은 sink로"""
    if not sink:
        raise InvalidParameter("yield sink is required to freeze the index")
    if state.senior.is_frozen:
        raise InvalidParameter("senior index is already frozen", details={"sink": state.senior.mode.sink})
    return state.with_senior(mode=Frozen(index=state.senior.mode.index, sink=sink))


def deposit(
    state: ProtocolState,
    amount: int,
    config: Optional[SettlementConfig] = None
) -> Tuple[ProtocolState, int]:
    """Senior 예치: shares만 증가, index는 불변

    Returns:
        (새 스냅샷, 발행된 shares)

    Raises:
        InvalidParameter: 금액 <= 0 또는 예치 상한(10 × Reserve) 초과
    """
    config = config or SettlementConfig()
    if amount <= 0:
        raise InvalidParameter("deposit amount must be positive", details={"amount": amount})
    senior = state.senior
    cap = deposit_cap(state.reserve.value, config.deposit_cap_multiplier)
    if senior.supply + amount > cap:
        raise InvalidParameter(
            "deposit exceeds senior supply cap",
            details={"supply": senior.supply, "amount": amount, "cap": cap}
        )
    minted = shares_from_balance(amount, senior.mode.index)
    new_state = state.with_senior(supply=senior.supply + amount, value=senior.value + amount)
    return new_state, minted


def withdraw(
    state: ProtocolState,
    amount: int,
    cooldown_start: int,
    now: int,
    config: Optional[SettlementConfig] = None
) -> Tuple[ProtocolState, WithdrawalResult]:
    """Senior 출금: shares 소각(올림), 페널티 → 수수료 순차 차감

    페널티는 Senior 담보에 남고, 출금 수수료와 사용자 수령액만 담보에서 빠집니다.
    """
    config = config or SettlementConfig()
    fees = config.fees
    senior = state.senior
    if amount <= 0 or amount > senior.supply:
        raise InvalidParameter(
            "withdrawal amount must be within senior supply",
            details={"amount": amount, "supply": senior.supply}
        )
    breakdown = withdrawal_breakdown(
        amount,
        cooldown_start,
        now,
        fees.cooldown_period,
        fees.early_withdrawal_penalty_bps,
        fees.withdrawal_fee_bps
    )
    outflow = breakdown.net_amount + breakdown.fee
    if outflow > senior.value:
        raise InvalidParameter(
            "withdrawal exceeds senior collateral",
            details={"outflow": outflow, "value": senior.value}
        )
    burned = shares_from_balance_ceil(amount, senior.mode.index)
    new_state = state.with_senior(supply=senior.supply - amount, value=senior.value - outflow)
    return new_state, WithdrawalResult(shares_burned=burned, breakdown=breakdown)


class SettlementEngine:
    """설정과 가격 소스를 보유하는 정산 엔진

    엔진 자체에는 가변 상태가 없으므로 서로 다른 스냅샷에 대한 동시 호출은
    안전합니다. 같은 프로토콜 인스턴스의 정산은 호출자가 직렬화해야 합니다.

    사용법:
        engine = SettlementEngine(config, FixturePriceSource(quote))
        result = engine.settle(state, now, SettlementInputs(lp_balance=...))
        state = apply_settlement(state, result, now)
    """

    def __init__(self, config: Optional[SettlementConfig] = None, source: Optional[PriceSource] = None):
        self.config = config or SettlementConfig()
        self.source = source

    def settle(self, state: ProtocolState, now: int, inputs: SettlementInputs) -> SettlementResult:
        return settle_period(state, now, inputs, self.config, self.source)

    def settle_and_apply(
        self,
        state: ProtocolState,
        now: int,
        inputs: SettlementInputs
    ) -> Tuple[ProtocolState, SettlementResult]:
        result = self.settle(state, now, inputs)
        return apply_settlement(state, result, now), result

    def preview_tiers(self, state: ProtocolState, now: int, inputs: SettlementInputs) -> List[TierCandidate]:
        """모든 티어의 예상 백킹 비율 (선택 없이)"""
        elapsed = max(now - state.senior.last_settlement_time, 0)
        reading = TrancheOracle(self.config.oracle, self.source).read(inputs)
        _, net_value = _net_of_management_fee(reading.gross_value, elapsed, self.config.fees.mgmt_fee_bps)
        return simulate_all_tiers(
            state.senior.supply,
            net_value,
            elapsed,
            self.config.fees.perf_fee_bps,
            inputs.mgmt_fee_tokens,
            self.config.tiers
        )

    def zone_of(self, state: ProtocolState) -> Zone:
        """현재 스냅샷의 존 (정산 전 기준)"""
        return determine_zone(backing_ratio(state.senior.value, state.senior.supply), self.config.zones.thresholds)
