"""
Period Settlement 테스트

오라클 → 관리 수수료 → Waterfall → 3-존 재분배 → rebase index 전체 흐름과
예치/출금, 종료 모드(frozen index)를 테스트합니다.
"""

import logging

import pytest

from ..config import FeeConfig, OracleConfig, SettlementConfig
from ..constants import PRECISION, SECONDS_PER_DAY, SECONDS_PER_YEAR, SENIOR_RESTORE_BACKING
from ..data.price_source import FixturePriceSource
from ..data.types import Frozen, Rebasing, SettlementInputs
from ..engine.settlement import (
    SettlementEngine,
    apply_settlement,
    deposit,
    freeze_index,
    genesis_state,
    settle_period,
    withdraw,
)
from ..errors import InvalidParameter, TooSoon
from ..math.fee_math import management_fee
from ..math.fixed_point import total_supply
from ..math.price_math import PoolQuote
from ..math.rate_math import MAX_TIER, MIN_TIER
from ..math.spillover_math import Zone

E = PRECISION
T0 = 1_700_000_000
MONTH = 30 * SECONDS_PER_DAY
NO_MGMT = SettlementConfig(fees=FeeConfig(mgmt_fee_bps=0))


@pytest.fixture
def state():
    """Senior 10M / Junior 500k / Reserve 1.5M"""
    return genesis_state(10_000_000 * E, 500_000 * E, 1_500_000 * E, T0)


class TestSettlePeriod:
    """한 기간 정산 테스트"""

    def test_thirty_day_spillover(self, state):
        result = settle_period(state, T0 + MONTH, SettlementInputs(idle_stable_balance=11_140_712 * E), NO_MGMT)
        assert result.selected_tier == MAX_TIER
        assert not result.backstop_needed
        assert result.user_mint == 108_330 * E
        assert result.perf_fee_mint == 2_166_600_000_000_000_000_000
        assert result.new_senior_supply == 10_110_496_600_000_000_000_000_000
        assert result.new_index == 1_011_049_660_000_000_000
        assert result.zone == Zone.SPILLOVER
        assert result.excess == 19_165_740_000_000_000_000_000
        assert result.to_junior == 15_332_592_000_000_000_000_000
        assert result.to_reserve == 3_833_148_000_000_000_000_000
        assert result.final_senior_value == 11_121_546_260_000_000_000_000_000
        assert result.final_backing_ratio == 1_100_000_000_000_000_000
        assert result.mgmt_fee_value == 0
        assert result.elapsed == MONTH

    def test_management_fee_deducted(self, state):
        gross = 11_140_712 * E
        result = settle_period(state, T0 + MONTH, SettlementInputs(idle_stable_balance=gross))
        fee = management_fee(gross, MONTH, 100)
        assert result.mgmt_fee_value == fee
        assert result.net_value == gross - fee
        assert result.gross_value == gross

    def test_value_conserved(self, state):
        result = settle_period(state, T0 + MONTH, SettlementInputs(idle_stable_balance=11_140_712 * E))
        before = result.net_value + state.junior.value + state.reserve.value
        after = result.final_senior_value + result.final_junior_value + result.final_reserve_value
        assert before == after

    def test_backstop_from_reserve(self):
        state = genesis_state(1_000_000 * E, 500_000 * E, 625_000 * E, T0)
        result = settle_period(state, T0 + MONTH, SettlementInputs(idle_stable_balance=1_000_000 * E), NO_MGMT)
        assert result.selected_tier == MIN_TIER
        assert result.backstop_needed
        assert result.zone == Zone.BACKSTOP
        assert result.from_reserve == result.deficit
        assert result.from_junior == 0
        assert result.shortfall == 0
        assert result.final_backing_ratio >= SENIOR_RESTORE_BACKING

    def test_shortfall_reported_not_raised(self, caplog):
        state = genesis_state(1_000_000 * E, 0, 0, T0)
        with caplog.at_level(logging.WARNING):
            result = settle_period(state, T0 + MONTH, SettlementInputs(idle_stable_balance=959_000 * E), NO_MGMT)
        assert result.has_shortfall
        assert result.shortfall == result.deficit
        assert result.final_senior_value == 959_000 * E
        assert "shortfall" in caplog.text

    def test_too_soon_warns(self, state, caplog):
        with caplog.at_level(logging.WARNING):
            result = settle_period(state, T0 + 3_600, SettlementInputs(idle_stable_balance=10_000_000 * E))
        assert result.too_soon
        assert "minimum interval" in caplog.text

    def test_too_soon_enforced(self, state):
        config = SettlementConfig(enforce_min_interval=True)
        with pytest.raises(TooSoon):
            settle_period(state, T0 + 3_600, SettlementInputs(idle_stable_balance=10_000_000 * E), config)

    def test_time_goes_backwards(self, state):
        with pytest.raises(InvalidParameter):
            settle_period(state, T0 - 1, SettlementInputs(idle_stable_balance=10_000_000 * E))

    def test_input_state_unchanged(self, state):
        settle_period(state, T0 + MONTH, SettlementInputs(idle_stable_balance=11_140_712 * E))
        assert state.senior.supply == 10_000_000 * E
        assert state.senior.rebase_index == E

    def test_price_source_read_once(self, state):
        quote = PoolQuote(reserve_stable=5_570_356 * E, reserve_other=5_570_356 * E, lp_total_supply=1_000_000 * E)
        source = FixturePriceSource(quote)
        result = settle_period(state, T0 + MONTH, SettlementInputs(lp_balance=1_000_000 * E), NO_MGMT, source)
        assert source.reads == 1
        assert result.gross_value == 11_140_712 * E

    def test_manual_value_only(self):
        """수동 가치 모드: LP/idle 입력 없이 정산 (기본 검증 설정)"""
        state = genesis_state(1_000 * E, 100 * E, 200 * E, 0)
        config = SettlementConfig(fees=FeeConfig(mgmt_fee_bps=0), oracle=OracleConfig(use_calculated_value=False))
        result = settle_period(state, MONTH, SettlementInputs(manual_value=1_050 * E), config)
        assert result.gross_value == 1_050 * E
        assert result.value_deviation_bps is None
        assert result.selected_tier == MAX_TIER
        assert result.zone == Zone.HEALTHY

    def test_management_fee_capped_at_gross_value(self):
        """관리 수수료가 gross value를 넘으면 V_net = 0 으로 정산"""
        state = genesis_state(1_000 * E, 100 * E, 200 * E, 0)
        config = SettlementConfig(fees=FeeConfig(mgmt_fee_bps=10_000))
        result = settle_period(state, 2 * SECONDS_PER_YEAR, SettlementInputs(idle_stable_balance=1_000 * E), config)
        assert result.mgmt_fee_value == 1_000 * E
        assert result.net_value == 0
        assert result.selected_tier == MIN_TIER
        assert result.backstop_needed
        assert result.zone == Zone.BACKSTOP
        assert result.from_reserve == 200 * E
        assert result.from_junior == 100 * E
        assert result.has_shortfall
        assert result.final_senior_value == 300 * E

    def test_preview_with_capped_fee(self):
        state = genesis_state(1_000 * E, 100 * E, 200 * E, 0)
        engine = SettlementEngine(SettlementConfig(fees=FeeConfig(mgmt_fee_bps=10_000)))
        candidates = engine.preview_tiers(state, 2 * SECONDS_PER_YEAR, SettlementInputs(idle_stable_balance=1_000 * E))
        assert all(c.backing == 0 for c in candidates)

    def test_deposit_cap_flag(self):
        state = genesis_state(1_000_000 * E, 0, 50_000 * E, T0)
        result = settle_period(state, T0 + MONTH, SettlementInputs(idle_stable_balance=1_050_000 * E), NO_MGMT)
        assert result.exceeds_deposit_cap
        assert result.deposit_cap == result.final_reserve_value * 10


class TestApplySettlement:
    """결과 적용 테스트"""

    def test_apply(self, state):
        now = T0 + MONTH
        result = settle_period(state, now, SettlementInputs(idle_stable_balance=11_140_712 * E), NO_MGMT)
        updated = apply_settlement(state, result, now)
        assert updated.senior.supply == result.new_senior_supply
        assert updated.senior.value == result.final_senior_value
        assert updated.senior.rebase_index == result.new_index
        assert updated.senior.last_settlement_time == now
        assert updated.junior.value == result.final_junior_value
        assert updated.reserve.value == result.final_reserve_value

    def test_shares_unchanged_by_rebase(self, state):
        """rebase 후 balance = 기존 shares × 새 index"""
        now = T0 + MONTH
        result = settle_period(state, now, SettlementInputs(idle_stable_balance=11_140_712 * E), NO_MGMT)
        updated = apply_settlement(state, result, now)
        assert total_supply(state.senior.shares, updated.senior.rebase_index) == updated.senior.supply

    def test_consecutive_periods(self, state):
        engine = SettlementEngine(NO_MGMT)
        state, first = engine.settle_and_apply(state, T0 + MONTH, SettlementInputs(idle_stable_balance=11_140_712 * E))
        state, second = engine.settle_and_apply(
            state, T0 + 2 * MONTH, SettlementInputs(idle_stable_balance=state.senior.value)
        )
        assert second.elapsed == MONTH
        assert second.new_index <= first.new_index * first.new_index // E
        assert state.senior.last_settlement_time == T0 + 2 * MONTH


class TestFrozenIndex:
    """종료 모드 테스트"""

    def test_freeze_keeps_index(self, state):
        frozen = freeze_index(state, "treasury")
        assert frozen.senior.is_frozen
        result = settle_period(frozen, T0 + MONTH, SettlementInputs(idle_stable_balance=11_140_712 * E), NO_MGMT)
        assert result.new_index == E
        assert result.yield_sink == "treasury"
        assert result.user_mint == 108_330 * E
        updated = apply_settlement(frozen, result, T0 + MONTH)
        assert updated.senior.mode == Frozen(index=E, sink="treasury")

    def test_rebasing_has_no_sink(self, state):
        result = settle_period(state, T0 + MONTH, SettlementInputs(idle_stable_balance=11_140_712 * E), NO_MGMT)
        assert result.yield_sink is None
        assert isinstance(state.senior.mode, Rebasing)

    def test_freeze_twice(self, state):
        with pytest.raises(InvalidParameter):
            freeze_index(freeze_index(state, "treasury"), "other")

    def test_freeze_without_sink(self, state):
        with pytest.raises(InvalidParameter):
            freeze_index(state, "")


class TestDepositWithdraw:
    """예치/출금 테스트"""

    def test_deposit_mints_shares(self, state):
        updated, minted = deposit(state, 1_000 * E)
        assert minted == 1_000 * E
        assert updated.senior.supply == 10_001_000 * E
        assert updated.senior.value == 10_001_000 * E
        assert updated.senior.rebase_index == E

    def test_deposit_at_cap(self):
        state = genesis_state(5_000_000 * E, 0, 625_000 * E, T0)
        updated, _ = deposit(state, 1_250_000 * E)
        assert updated.senior.supply == 6_250_000 * E

    def test_deposit_over_cap(self):
        state = genesis_state(5_000_000 * E, 0, 625_000 * E, T0)
        with pytest.raises(InvalidParameter):
            deposit(state, 1_250_000 * E + 1)

    def test_deposit_non_positive(self, state):
        with pytest.raises(InvalidParameter):
            deposit(state, 0)

    def test_early_withdrawal_penalty_stays_in_senior(self, state):
        updated, result = withdraw(state, 1_000 * E, cooldown_start=0, now=T0)
        assert result.breakdown.penalty == 200 * E
        assert result.breakdown.net_amount == 800 * E
        assert result.shares_burned == 1_000 * E
        assert updated.senior.supply == 9_999_000 * E
        assert updated.senior.value == 10_000_000 * E - 800 * E

    def test_withdrawal_after_cooldown(self, state):
        now = T0 + 10 * SECONDS_PER_DAY
        _, result = withdraw(state, 1_000 * E, cooldown_start=T0, now=now)
        assert result.breakdown.penalty == 0
        assert result.breakdown.net_amount == 1_000 * E

    def test_withdrawal_burns_rounded_up(self, state):
        now = T0 + MONTH
        result = settle_period(state, now, SettlementInputs(idle_stable_balance=11_140_712 * E), NO_MGMT)
        updated = apply_settlement(state, result, now)
        _, withdrawal = withdraw(updated, 1_000 * E, cooldown_start=T0, now=now)
        index = updated.senior.rebase_index
        assert withdrawal.shares_burned * index >= 1_000 * E * E
        assert (withdrawal.shares_burned - 1) * index < 1_000 * E * E

    def test_withdraw_more_than_supply(self, state):
        with pytest.raises(InvalidParameter):
            withdraw(state, 10_000_001 * E, cooldown_start=0, now=T0)


class TestSettlementEngine:
    """엔진 래퍼 테스트"""

    def test_preview_tiers(self, state):
        engine = SettlementEngine(NO_MGMT)
        candidates = engine.preview_tiers(state, T0 + MONTH, SettlementInputs(idle_stable_balance=11_140_712 * E))
        assert [c.tier for c in candidates][0] == MAX_TIER
        assert len(candidates) == 3
        assert all(c.maintains_peg for c in candidates)

    def test_zone_of(self, state):
        assert SettlementEngine().zone_of(state) == Zone.HEALTHY

    def test_engine_uses_source(self, state):
        quote = PoolQuote(reserve_stable=5_570_356 * E, reserve_other=5_570_356 * E, lp_total_supply=1_000_000 * E)
        engine = SettlementEngine(NO_MGMT, FixturePriceSource(quote))
        result = engine.settle(state, T0 + MONTH, SettlementInputs(lp_balance=1_000_000 * E))
        assert result.selected_tier == MAX_TIER


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
