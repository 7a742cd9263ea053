"""
Fixed-Point Math 테스트

고정소수점 연산, 백킹 비율, shares ↔ balance 변환을 테스트합니다.
"""

import random

import pytest

from ..math.fixed_point import (
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
    check_bps,
)
from ..constants import PRECISION
from ..errors import DivisionByZero, InvalidParameter

E = PRECISION


class TestBackingRatio:
    """backing_ratio 테스트 (R = V × P / S)"""

    def test_hundred_percent(self):
        """V == S 이면 정확히 100%"""
        assert backing_ratio(1_000 * E, 1_000 * E) == PRECISION

    def test_truncates(self):
        """나눗셈은 내림"""
        # 2 / 3 = 0.666...
        assert backing_ratio(2, 3) == 666_666_666_666_666_666

    def test_zero_supply(self):
        with pytest.raises(DivisionByZero):
            backing_ratio(100, 0)

    def test_division_by_zero_is_zero_division_error(self):
        """DivisionByZero는 ZeroDivisionError로도 잡힘"""
        with pytest.raises(ZeroDivisionError):
            backing_ratio(100, 0)

    def test_increases_with_value(self):
        assert backing_ratio(1_100 * E, 1_000 * E) > backing_ratio(1_000 * E, 1_000 * E)

    def test_decreases_with_supply(self):
        assert backing_ratio(1_000 * E, 1_100 * E) < backing_ratio(1_000 * E, 1_000 * E)

    def test_negative_rejected(self):
        with pytest.raises(InvalidParameter):
            backing_ratio(-1, 100)


class TestSharesAndBalance:
    """shares ↔ balance 변환 테스트"""

    def test_balance_from_shares(self):
        # 100 shares × 1.05 index = 105
        assert balance_from_shares(100 * E, 1_050_000_000_000_000_000) == 105 * E

    def test_shares_from_balance(self):
        assert shares_from_balance(105 * E, 1_050_000_000_000_000_000) == 100 * E

    def test_shares_from_balance_zero_index(self):
        with pytest.raises(DivisionByZero):
            shares_from_balance(100, 0)

    def test_ceil_is_conservative(self):
        """올림 결과는 내림 결과보다 크거나 같고 최대 1 차이"""
        index = 1_000_000_000_000_000_003
        floor = shares_from_balance(10 ** 20 + 7, index)
        ceil = shares_from_balance_ceil(10 ** 20 + 7, index)
        assert floor <= ceil <= floor + 1

    def test_ceil_exact_division(self):
        assert shares_from_balance_ceil(105 * E, 1_050_000_000_000_000_000) == 100 * E

    def test_roundtrip_within_one_unit(self):
        """shares → balance → shares 는 최대 1 단위 손실"""
        rng = random.Random(7)
        for _ in range(500):
            shares = rng.randrange(0, 10 ** 30)
            index = rng.randrange(PRECISION, 3 * PRECISION)
            back = shares_from_balance(balance_from_shares(shares, index), index)
            assert shares - 1 <= back <= shares

    def test_total_supply(self):
        """S = I × Σσ"""
        assert total_supply(1_000 * E, 2 * E) == 2_000 * E


class TestDepositCap:
    """deposit_cap 테스트 (S_max = 10 × V_r)"""

    def test_default_multiplier(self):
        assert deposit_cap(625_000 * E) == 6_250_000 * E

    def test_linear(self):
        assert deposit_cap(2 * 1_000 * E) == 2 * deposit_cap(1_000 * E)


class TestHelpers:
    """mul_div / 올림 / bps 헬퍼 테스트"""

    def test_mul_div(self):
        assert mul_div(7, 3, 2) == 10

    def test_mul_div_rounding_up(self):
        assert mul_div_rounding_up(7, 3, 2) == 11
        assert mul_div_rounding_up(6, 3, 2) == 9

    def test_div_rounding_up(self):
        assert div_rounding_up(10, 3) == 4
        assert div_rounding_up(9, 3) == 3

    def test_mul_div_zero_denominator(self):
        with pytest.raises(DivisionByZero):
            mul_div(1, 1, 0)

    def test_mul_precision(self):
        """두 고정소수점 값의 곱 (내림)"""
        assert mul_precision(3 * E, 1_100_000_000_000_000_000) == 3_300_000_000_000_000_000
        assert mul_precision(1, E - 1) == 0

    def test_bps_of(self):
        assert bps_of(1_000 * E, 250) == 25 * E

    def test_bps_bounds(self):
        assert check_bps(0) == 0
        assert check_bps(10_000) == 10_000
        with pytest.raises(InvalidParameter):
            check_bps(10_001)
        with pytest.raises(InvalidParameter):
            check_bps(-1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
