"""
Price Math - 풀 가격 및 트랜치 가치 계산

x·y=k 교환 풀의 리저브 스냅샷에서 LP 토큰 가격과 트랜치 총 가치를 계산.
"stable" 토큰은 회계 단위에서 정확히 1.0으로 정의됩니다.

핵심 공식:
    p_other = R_stable / R_other                  # 내재 가격
    V_pool  = R_stable + R_other × p_other        # 풀 가치
    p_lp    = V_pool / S_lp                       # LP 토큰 가격
    V_vault = b_lp × p_lp + b_idle                # 트랜치 총 가치

모든 값은 18 decimals로 정규화된 정수입니다.
"""

from typing import Iterable, NamedTuple, Tuple

from ..constants import PRECISION, BPS_DENOMINATOR, DECIMALS
from ..errors import DivisionByZero, InvalidParameter, ValueDeviationTooHigh
from .fixed_point import check_bps


class PoolQuote(NamedTuple):
    """풀 리저브 스냅샷 (18 decimals 정규화)"""
    reserve_stable: int
    reserve_other: int
    lp_total_supply: int
    stable_is_first: bool = True

    @classmethod
    def from_raw(
        cls,
        reserve0: int,
        reserve1: int,
        lp_total_supply: int,
        stable_is_first: bool,
        decimals0: int = DECIMALS,
        decimals1: int = DECIMALS,
        lp_decimals: int = DECIMALS
    ) -> "PoolQuote":
        """getReserves() 원시값 → 정규화된 PoolQuote

        Args:
            reserve0: token0 리저브 (최소 단위)
            reserve1: token1 리저브 (최소 단위)
            lp_total_supply: LP 토큰 총 발행량 (최소 단위)
            stable_is_first: token0이 stable 토큰인지 여부
            decimals0: token0 decimals
            decimals1: token1 decimals
            lp_decimals: LP 토큰 decimals
        """
        r0 = normalize_decimals(reserve0, decimals0)
        r1 = normalize_decimals(reserve1, decimals1)
        lp = normalize_decimals(lp_total_supply, lp_decimals)
        if stable_is_first:
            return cls(reserve_stable=r0, reserve_other=r1, lp_total_supply=lp, stable_is_first=True)
        return cls(reserve_stable=r1, reserve_other=r0, lp_total_supply=lp, stable_is_first=False)


class LPHolding(NamedTuple):
    """LP 포지션 (수량, 가격)"""
    amount: int
    lp_price: int


def normalize_decimals(amount: int, decimals: int) -> int:
    """임의 decimals 값을 18 decimals로 변환 (초과 자릿수는 절사)"""
    if decimals < 0:
        raise InvalidParameter("decimals must be non-negative", details={"decimals": decimals})
    if decimals <= DECIMALS:
        return amount * 10 ** (DECIMALS - decimals)
    return amount // 10 ** (decimals - DECIMALS)


def implied_price(quote: PoolQuote) -> int:
    """stable 기준 상대 토큰 가격 p = R_stable × P / R_other"""
    if quote.reserve_other == 0:
        raise DivisionByZero("implied price with empty pool", details={"reserve_stable": quote.reserve_stable})
    return quote.reserve_stable * PRECISION // quote.reserve_other


def pool_value(quote: PoolQuote) -> int:
    """V_pool = R_stable + R_other × p / P"""
    price = implied_price(quote)
    return quote.reserve_stable + quote.reserve_other * price // PRECISION


def lp_price(quote: PoolQuote) -> int:
    """LP 토큰 1개 가격 p_lp = V_pool × P / S_lp"""
    if quote.lp_total_supply == 0:
        raise DivisionByZero("lp price with zero lp supply", details={"reserve_stable": quote.reserve_stable})
    return pool_value(quote) * PRECISION // quote.lp_total_supply


def total_vault_value(lp_balance: int, price: int, idle_stable_balance: int) -> int:
    """V = b_lp × p_lp / P + b_idle"""
    return lp_balance * price // PRECISION + idle_stable_balance


def total_vault_value_from_holdings(holdings: Iterable[LPHolding], idle_stable_balance: int) -> int:
    """여러 LP 포지션 + idle stable 잔고의 합"""
    total = idle_stable_balance
    for holding in holdings:
        total += holding.amount * holding.lp_price // PRECISION
    return total


def value_deviation_bps(manual: int, calculated: int) -> int:
    """|manual - calculated| / calculated (bps, 내림)"""
    if calculated == 0:
        raise DivisionByZero("deviation against zero calculated value", details={"manual": manual})
    return abs(manual - calculated) * BPS_DENOMINATOR // calculated


def validate_manual_value(manual: int, calculated: int, max_deviation_bps: int) -> int:
    """수동 입력 가치를 계산된 가치와 비교 검증

    |manual - calculated| / calculated > max_deviation_bps / 10000 이면 실패.
    비교는 교차 곱셈으로 수행하므로 bps 절사의 영향을 받지 않습니다.

    Returns:
        편차 (bps)

    Raises:
        ValueDeviationTooHigh: 허용 편차 초과
        DivisionByZero: calculated == 0
    """
    check_bps(max_deviation_bps, "max_deviation_bps")
    deviation = value_deviation_bps(manual, calculated)
    if abs(manual - calculated) * BPS_DENOMINATOR > max_deviation_bps * calculated:
        raise ValueDeviationTooHigh(manual, calculated, deviation, max_deviation_bps)
    return deviation


def profit_bps(current_value: int, recorded_value: int) -> int:
    """기록된 가치 대비 현재 가치의 손익 (부호 있는 bps, 반올림)

    예: 5% 이익 = 500, 2% 손실 = -200. recorded_value == 0이면 0.
    """
    if recorded_value == 0:
        return 0
    delta = current_value - recorded_value
    magnitude = (abs(delta) * BPS_DENOMINATOR * 2 + recorded_value) // (2 * recorded_value)
    return magnitude if delta >= 0 else -magnitude


def apply_profit_bps(value: int, bps: int) -> int:
    """손익 bps 적용 후 가치 (0 미만으로 내려가지 않음)"""
    if bps < -BPS_DENOMINATOR:
        raise InvalidParameter("loss cannot exceed 100%", details={"bps": bps})
    delta = value * abs(bps) // BPS_DENOMINATOR
    return value + delta if bps >= 0 else max(value - delta, 0)


def quote_summary(quote: PoolQuote) -> Tuple[int, int, int]:
    """(implied_price, pool_value, lp_price) 한 번에 계산"""
    return implied_price(quote), pool_value(quote), lp_price(quote)
