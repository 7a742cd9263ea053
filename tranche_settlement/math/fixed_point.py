"""
Fixed-Point Math - 고정소수점 정수 연산

모든 수량은 PRECISION(1e18)으로 스케일된 부호 없는 정수입니다.
모든 나눗셈은 0 방향으로 절사되며, 이는 수수료/수익 계산에서
항상 사용자보다 프로토콜에 유리하게 작용합니다.

핵심 공식:
    R = V × P / S          # 백킹 비율
    b = σ × I / P          # shares → balance
    σ = b × P / I          # balance → shares
    S_max = γ × V_r        # 예치 상한 (γ = 10)
"""

from ..constants import PRECISION, BPS_DENOMINATOR, DEPOSIT_CAP_MULTIPLIER
from ..errors import DivisionByZero, InvalidParameter


def backing_ratio(value: int, supply: int) -> int:
    """백킹 비율 R = V × P / S

    Args:
        value: 담보 가치
        supply: 발행량

    Returns:
        PRECISION 스케일의 백킹 비율 (1e18 = 100%)

    Raises:
        DivisionByZero: supply == 0
    """
    _require_unsigned(value=value, supply=supply)
    if supply == 0:
        raise DivisionByZero("backing ratio with zero supply", details={"value": value})
    return value * PRECISION // supply


def balance_from_shares(shares: int, index: int) -> int:
    """shares × index / PRECISION"""
    _require_unsigned(shares=shares, index=index)
    return shares * index // PRECISION


def shares_from_balance(balance: int, index: int) -> int:
    """balance × PRECISION / index (내림)

    Raises:
        DivisionByZero: index == 0
    """
    _require_unsigned(balance=balance, index=index)
    if index == 0:
        raise DivisionByZero("shares from balance with zero index", details={"balance": balance})
    return balance * PRECISION // index


def shares_from_balance_ceil(balance: int, index: int) -> int:
    """balance × PRECISION / index (올림)

    출금 시 소각할 shares 계산에 사용. 내림 결과보다 항상 크거나 같음.
    """
    _require_unsigned(balance=balance, index=index)
    if index == 0:
        raise DivisionByZero("shares from balance with zero index", details={"balance": balance})
    return mul_div_rounding_up(balance, PRECISION, index)


def total_supply(total_shares: int, index: int) -> int:
    """S = I × Σσ"""
    return balance_from_shares(total_shares, index)


def deposit_cap(reserve_value: int, multiplier: int = DEPOSIT_CAP_MULTIPLIER) -> int:
    """Senior 최대 발행량 S_max = γ × V_r"""
    _require_unsigned(reserve_value=reserve_value, multiplier=multiplier)
    return reserve_value * multiplier


def mul_div(a: int, b: int, denominator: int) -> int:
    """(a × b) / denominator 내림"""
    if denominator == 0:
        raise DivisionByZero("mul_div with zero denominator", details={"a": a, "b": b})
    return a * b // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """(a × b) / denominator 올림"""
    if denominator == 0:
        raise DivisionByZero("mul_div with zero denominator", details={"a": a, "b": b})
    result = (a * b) // denominator
    if (a * b) % denominator > 0:
        result += 1
    return result


def div_rounding_up(numerator: int, denominator: int) -> int:
    """numerator / denominator 올림"""
    if denominator == 0:
        raise DivisionByZero("division by zero", details={"numerator": numerator})
    result = numerator // denominator
    if numerator % denominator > 0:
        result += 1
    return result


def mul_precision(a: int, b: int) -> int:
    """a × b / PRECISION (두 고정소수점 값의 곱)"""
    return a * b // PRECISION


def bps_of(amount: int, bps: int) -> int:
    """amount × bps / 10000"""
    check_bps(bps)
    _require_unsigned(amount=amount)
    return amount * bps // BPS_DENOMINATOR


def check_bps(bps: int, name: str = "bps") -> int:
    """bps 값이 [0, 10000] 범위인지 검증"""
    if not isinstance(bps, int) or isinstance(bps, bool) or bps < 0 or bps > BPS_DENOMINATOR:
        raise InvalidParameter(f"{name} must be within [0, {BPS_DENOMINATOR}]", details={name: bps})
    return bps


def _require_unsigned(**values: int) -> None:
    for name, v in values.items():
        if v < 0:
            raise InvalidParameter(f"{name} must be non-negative", details={name: v})
