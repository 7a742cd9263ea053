"""
Fee Math - 수수료 계산

관리 수수료(시간 비례), 성과 수수료(수익분에만), 출금 수수료 및 조기 출금 페널티.

핵심 공식:
    F_mgmt = V × mgmt_bps / 10000 × t_elapsed / 365 days
    F_perf = S_users × perf_bps / 10000
    P(w)   = w × penalty_bps / 10000   if t - t_c < cooldown
    F_wd   = (w - P) × withdrawal_bps / 10000

페널티는 출금 수수료보다 먼저 차감됩니다 (총액 기준 합산이 아님).
"""

from typing import NamedTuple

from ..constants import BPS_DENOMINATOR, MONTHS_PER_YEAR, SECONDS_PER_YEAR
from ..errors import InvalidParameter
from .fixed_point import check_bps


class WithdrawalBreakdown(NamedTuple):
    """출금 계산 결과"""
    penalty: int     # 조기 출금 페널티
    fee: int         # 출금 수수료 (페널티 차감 후 금액 기준)
    net_amount: int  # 사용자 수령액


def management_fee(value: int, elapsed_seconds: int, mgmt_fee_bps: int) -> int:
    """시간 비례 관리 수수료

    Args:
        value: 트랜치 총 가치
        elapsed_seconds: 마지막 정산 이후 경과 시간
        mgmt_fee_bps: 연간 관리 수수료 (bps)

    Returns:
        F_mgmt = V × bps × t / (10000 × 365 days)
    """
    check_bps(mgmt_fee_bps, "mgmt_fee_bps")
    if elapsed_seconds < 0:
        raise InvalidParameter("elapsed time must be non-negative", details={"elapsed_seconds": elapsed_seconds})
    return value * mgmt_fee_bps * elapsed_seconds // (BPS_DENOMINATOR * SECONDS_PER_YEAR)


def management_fee_monthly(value: int, mgmt_fee_bps: int) -> int:
    """월간 관리 수수료 V × bps / (10000 × 12)"""
    check_bps(mgmt_fee_bps, "mgmt_fee_bps")
    return value * mgmt_fee_bps // (BPS_DENOMINATOR * MONTHS_PER_YEAR)


def performance_fee(user_mint: int, perf_fee_bps: int) -> int:
    """성과 수수료 (사용자 수익분에만 부과, 원금 제외)"""
    check_bps(perf_fee_bps, "perf_fee_bps")
    return user_mint * perf_fee_bps // BPS_DENOMINATOR


def withdrawal_fee(amount: int, withdrawal_fee_bps: int) -> int:
    check_bps(withdrawal_fee_bps, "withdrawal_fee_bps")
    return amount * withdrawal_fee_bps // BPS_DENOMINATOR


def in_cooldown(cooldown_start: int, now: int, cooldown_period: int) -> bool:
    """쿨다운 기간이 아직 끝나지 않았는지 (쿨다운을 시작하지 않은 경우 포함)"""
    if cooldown_start == 0:
        return True
    return now - cooldown_start < cooldown_period


def early_withdrawal_penalty(
    amount: int,
    cooldown_start: int,
    now: int,
    cooldown_period: int,
    penalty_bps: int
) -> int:
    """조기 출금 페널티

    now - cooldown_start < cooldown_period 이면 amount × penalty_bps / 10000,
    아니면 0. cooldown_start == 0 (쿨다운 미시작)이면 페널티가 적용됩니다.
    """
    check_bps(penalty_bps, "penalty_bps")
    if cooldown_period < 0:
        raise InvalidParameter("cooldown period must be non-negative", details={"cooldown_period": cooldown_period})
    if not in_cooldown(cooldown_start, now, cooldown_period):
        return 0
    return amount * penalty_bps // BPS_DENOMINATOR


def withdrawal_breakdown(
    amount: int,
    cooldown_start: int,
    now: int,
    cooldown_period: int,
    penalty_bps: int,
    withdrawal_fee_bps: int
) -> WithdrawalBreakdown:
    """출금 금액 분해: 페널티 → 수수료 순차 차감

    Returns:
        WithdrawalBreakdown(penalty, fee, net_amount)
    """
    penalty = early_withdrawal_penalty(amount, cooldown_start, now, cooldown_period, penalty_bps)
    after_penalty = amount - penalty
    fee = withdrawal_fee(after_penalty, withdrawal_fee_bps)
    return WithdrawalBreakdown(penalty=penalty, fee=fee, net_amount=after_penalty - fee)
