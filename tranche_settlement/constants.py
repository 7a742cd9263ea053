"""
트랜치 정산 엔진 상수 정의

온체인 수준 정밀도를 위한 상수들:
- PRECISION: 모든 고정소수점 값의 스케일 (1e18)
- BPS_DENOMINATOR: basis point 분모 (10000 = 100%)
- 기본 APY 티어, 존(zone) 임계값, 스필오버 분배 비율
- 기본 수수료 (관리/성과/출금 페널티)
"""

from typing import Dict

# Fixed-point 인코딩 상수
PRECISION: int = 10 ** 18
BPS_DENOMINATOR: int = 10_000
DECIMALS: int = 18

# 시간 상수 (초)
SECONDS_PER_DAY: int = 86_400
SECONDS_PER_MONTH: int = 30 * SECONDS_PER_DAY   # 2,592,000
SECONDS_PER_YEAR: int = 365 * SECONDS_PER_DAY   # 31,536,000
MONTHS_PER_YEAR: int = 12

# APY 티어 (basis points)
MIN_APY_BPS: int = 1100  # 11%
MID_APY_BPS: int = 1200  # 12%
MAX_APY_BPS: int = 1300  # 13%

# 월간 수익률 (APY / 12, 소수점 6자리에서 절사)
MIN_MONTHLY_RATE: int = 9_166_000_000_000_000    # 0.009166
MID_MONTHLY_RATE: int = 10_000_000_000_000_000   # 0.010000
MAX_MONTHLY_RATE: int = 10_833_000_000_000_000   # 0.010833

# Senior 백킹 존 임계값
SENIOR_TARGET_BACKING: int = 1_100_000_000_000_000_000   # 110%
SENIOR_TRIGGER_BACKING: int = 1_000_000_000_000_000_000  # 100%
SENIOR_RESTORE_BACKING: int = 1_009_000_000_000_000_000  # 100.9%

# 스필오버 분배 비율 (합계 = PRECISION)
JUNIOR_SPILLOVER_SHARE: int = 800_000_000_000_000_000   # 80%
RESERVE_SPILLOVER_SHARE: int = 200_000_000_000_000_000  # 20%

# 수수료 기본값 (basis points)
MGMT_FEE_BPS: int = 100                  # 연 1%
PERF_FEE_BPS: int = 200                  # 사용자 수익의 2%
WITHDRAWAL_FEE_BPS: int = 0
EARLY_WITHDRAWAL_PENALTY_BPS: int = 2000  # 20%
COOLDOWN_PERIOD: int = 7 * SECONDS_PER_DAY

# Senior 공급량 상한 = 10 × Reserve 가치
DEPOSIT_CAP_MULTIPLIER: int = 10

# 오라클 기본값
MAX_DEVIATION_BPS: int = 500  # 5%

# 최소 정산 간격 (권고용)
MIN_SETTLEMENT_INTERVAL: int = SECONDS_PER_DAY

# Rebase index 초기값 (1.0)
INITIAL_INDEX: int = PRECISION

APY_LABELS: Dict[int, str] = {
    MIN_APY_BPS: "11%",
    MID_APY_BPS: "12%",
    MAX_APY_BPS: "13%",
}
