"""
정산 엔진 예외 계층

모든 예외는 SettlementError를 상속하므로 한 번에 잡을 수 있습니다.
BackstopShortfall은 예외가 아니라 SettlementResult.shortfall 필드로 보고됩니다.
"""

from typing import Any, Dict, Optional


class SettlementError(Exception):
    """정산 엔진 기본 예외"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class DivisionByZero(SettlementError, ZeroDivisionError):
    """빈 풀 또는 공급량 0으로 나눌 때"""
    pass


class InvalidParameter(SettlementError, ValueError):
    """범위를 벗어난 수익률/수수료/임계값 설정"""
    pass


class ValueDeviationTooHigh(SettlementError):
    """수동 입력 가치와 계산된 가치의 차이가 허용 범위를 초과"""

    def __init__(self, manual: int, calculated: int, deviation_bps: int, max_deviation_bps: int):
        super().__init__(
            "manual value deviates too far from calculated value",
            details={
                "manual": manual,
                "calculated": calculated,
                "deviation_bps": deviation_bps,
                "max_deviation_bps": max_deviation_bps,
            },
        )
        self.manual = manual
        self.calculated = calculated
        self.deviation_bps = deviation_bps
        self.max_deviation_bps = max_deviation_bps


class TooSoon(SettlementError):
    """최소 정산 간격 이전의 호출 (호출자 정책으로만 발생)"""

    def __init__(self, elapsed: int, min_interval: int):
        super().__init__(
            "settlement called before the minimum interval",
            details={"elapsed": elapsed, "min_interval": min_interval},
        )
        self.elapsed = elapsed
        self.min_interval = min_interval
