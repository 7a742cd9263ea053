"""
Tranche Oracle - Senior 총 가치 결정

가격 소스(풀 리저브 스냅샷)에서 계산한 가치와 외부 입력(manual) 가치 중
OracleConfig에 따라 정산에 사용할 gross value를 결정하고 편차를 검증합니다.
"""

import logging
from typing import Callable, NamedTuple, Optional, Tuple

from ..config import OracleConfig
from ..data.price_source import PriceSource, ReservesPriceSource
from ..data.types import SettlementInputs
from ..errors import InvalidParameter
from ..math.price_math import (
    PoolQuote,
    lp_price,
    total_vault_value,
    validate_manual_value,
    value_deviation_bps,
)

logger = logging.getLogger(__name__)


class OracleReading(NamedTuple):
    """오라클 판독 결과"""
    gross_value: int
    calculated_value: Optional[int]
    manual_value: Optional[int]
    deviation_bps: Optional[int]
    quote: Optional[PoolQuote]


class TrancheOracle:
    """Senior 트랜치 가치 오라클

    사용법:
        oracle = TrancheOracle(OracleConfig(), FixturePriceSource(quote))
        reading = oracle.read(SettlementInputs(lp_balance=..., idle_stable_balance=...))
    """

    def __init__(self, config: Optional[OracleConfig] = None, source: Optional[PriceSource] = None):
        """
        Args:
            config: 가치 결정 방식
            source: 풀 리저브 스냅샷 소스 (입력에 quote가 없을 때 사용)
        """
        self.config = config or OracleConfig()
        self.source = source

    @classmethod
    def from_reserves(
        cls,
        config: OracleConfig,
        fetch: Callable[[], Tuple[int, int, int]],
        **decimals: int
    ) -> "TrancheOracle":
        """getReserves() 콜러블에서 오라클 생성 (token 순서는 config.stable_is_first)"""
        source = ReservesPriceSource(fetch, stable_is_first=config.stable_is_first, **decimals)
        return cls(config, source)

    def quote(self, inputs: Optional[SettlementInputs] = None) -> Optional[PoolQuote]:
        """입력의 quote 우선, 없으면 소스에서 한 번 조회"""
        if inputs is not None and inputs.quote is not None:
            return inputs.quote
        if self.source is None:
            return None
        return self.source.snapshot()

    def calculated_value(self, quote: Optional[PoolQuote], lp_balance: int, idle_stable_balance: int) -> Optional[int]:
        """LP 보유분 × LP 가격 + idle 잔고 (LP 보유 시 quote 필요)"""
        if lp_balance == 0:
            return idle_stable_balance
        if quote is None:
            return None
        return total_vault_value(lp_balance, lp_price(quote), idle_stable_balance)

    def read(self, inputs: SettlementInputs) -> OracleReading:
        """gross value 결정

        Raises:
            InvalidParameter: 설정된 방식에 필요한 값이 없음
            ValueDeviationTooHigh: 수동 가치 편차 초과 (검증 활성화 시)
            DivisionByZero: 빈 풀
        """
        quote = self.quote(inputs)
        calculated = self.calculated_value(quote, inputs.lp_balance, inputs.idle_stable_balance)
        manual = inputs.manual_value

        if self.config.use_calculated_value:
            if calculated is None:
                raise InvalidParameter(
                    "calculated value requires a pool quote",
                    details={"lp_balance": inputs.lp_balance}
                )
            gross = calculated
        else:
            if manual is None:
                raise InvalidParameter("manual value required when use_calculated_value is disabled")
            gross = manual

        # 계산된 가치가 0 (LP/idle 잔고 없음) 이면 편차 검증 생략
        deviation = None
        if manual is not None and calculated:
            if self.config.validation_enabled:
                deviation = validate_manual_value(manual, calculated, self.config.max_deviation_bps)
            else:
                deviation = value_deviation_bps(manual, calculated)
            if deviation > self.config.max_deviation_bps:
                logger.warning(
                    "manual value deviates %d bps from calculated (limit %d bps)",
                    deviation, self.config.max_deviation_bps
                )

        return OracleReading(
            gross_value=gross,
            calculated_value=calculated,
            manual_value=manual,
            deviation_bps=deviation,
            quote=quote
        )
