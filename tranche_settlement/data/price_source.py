"""
Price Source - 풀 리저브 스냅샷 제공자

정산 엔진은 네트워크에 직접 접근하지 않습니다. 대신 주입된 가격 소스에서
정산 호출당 정확히 한 번 원자적 스냅샷을 읽습니다.

사용법:
    source = FixturePriceSource(PoolQuote(reserve_stable=..., reserve_other=..., lp_total_supply=...))
    quote = source.snapshot()

    source = ReservesPriceSource(fetch=pair.get_reserves, stable_is_first=True)
"""

from typing import Callable, Optional, Protocol, Tuple

from ..constants import DECIMALS
from ..math.price_math import PoolQuote


class PriceSource(Protocol):
    """풀 리저브 스냅샷 capability"""

    def snapshot(self) -> PoolQuote:
        ...


class FixturePriceSource:
    """고정 PoolQuote를 반환하는 소스 (테스트/오프라인용)"""

    def __init__(self, quote: PoolQuote):
        self.quote = quote
        self.reads = 0

    def snapshot(self) -> PoolQuote:
        self.reads += 1
        return self.quote


class ReservesPriceSource:
    """getReserves() 형태의 콜러블을 감싸는 소스

    fetch()는 (reserve0, reserve1, lp_total_supply) 를 한 번의 원자적 읽기로
    반환해야 합니다.
    """

    def __init__(
        self,
        fetch: Callable[[], Tuple[int, int, int]],
        stable_is_first: bool = True,
        decimals0: int = DECIMALS,
        decimals1: int = DECIMALS,
        lp_decimals: int = DECIMALS
    ):
        """
        Args:
            fetch: 원시 리저브 조회 함수
            stable_is_first: token0이 stable 토큰인지 여부
            decimals0: token0 decimals
            decimals1: token1 decimals
            lp_decimals: LP 토큰 decimals
        """
        self.fetch = fetch
        self.stable_is_first = stable_is_first
        self.decimals0 = decimals0
        self.decimals1 = decimals1
        self.lp_decimals = lp_decimals
        self.last_quote: Optional[PoolQuote] = None

    def snapshot(self) -> PoolQuote:
        reserve0, reserve1, lp_total_supply = self.fetch()
        self.last_quote = PoolQuote.from_raw(
            reserve0,
            reserve1,
            lp_total_supply,
            stable_is_first=self.stable_is_first,
            decimals0=self.decimals0,
            decimals1=self.decimals1,
            lp_decimals=self.lp_decimals
        )
        return self.last_quote
