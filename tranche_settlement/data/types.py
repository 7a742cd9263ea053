"""
트랜치 정산 데이터 타입 정의

프로토콜 스냅샷과 정산 결과를 Python dataclass로 정의.
모든 숫자 필드는 온체인 정밀도를 위해 int 타입 (18 decimals) 사용.
모든 타입은 불변(frozen)이며, 상태 변경은 새 인스턴스를 반환합니다.
"""

from dataclasses import dataclass, replace
from typing import Optional, Union

from ..constants import INITIAL_INDEX
from ..errors import InvalidParameter
from ..math.fixed_point import balance_from_shares, shares_from_balance
from ..math.price_math import PoolQuote
from ..math.rate_math import RateTier
from ..math.spillover_math import Zone


@dataclass(frozen=True)
class Rebasing:
    """Rebase 모드: index가 정산마다 성장"""
    index: int = INITIAL_INDEX


@dataclass(frozen=True)
class Frozen:
    """종료 모드: index 고정, 이후 수익은 sink로 발행"""
    index: int
    sink: str


IndexMode = Union[Rebasing, Frozen]


def balance_of(mode: IndexMode, shares: int) -> int:
    """shares × index (모드와 무관하게 동일 공식, index만 다름)"""
    return balance_from_shares(shares, mode.index)


@dataclass(frozen=True)
class TrancheState:
    """트랜치 스냅샷

    - supply: 발행량 (Senior는 rebase 적용된 balance 합계)
    - value: 담보 가치 (stable 단위)
    - last_settlement_time: 마지막 정산 Unix timestamp
    - mode: Senior만 보유 (Junior/Reserve는 None)
    """
    supply: int
    value: int
    last_settlement_time: int = 0
    mode: Optional[IndexMode] = None

    def __post_init__(self):
        if self.supply < 0 or self.value < 0:
            raise InvalidParameter(
                "tranche supply and value must be non-negative",
                details={"supply": self.supply, "value": self.value}
            )
        if self.mode is not None and self.mode.index <= 0:
            raise InvalidParameter("rebase index must be positive", details={"index": self.mode.index})

    @property
    def rebase_index(self) -> Optional[int]:
        return self.mode.index if self.mode is not None else None

    @property
    def is_frozen(self) -> bool:
        return isinstance(self.mode, Frozen)

    @property
    def shares(self) -> int:
        """Senior shares = supply / index (index 없는 트랜치는 supply)"""
        if self.mode is None:
            return self.supply
        return shares_from_balance(self.supply, self.mode.index)

    @classmethod
    def from_dict(cls, data: dict) -> "TrancheState":
        mode = None
        if data.get("rebaseIndex") is not None:
            if data.get("sink"):
                mode = Frozen(index=int(data["rebaseIndex"]), sink=data["sink"])
            else:
                mode = Rebasing(index=int(data["rebaseIndex"]))
        return cls(
            supply=int(data["supply"]),
            value=int(data["value"]),
            last_settlement_time=int(data.get("lastSettlementTime", 0)),
            mode=mode,
        )


@dataclass(frozen=True)
class ProtocolState:
    """3-트랜치 프로토콜 스냅샷"""
    senior: TrancheState
    junior: TrancheState
    reserve: TrancheState

    def __post_init__(self):
        if self.senior.mode is None:
            raise InvalidParameter("senior tranche requires an index mode")

    @property
    def total_value(self) -> int:
        return self.senior.value + self.junior.value + self.reserve.value

    def with_senior(self, **changes) -> "ProtocolState":
        return replace(self, senior=replace(self.senior, **changes))

    @classmethod
    def from_dict(cls, data: dict) -> "ProtocolState":
        return cls(
            senior=TrancheState.from_dict(data["senior"]),
            junior=TrancheState.from_dict(data["junior"]),
            reserve=TrancheState.from_dict(data["reserve"]),
        )


@dataclass(frozen=True)
class SettlementInputs:
    """정산 호출 시 오라클 입력

    - lp_balance: Senior가 보유한 LP 토큰 수량
    - idle_stable_balance: Senior가 보유한 stable 잔고
    - quote: 풀 리저브 스냅샷 (없으면 가격 소스에서 조회)
    - manual_value: 외부에서 입력된 Senior 가치
    - mgmt_fee_tokens: 이번 기간 이미 발행된 관리 수수료 토큰
    """
    lp_balance: int = 0
    idle_stable_balance: int = 0
    quote: Optional[PoolQuote] = None
    manual_value: Optional[int] = None
    mgmt_fee_tokens: int = 0


@dataclass(frozen=True)
class SettlementResult:
    """정산 결과 (불변)

    호출자(custody/ledger 레이어)가 이 결과를 적용하여 shares 발행 및
    담보 이동을 수행합니다. shortfall > 0 은 BackstopShortfall 상황입니다.
    """
    selected_tier: RateTier
    new_index: int
    new_senior_supply: int
    user_mint: int
    perf_fee_mint: int
    mgmt_fee_value: int
    zone: Zone
    to_junior: int
    to_reserve: int
    from_reserve: int
    from_junior: int
    shortfall: int
    backstop_needed: bool
    # 보조 필드
    elapsed: int = 0
    gross_value: int = 0
    net_value: int = 0
    mgmt_fee_tokens: int = 0
    excess: int = 0
    deficit: int = 0
    backing_ratio: int = 0
    final_backing_ratio: int = 0
    final_senior_value: int = 0
    final_junior_value: int = 0
    final_reserve_value: int = 0
    too_soon: bool = False
    value_deviation_bps: Optional[int] = None
    deposit_cap: int = 0
    exceeds_deposit_cap: bool = False
    yield_sink: Optional[str] = None

    @property
    def has_shortfall(self) -> bool:
        return self.shortfall > 0

    @property
    def total_minted(self) -> int:
        return self.user_mint + self.perf_fee_mint + self.mgmt_fee_tokens
