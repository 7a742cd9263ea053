"""
Configuration for the tranche settlement engine

정적 설정(수익률 티어, 수수료 bps, 존 임계값, 분배 비율, 쿨다운,
편차 허용치)을 pydantic 모델로 정의하고 환경 변수에서 로드합니다.

설정 검증 실패는 InvalidParameter로 변환됩니다:
    config = SettlementConfig.create(fees={"mgmt_fee_bps": 100})
"""
import logging
import os
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .constants import (
    PRECISION,
    BPS_DENOMINATOR,
    MGMT_FEE_BPS,
    PERF_FEE_BPS,
    WITHDRAWAL_FEE_BPS,
    EARLY_WITHDRAWAL_PENALTY_BPS,
    COOLDOWN_PERIOD,
    SENIOR_TARGET_BACKING,
    SENIOR_TRIGGER_BACKING,
    SENIOR_RESTORE_BACKING,
    JUNIOR_SPILLOVER_SHARE,
    RESERVE_SPILLOVER_SHARE,
    DEPOSIT_CAP_MULTIPLIER,
    MAX_DEVIATION_BPS,
    MIN_SETTLEMENT_INTERVAL,
)
from .errors import InvalidParameter
from .math.rate_math import RateTier, DEFAULT_RATE_TIERS
from .math.spillover_math import ZoneThresholds, SpilloverSplit, validate_thresholds, validate_split

logger = logging.getLogger(__name__)


class _ConfigModel(BaseModel):
    """불변 설정 모델 공통 베이스"""
    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def create(cls, **values):
        """검증 실패 시 InvalidParameter 발생"""
        try:
            return cls(**values)
        except ValidationError as exc:
            raise InvalidParameter(
                f"invalid {cls.__name__}",
                details={"errors": [f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()]}
            ) from exc


class FeeConfig(_ConfigModel):
    """수수료 설정 (bps)"""
    mgmt_fee_bps: int = Field(default=MGMT_FEE_BPS, ge=0, le=BPS_DENOMINATOR, description="Annual management fee")
    perf_fee_bps: int = Field(default=PERF_FEE_BPS, ge=0, le=BPS_DENOMINATOR, description="Performance fee on user yield")
    withdrawal_fee_bps: int = Field(default=WITHDRAWAL_FEE_BPS, ge=0, le=BPS_DENOMINATOR)
    early_withdrawal_penalty_bps: int = Field(default=EARLY_WITHDRAWAL_PENALTY_BPS, ge=0, le=BPS_DENOMINATOR)
    cooldown_period: int = Field(default=COOLDOWN_PERIOD, ge=0, description="Cooldown in seconds")


class ZoneConfig(_ConfigModel):
    """존 임계값 및 스필오버 분배 (PRECISION 스케일)"""
    target: int = Field(default=SENIOR_TARGET_BACKING, gt=0)
    trigger: int = Field(default=SENIOR_TRIGGER_BACKING, gt=0)
    restore: int = Field(default=SENIOR_RESTORE_BACKING, gt=0)
    junior_share: int = Field(default=JUNIOR_SPILLOVER_SHARE, ge=0, le=PRECISION)
    reserve_share: int = Field(default=RESERVE_SPILLOVER_SHARE, ge=0, le=PRECISION)

    @model_validator(mode="after")
    def _check_bands(self):
        validate_thresholds(self.thresholds)
        validate_split(self.split)
        return self

    @property
    def thresholds(self) -> ZoneThresholds:
        return ZoneThresholds(target=self.target, trigger=self.trigger, restore=self.restore)

    @property
    def split(self) -> SpilloverSplit:
        return SpilloverSplit(junior_share=self.junior_share, reserve_share=self.reserve_share)


class OracleConfig(_ConfigModel):
    """Senior 가치 결정 방식"""
    stable_is_first: bool = True
    max_deviation_bps: int = Field(default=MAX_DEVIATION_BPS, ge=0, le=BPS_DENOMINATOR)
    validation_enabled: bool = True
    use_calculated_value: bool = True


class SettlementConfig(_ConfigModel):
    """정산 엔진 전체 설정"""
    fees: FeeConfig = FeeConfig()
    zones: ZoneConfig = ZoneConfig()
    oracle: OracleConfig = OracleConfig()
    tiers: Tuple[RateTier, ...] = DEFAULT_RATE_TIERS
    min_settlement_interval: int = Field(default=MIN_SETTLEMENT_INTERVAL, ge=0)
    enforce_min_interval: bool = False
    deposit_cap_multiplier: int = Field(default=DEPOSIT_CAP_MULTIPLIER, ge=1)

    @model_validator(mode="after")
    def _check_tiers(self):
        if not self.tiers:
            raise ValueError("at least one rate tier is required")
        levels = [t.level for t in self.tiers]
        if len(set(levels)) != len(levels):
            raise ValueError("rate tier levels must be unique")
        for tier in self.tiers:
            if tier.monthly_rate <= 0:
                raise ValueError(f"tier {tier.level.name} monthly rate must be positive")
            if not 0 <= tier.apy_bps <= BPS_DENOMINATOR:
                raise ValueError(f"tier {tier.level.name} apy must be within [0, {BPS_DENOMINATOR}] bps")
        return self


class Settings:
    """환경 변수 기반 설정

    TRANCHE_* 환경 변수(.env 포함)를 읽어 SettlementConfig를 생성합니다.
    """

    def __init__(self, env: Optional[dict] = None):
        env = os.environ if env is None else env

        # Fees
        self.MGMT_FEE_BPS: int = _env_int(env, "TRANCHE_MGMT_FEE_BPS", MGMT_FEE_BPS)
        self.PERF_FEE_BPS: int = _env_int(env, "TRANCHE_PERF_FEE_BPS", PERF_FEE_BPS)
        self.WITHDRAWAL_FEE_BPS: int = _env_int(env, "TRANCHE_WITHDRAWAL_FEE_BPS", WITHDRAWAL_FEE_BPS)
        self.EARLY_WITHDRAWAL_PENALTY_BPS: int = _env_int(
            env, "TRANCHE_EARLY_WITHDRAWAL_PENALTY_BPS", EARLY_WITHDRAWAL_PENALTY_BPS
        )
        self.COOLDOWN_PERIOD: int = _env_int(env, "TRANCHE_COOLDOWN_PERIOD", COOLDOWN_PERIOD)

        # Oracle
        self.STABLE_IS_FIRST: bool = env.get("TRANCHE_STABLE_IS_FIRST", "true").lower() == "true"
        self.MAX_DEVIATION_BPS: int = _env_int(env, "TRANCHE_MAX_DEVIATION_BPS", MAX_DEVIATION_BPS)
        self.VALIDATION_ENABLED: bool = env.get("TRANCHE_VALIDATION_ENABLED", "true").lower() == "true"
        self.USE_CALCULATED_VALUE: bool = env.get("TRANCHE_USE_CALCULATED_VALUE", "true").lower() == "true"

        # Settlement policy
        self.MIN_SETTLEMENT_INTERVAL: int = _env_int(env, "TRANCHE_MIN_SETTLEMENT_INTERVAL", MIN_SETTLEMENT_INTERVAL)
        self.ENFORCE_MIN_INTERVAL: bool = env.get("TRANCHE_ENFORCE_MIN_INTERVAL", "false").lower() == "true"
        self.DEPOSIT_CAP_MULTIPLIER: int = _env_int(env, "TRANCHE_DEPOSIT_CAP_MULTIPLIER", DEPOSIT_CAP_MULTIPLIER)

    def to_config(self) -> SettlementConfig:
        """SettlementConfig 생성 (검증 실패 시 InvalidParameter)"""
        return SettlementConfig.create(
            fees=FeeConfig.create(
                mgmt_fee_bps=self.MGMT_FEE_BPS,
                perf_fee_bps=self.PERF_FEE_BPS,
                withdrawal_fee_bps=self.WITHDRAWAL_FEE_BPS,
                early_withdrawal_penalty_bps=self.EARLY_WITHDRAWAL_PENALTY_BPS,
                cooldown_period=self.COOLDOWN_PERIOD,
            ),
            oracle=OracleConfig.create(
                stable_is_first=self.STABLE_IS_FIRST,
                max_deviation_bps=self.MAX_DEVIATION_BPS,
                validation_enabled=self.VALIDATION_ENABLED,
                use_calculated_value=self.USE_CALCULATED_VALUE,
            ),
            min_settlement_interval=self.MIN_SETTLEMENT_INTERVAL,
            enforce_min_interval=self.ENFORCE_MIN_INTERVAL,
            deposit_cap_multiplier=self.DEPOSIT_CAP_MULTIPLIER,
        )


def _env_int(env, key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidParameter(f"{key} must be an integer", details={key: raw}) from exc


def load_settings(dotenv_path: Optional[str] = None) -> SettlementConfig:
    """.env 파일과 환경 변수에서 설정 로드"""
    load_dotenv(dotenv_path)
    settings = Settings()
    config = settings.to_config()
    if not config.oracle.validation_enabled:
        logger.warning("manual value validation is disabled")
    return config
