"""Configuration loading and validation using Pydantic."""

from pathlib import Path

from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from indexbasket.models import BPS_DENOMINATOR, AssetEntry, FeeState, bps_to_proportion


class AssetConfig(BaseModel):
    asset: str = Field(min_length=1)
    decimals: int = Field(ge=0, le=36)
    target_bps: int = Field(gt=0, le=BPS_DENOMINATOR)

    def to_entry(self) -> AssetEntry:
        return AssetEntry(
            asset=self.asset,
            decimals=self.decimals,
            target_proportion=bps_to_proportion(self.target_bps),
        )


class BasketConfig(BaseModel):
    """Basket identity, base currency and constituents."""

    basket_id: str
    base_currency: str
    base_decimals: int = Field(ge=0, le=36)
    share_decimals: int = Field(default=18, ge=0, le=36)
    custody_address: str
    assets: list[AssetConfig] = Field(min_length=1)

    @field_validator("assets")
    @classmethod
    def assets_unique(cls, v):
        names = [a.asset for a in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate basket assets: {duplicates}")
        return v

    @model_validator(mode="after")
    def targets_sum_to_one(self):
        total = sum(a.target_bps for a in self.assets)
        if total != BPS_DENOMINATOR:
            raise ValueError(f"asset target_bps must sum to {BPS_DENOMINATOR}, got {total}")
        return self

    def entries(self) -> list[AssetEntry]:
        return [a.to_entry() for a in self.assets]


class FeeConfig(BaseModel):
    fee_bps: int = Field(default=0, ge=0, le=BPS_DENOMINATOR)
    fee_period_seconds: int = Field(default=30 * 24 * 60 * 60, gt=0)
    fee_recipient: str = ""

    def initial_state(self, started_at: int = 0) -> FeeState:
        return FeeState(
            fee_bps=self.fee_bps,
            fee_period_seconds=self.fee_period_seconds,
            last_fee_withdrawal=started_at,
        )


class ExecutionConfig(BaseModel):
    slippage_bps: int = Field(default=50, ge=0, lt=BPS_DENOMINATOR)
    deadline_seconds: int = Field(default=300, gt=0)
    max_attempts: int = Field(default=3, ge=1, le=10)


class RouteConfig(BaseModel):
    asset_in: str
    asset_out: str
    path: list[str] = Field(min_length=2)

    @model_validator(mode="after")
    def path_matches_pair(self):
        if self.path[0] != self.asset_in or self.path[-1] != self.asset_out:
            raise ValueError(f"path {self.path} must run from {self.asset_in} to {self.asset_out}")
        return self


class ProvidersConfig(BaseModel):
    prices: str = "static"
    router: str = "simulated"
    ledger: str = "memory"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    swap_log: str
    decision_log: str
    app_log: str
    max_bytes: int = 10485760
    backup_count: int = 5


class AppConfig(BaseModel):
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    basket: BasketConfig
    fees: FeeConfig = Field(default_factory=FeeConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    routes: list[RouteConfig] = Field(default_factory=list)
    static_prices: Optional[dict[str, int]] = None
    logging: LoggingConfig


class Secrets(BaseSettings):
    """Loaded from .env file automatically."""

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def load_config(config_path: Path = Path("config/settings.yaml")) -> AppConfig:
    """Load and validate application configuration from YAML."""
    with open(config_path) as f:
        raw = yaml.safe_load(f)

    return AppConfig(**raw)
