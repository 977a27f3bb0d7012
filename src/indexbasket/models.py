"""Domain models for the index basket engine.

All amounts are integers in the smallest unit of their token. USD values are
carried at a fixed 18-decimal scale and proportions at a 1e18 scale.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

PROPORTION_SCALE = 10**18
USD_DECIMALS = 18
BPS_DENOMINATOR = 10_000
BPS_TO_PROPORTION = PROPORTION_SCALE // BPS_DENOMINATOR

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def bps_to_proportion(bps: int) -> int:
    """Convert basis points (1 = 0.01%) to a 1e18-scaled proportion."""
    return bps * BPS_TO_PROPORTION


class AssetEntry(BaseModel):
    """One constituent of the basket with its declared target proportion."""

    asset: str = Field(min_length=1)
    decimals: int = Field(ge=0, le=36)
    target_proportion: int = Field(gt=0, le=PROPORTION_SCALE)

    model_config = {"frozen": True}


class PriceQuote(BaseModel):
    """USD price per whole unit of an asset, scaled by 10**decimals."""

    asset: str
    price: int
    decimals: int = Field(default=8, ge=0, le=36)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}


class FeeState(BaseModel):
    """Management fee parameters and the last sweep timestamp (unix seconds)."""

    fee_bps: int = Field(default=0, ge=0, le=BPS_DENOMINATOR)
    fee_period_seconds: int = Field(gt=0)
    last_fee_withdrawal: int = Field(default=0, ge=0)

    model_config = {"frozen": True}


class ShareAccount(BaseModel):
    """Outstanding index shares and the fee state attached to them."""

    total_shares: int = Field(default=0, ge=0)
    fee_state: FeeState
