"""Tests for domain models."""

import pytest
from pydantic import ValidationError

from indexbasket.models import (
    PROPORTION_SCALE,
    AssetEntry,
    FeeState,
    PriceQuote,
    ShareAccount,
    bps_to_proportion,
)


class TestBpsToProportion:
    def test_full_basket(self):
        assert bps_to_proportion(10_000) == PROPORTION_SCALE

    def test_one_basis_point(self):
        assert bps_to_proportion(1) == 10**14


class TestAssetEntry:
    def test_creation(self):
        entry = AssetEntry(asset="WETH", decimals=18, target_proportion=5 * 10**17)
        assert entry.asset == "WETH"
        assert entry.target_proportion == 5 * 10**17

    def test_target_bounds(self):
        with pytest.raises(ValidationError):
            AssetEntry(asset="WETH", decimals=18, target_proportion=0)
        with pytest.raises(ValidationError):
            AssetEntry(asset="WETH", decimals=18, target_proportion=PROPORTION_SCALE + 1)

    def test_empty_asset_rejected(self):
        with pytest.raises(ValidationError):
            AssetEntry(asset="", decimals=18, target_proportion=PROPORTION_SCALE)

    def test_frozen(self):
        entry = AssetEntry(asset="WETH", decimals=18, target_proportion=PROPORTION_SCALE)
        with pytest.raises(ValidationError):
            entry.decimals = 6


class TestPriceQuote:
    def test_defaults_to_eight_decimals(self):
        quote = PriceQuote(asset="WETH", price=300_000_000_000)
        assert quote.decimals == 8
        assert quote.fetched_at.tzinfo is not None


class TestShareAccount:
    def test_fee_period_must_be_positive(self):
        with pytest.raises(ValidationError):
            FeeState(fee_bps=10, fee_period_seconds=0)

    def test_creation(self):
        account = ShareAccount(total_shares=5, fee_state=FeeState(fee_bps=10, fee_period_seconds=60))
        assert account.total_shares == 5
        assert account.fee_state.last_fee_withdrawal == 0
