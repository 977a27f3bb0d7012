"""Shared test fixtures."""

import pytest

from indexbasket.config import AppConfig
from indexbasket.models import AssetEntry, PriceQuote, bps_to_proportion
from indexbasket.rebalancing.snapshot import BasketSnapshot

ONE_USD = 10**8  # $1.00 at the 8-decimal oracle scale
USDC = 10**6
TOKEN = 10**18


def quote(asset: str, price: int = ONE_USD, decimals: int = 8) -> PriceQuote:
    return PriceQuote(asset=asset, price=price, decimals=decimals)


@pytest.fixture
def make_snapshot():
    """Build a snapshot of 18-decimal assets priced at $1 unless told otherwise.

    ``assets`` is a list of (name, target_bps, balance) or
    (name, target_bps, balance, decimals, price) tuples.
    """

    def _make(assets, total_shares=0, base_price=ONE_USD, base_asset="USDC", base_decimals=6):
        entries, balances, quotes = [], [], []
        for row in assets:
            name, bps, balance = row[:3]
            decimals = row[3] if len(row) > 3 else 18
            price = row[4] if len(row) > 4 else ONE_USD
            entries.append(AssetEntry(asset=name, decimals=decimals, target_proportion=bps_to_proportion(bps)))
            balances.append(balance)
            quotes.append(quote(name, price))
        return BasketSnapshot(
            assets=tuple(entries),
            balances=tuple(balances),
            quotes=tuple(quotes),
            total_shares=total_shares,
            base_asset=base_asset,
            base_decimals=base_decimals,
            base_quote=quote(base_asset, base_price),
        )

    return _make


@pytest.fixture
def test_config() -> AppConfig:
    """Provide a three-asset basket configuration with simulated collaborators."""
    return AppConfig(
        providers={"prices": "static", "router": "simulated", "ledger": "memory"},
        basket={
            "basket_id": "test-basket",
            "base_currency": "USDC",
            "base_decimals": 6,
            "custody_address": "0xbasket",
            "assets": [
                {"asset": "WETH", "decimals": 18, "target_bps": 5000},
                {"asset": "WBTC", "decimals": 8, "target_bps": 3000},
                {"asset": "LINK", "decimals": 18, "target_bps": 2000},
            ],
        },
        fees={
            "fee_bps": 100,
            "fee_period_seconds": 30 * 86400,
            "fee_recipient": "0xfees",
        },
        execution={"slippage_bps": 50, "deadline_seconds": 300, "max_attempts": 2},
        routes=[
            {"asset_in": "USDC", "asset_out": "WETH", "path": ["USDC", "WETH"]},
            {"asset_in": "USDC", "asset_out": "WBTC", "path": ["USDC", "WETH", "WBTC"]},
            {"asset_in": "USDC", "asset_out": "LINK", "path": ["USDC", "LINK"]},
            {"asset_in": "WETH", "asset_out": "USDC", "path": ["WETH", "USDC"]},
            {"asset_in": "WBTC", "asset_out": "USDC", "path": ["WBTC", "WETH", "USDC"]},
            {"asset_in": "LINK", "asset_out": "USDC", "path": ["LINK", "USDC"]},
        ],
        static_prices={
            "USDC": 100_000_000,
            "WETH": 300_000_000_000,
            "WBTC": 6_000_000_000_000,
            "LINK": 1_500_000_000,
        },
        logging={
            "level": "DEBUG",
            "swap_log": "/tmp/test_swaps.log",
            "decision_log": "/tmp/test_decisions.log",
            "app_log": "/tmp/test_indexbasket.log",
        },
    )
