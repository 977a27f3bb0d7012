"""Point-in-time basket snapshot - the single input of every planning call."""

from dataclasses import dataclass

import structlog

from indexbasket.errors import PriceUnavailable
from indexbasket.models import AssetEntry, PriceQuote
from indexbasket.rebalancing.valuation import Valuation, value_holdings
from indexbasket.trading.base import BasketLedger, PriceSource

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BasketSnapshot:
    """Balances, prices and share supply read once for one request.

    Planning functions take a snapshot and nothing else, so a plan can never
    mix prices or balances observed at different times.
    """

    assets: tuple[AssetEntry, ...]
    balances: tuple[int, ...]
    quotes: tuple[PriceQuote, ...]
    total_shares: int
    base_asset: str
    base_decimals: int
    base_quote: PriceQuote

    def __post_init__(self):
        if not len(self.assets) == len(self.balances) == len(self.quotes):
            raise ValueError("Snapshot assets, balances and quotes must be parallel")

    def valuation(self) -> Valuation:
        return value_holdings(self.assets, self.balances, self.quotes)

    @property
    def targets(self) -> tuple[int, ...]:
        return tuple(entry.target_proportion for entry in self.assets)

    def index_of(self, asset: str) -> int | None:
        for index, entry in enumerate(self.assets):
            if entry.asset == asset:
                return index
        return None

    def quote_for(self, asset: str) -> PriceQuote:
        if asset == self.base_asset:
            return self.base_quote
        index = self.index_of(asset)
        if index is None:
            raise KeyError(f"{asset} is not part of this snapshot")
        return self.quotes[index]

    def decimals_for(self, asset: str) -> int:
        if asset == self.base_asset:
            return self.base_decimals
        index = self.index_of(asset)
        if index is None:
            raise KeyError(f"{asset} is not part of this snapshot")
        return self.assets[index].decimals


def _read_quote(prices: PriceSource, asset: str) -> PriceQuote:
    quote = prices.get_price(asset)
    if quote.price < 0:
        raise PriceUnavailable(f"Negative price {quote.price} for {asset}")
    return quote


def take_snapshot(
    ledger: BasketLedger,
    prices: PriceSource,
    base_asset: str,
    base_decimals: int,
) -> BasketSnapshot:
    """Read asset list, balances, supply and prices exactly once."""
    assets = tuple(ledger.asset_list())
    balances = tuple(ledger.balance_of(entry.asset) for entry in assets)
    quotes = tuple(_read_quote(prices, entry.asset) for entry in assets)

    base_quote = None
    for entry, quote in zip(assets, quotes):
        if entry.asset == base_asset:
            base_quote = quote
            break
    if base_quote is None:
        base_quote = _read_quote(prices, base_asset)

    snapshot = BasketSnapshot(
        assets=assets,
        balances=balances,
        quotes=quotes,
        total_shares=ledger.total_shares(),
        base_asset=base_asset,
        base_decimals=base_decimals,
        base_quote=base_quote,
    )

    logger.debug(
        "snapshot.taken",
        assets=len(assets),
        total_shares=snapshot.total_shares,
        base_asset=base_asset,
    )

    return snapshot
