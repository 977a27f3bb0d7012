"""Valuation model - convert holdings into USD values and current proportions."""

from dataclasses import dataclass
from typing import Sequence

from indexbasket.errors import DegenerateValuation
from indexbasket.models import PROPORTION_SCALE, USD_DECIMALS, AssetEntry, PriceQuote


def usd_value(amount: int, decimals: int, quote: PriceQuote) -> int:
    """Value of ``amount`` token units in 18-decimal USD, rounded down."""
    return amount * quote.price * 10**USD_DECIMALS // 10 ** (decimals + quote.decimals)


def token_amount(usd: int, decimals: int, quote: PriceQuote) -> int:
    """Token units worth ``usd`` (18-decimal USD), rounded down.

    Raises:
        DegenerateValuation: If the quote price is not positive.
    """
    if quote.price <= 0:
        raise DegenerateValuation(f"Cannot convert USD into {quote.asset}: price is {quote.price}")
    return usd * 10 ** (decimals + quote.decimals) // (quote.price * 10**USD_DECIMALS)


@dataclass(frozen=True)
class Valuation:
    """USD values of every basket asset, in asset-list order."""

    values: tuple[int, ...]
    total: int
    proportions: tuple[int, ...]

    @property
    def is_empty(self) -> bool:
        return self.total == 0


def current_proportions(values: Sequence[int], total: int) -> tuple[int, ...]:
    """Each value as a 1e18-scaled fraction of ``total``; all zero when total is 0."""
    if total == 0:
        return tuple(0 for _ in values)
    return tuple(value * PROPORTION_SCALE // total for value in values)


def value_holdings(
    assets: Sequence[AssetEntry],
    balances: Sequence[int],
    quotes: Sequence[PriceQuote],
) -> Valuation:
    """Value a single consistent balance/price snapshot.

    Args:
        assets: Basket constituents in basket order
        balances: Held amount of each asset, same order
        quotes: Price quote of each asset, same order

    Returns:
        Valuation with per-asset values, their total and current proportions
    """
    if not len(assets) == len(balances) == len(quotes):
        raise ValueError(
            f"Snapshot is inconsistent: {len(assets)} assets, "
            f"{len(balances)} balances, {len(quotes)} quotes"
        )

    values = tuple(
        usd_value(balance, entry.decimals, quote)
        for entry, balance, quote in zip(assets, balances, quotes)
    )
    total = sum(values)
    return Valuation(values=values, total=total, proportions=current_proportions(values, total))
