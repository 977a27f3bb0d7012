"""In-memory collaborators for dry runs and tests."""

import time
from collections import defaultdict
from typing import Callable

import structlog

from indexbasket.errors import PriceUnavailable, SwapExecutionError
from indexbasket.models import BPS_DENOMINATOR, AssetEntry, PriceQuote
from indexbasket.portfolio.basket import Basket
from indexbasket.rebalancing.valuation import token_amount, usd_value
from indexbasket.trading.base import BasketLedger, FeeSink, PriceSource, SwapRouter

logger = structlog.get_logger(__name__)


class StaticPriceSource(PriceSource):
    """Serves fixed prices; every quote uses the same price scale."""

    def __init__(self, prices: dict[str, int] | None = None, decimals: int = 8):
        self._prices = dict(prices or {})
        self._decimals = decimals

    def set_price(self, asset: str, price: int) -> None:
        self._prices[asset] = price

    def get_price(self, asset: str) -> PriceQuote:
        price = self._prices.get(asset)
        if price is None or price <= 0:
            raise PriceUnavailable(f"No usable price for {asset}: {price}")
        return PriceQuote(asset=asset, price=price, decimals=self._decimals)


class InMemoryLedger(BasketLedger):
    """Holds basket custody balances and share balances in dictionaries."""

    def __init__(self, basket: Basket, custody_address: str):
        self._basket = basket
        self.custody_address = custody_address
        self._balances: dict[str, int] = defaultdict(int)
        self._shares: dict[str, int] = defaultdict(int)
        self.external: dict[tuple[str, str], int] = defaultdict(int)

    def asset_list(self) -> list[AssetEntry]:
        return self._basket.assets

    def balance_of(self, asset: str) -> int:
        return self._balances[asset]

    def total_shares(self) -> int:
        return sum(self._shares.values())

    def shares_of(self, holder: str) -> int:
        return self._shares[holder]

    def credit(self, asset: str, amount: int) -> None:
        """Tokens arriving into custody (deposits, swap output)."""
        self._balances[asset] += amount

    def debit(self, asset: str, amount: int) -> None:
        if amount > self._balances[asset]:
            raise SwapExecutionError(
                f"Custody holds {self._balances[asset]} {asset}, cannot release {amount}"
            )
        self._balances[asset] -= amount

    def mint_shares(self, to: str, amount: int) -> None:
        self._shares[to] += amount

    def burn_shares(self, holder: str, amount: int) -> None:
        if amount > self._shares[holder]:
            raise SwapExecutionError(f"{holder} holds {self._shares[holder]} shares, cannot burn {amount}")
        self._shares[holder] -= amount

    def transfer_in(self, asset: str, sender: str, amount: int) -> None:
        self.credit(asset, amount)

    def transfer(self, asset: str, to: str, amount: int) -> None:
        self.debit(asset, amount)
        self.external[(to, asset)] += amount


class CollectingFeeSink(FeeSink):
    """Accumulates received fees per asset."""

    def __init__(self):
        self.received: dict[str, int] = defaultdict(int)

    def receive(self, asset: str, amount: int) -> None:
        self.received[asset] += amount


class SimulatedRouter(SwapRouter):
    """Fills swaps at oracle prices less a flat pool fee, against an InMemoryLedger."""

    def __init__(
        self,
        ledger: InMemoryLedger,
        prices: PriceSource,
        base_asset: str,
        base_decimals: int,
        pool_fee_bps: int = 30,
        clock: Callable[[], float] = time.time,
    ):
        self._ledger = ledger
        self._prices = prices
        self._base_asset = base_asset
        self._base_decimals = base_decimals
        self._pool_fee_bps = pool_fee_bps
        self._clock = clock

    def _decimals_for(self, asset: str) -> int:
        if asset == self._base_asset:
            return self._base_decimals
        for entry in self._ledger.asset_list():
            if entry.asset == asset:
                return entry.decimals
        raise SwapExecutionError(f"{asset} is neither the base currency nor a basket asset")

    def swap(
        self,
        asset_in: str,
        asset_out: str,
        amount_in: int,
        route: tuple[str, ...],
        recipient: str,
        deadline: int,
        min_out: int,
    ) -> int:
        if self._clock() > deadline:
            raise SwapExecutionError(f"Deadline {deadline} passed")

        usd = usd_value(amount_in, self._decimals_for(asset_in), self._prices.get_price(asset_in))
        amount_out = token_amount(usd, self._decimals_for(asset_out), self._prices.get_price(asset_out))
        amount_out = amount_out * (BPS_DENOMINATOR - self._pool_fee_bps) // BPS_DENOMINATOR
        if amount_out < min_out:
            raise SwapExecutionError(f"Output {amount_out} {asset_out} below minimum {min_out}")

        self._ledger.debit(asset_in, amount_in)
        if recipient == self._ledger.custody_address:
            self._ledger.credit(asset_out, amount_out)
        else:
            self._ledger.external[(recipient, asset_out)] += amount_out

        logger.debug(
            "simulated_router.filled",
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=amount_in,
            amount_out=amount_out,
            hops=len(route) - 1,
        )
        return amount_out
