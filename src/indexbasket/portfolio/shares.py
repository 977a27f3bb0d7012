"""Share pricing - index shares minted for deposits and assets paid out on burns."""

from dataclasses import dataclass

import structlog

from indexbasket.errors import DegenerateValuation, InsufficientShares
from indexbasket.models import USD_DECIMALS
from indexbasket.rebalancing.snapshot import BasketSnapshot

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Payout:
    """Amount of one basket asset owed to a redeeming holder."""

    asset: str
    amount: int


class SharePricer:
    """Converts between USD value and index shares at a fixed share precision."""

    def __init__(self, share_decimals: int = 18):
        self._share_scale = 10**share_decimals

    @property
    def share_scale(self) -> int:
        return self._share_scale

    def price_per_share(self, snapshot: BasketSnapshot) -> int:
        """Basket USD value per whole share, in 18-decimal USD.

        Raises:
            DegenerateValuation: If supply is outstanding but the basket has no value
        """
        if snapshot.total_shares == 0:
            return 10**USD_DECIMALS
        total = snapshot.valuation().total
        price = total * self._share_scale // snapshot.total_shares
        if price == 0:
            raise DegenerateValuation(
                f"Basket value {total} is too small to price {snapshot.total_shares} shares"
            )
        return price

    def mint_amount(self, snapshot: BasketSnapshot, usd_value: int) -> int:
        """Shares to mint for ``usd_value`` (18-decimal USD) deposited.

        The first deposit into an empty basket sets the price at one share per
        USD; later deposits are priced against the pre-deposit basket value.
        """
        if usd_value < 0:
            raise ValueError(f"USD value must be non-negative, got {usd_value}")
        if snapshot.total_shares == 0:
            minted = usd_value * self._share_scale // 10**USD_DECIMALS
        else:
            minted = usd_value * self._share_scale // self.price_per_share(snapshot)

        logger.debug(
            "shares.mint_computed",
            usd_value=usd_value,
            total_shares=snapshot.total_shares,
            minted=minted,
        )
        return minted

    def redemption_fraction(self, share_amount: int, total_shares: int) -> int:
        """Fraction of the basket (scaled by share scale) that ``share_amount`` redeems."""
        if share_amount < 0:
            raise ValueError(f"Share amount must be non-negative, got {share_amount}")
        if share_amount > total_shares:
            raise InsufficientShares(
                f"Cannot redeem {share_amount} shares, only {total_shares} outstanding"
            )
        if total_shares == 0:
            return 0
        return share_amount * self._share_scale // total_shares

    def burn_payouts(self, snapshot: BasketSnapshot, share_amount: int) -> list[Payout]:
        """Per-asset payouts for burning ``share_amount`` shares.

        The fraction is taken once from the pre-burn supply in ``snapshot``.
        Zero payouts are omitted.
        """
        fraction = self.redemption_fraction(share_amount, snapshot.total_shares)
        payouts = []
        for entry, balance in zip(snapshot.assets, snapshot.balances):
            amount = fraction * balance // self._share_scale
            if amount > 0:
                payouts.append(Payout(asset=entry.asset, amount=amount))

        logger.debug(
            "shares.burn_computed",
            share_amount=share_amount,
            total_shares=snapshot.total_shares,
            fraction=fraction,
            payouts=len(payouts),
        )
        return payouts
