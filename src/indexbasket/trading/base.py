"""Abstract interfaces for the collaborators the basket engine drives."""

from abc import ABC, abstractmethod

from indexbasket.models import AssetEntry, PriceQuote


class PriceSource(ABC):
    """Interface for USD price feeds."""

    @abstractmethod
    def get_price(self, asset: str) -> PriceQuote:
        """Get a fresh quote. Raises PriceUnavailable when none is usable."""
        ...


class BasketLedger(ABC):
    """Interface for token custody and index share accounting."""

    @abstractmethod
    def asset_list(self) -> list[AssetEntry]:
        """Get basket constituents in basket order."""
        ...

    @abstractmethod
    def balance_of(self, asset: str) -> int:
        """Get the basket's balance of an asset in token units."""
        ...

    @abstractmethod
    def total_shares(self) -> int:
        """Get outstanding index shares."""
        ...

    @abstractmethod
    def mint_shares(self, to: str, amount: int) -> None:
        """Mint index shares to a holder."""
        ...

    @abstractmethod
    def burn_shares(self, holder: str, amount: int) -> None:
        """Burn index shares from a holder."""
        ...

    @abstractmethod
    def transfer_in(self, asset: str, sender: str, amount: int) -> None:
        """Pull tokens from a depositor into basket custody."""
        ...

    @abstractmethod
    def transfer(self, asset: str, to: str, amount: int) -> None:
        """Move tokens out of basket custody."""
        ...


class SwapRouter(ABC):
    """Interface for exchange swap execution."""

    @abstractmethod
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
        """Execute a swap along ``route``. Returns the amount received."""
        ...


class FeeSink(ABC):
    """Interface for the recipient of management fees."""

    @abstractmethod
    def receive(self, asset: str, amount: int) -> None:
        """Accept a fee transfer."""
        ...
