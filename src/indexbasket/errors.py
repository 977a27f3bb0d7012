"""Exception types raised by the basket engine and its collaborators."""


class BasketError(Exception):
    """Base class for all basket engine failures."""


class DegenerateValuation(BasketError):
    """Raised when a zero price or zero total value would be used as a divisor."""


class NoRouteConfigured(BasketError):
    """Raised when a swap is requested for a pair with no registered route."""

    def __init__(self, asset_in: str, asset_out: str):
        self.asset_in = asset_in
        self.asset_out = asset_out
        super().__init__(f"No route configured for {asset_in} -> {asset_out}")


class FeePeriodNotElapsed(BasketError):
    """Raised when fees are withdrawn before one full fee period has passed."""


class InvalidIndex(BasketError):
    """Raised when a basket mutation references an index out of range."""


class InvalidProportion(BasketError):
    """Raised when a target proportion is non-positive or out of range."""


class DuplicateAsset(BasketError):
    """Raised when an asset is added to a basket that already holds it."""


class CapabilityError(BasketError):
    """Raised when a mutation is attempted without a matching admin capability."""


class InsufficientShares(BasketError):
    """Raised when more shares are redeemed than are outstanding."""


class PriceUnavailable(BasketError):
    """Raised when a price source cannot produce a usable quote."""


class SwapExecutionError(BasketError):
    """Raised when the router or ledger rejects an instruction."""
