"""Basket composition - the ordered asset list and its admin mutations."""

from dataclasses import dataclass

import structlog

from indexbasket.errors import CapabilityError, DuplicateAsset, InvalidIndex, InvalidProportion
from indexbasket.models import (
    BPS_DENOMINATOR,
    PROPORTION_SCALE,
    AssetEntry,
    bps_to_proportion,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AdminCapability:
    """Proof, issued by an external authorization check, that the holder may
    administer one basket. The engine only checks which basket it is for."""

    basket_id: str
    granted_to: str = ""


class Basket:
    """Ordered basket constituents. Order is insertion order and is stable
    across removals, since planners refer to assets by index."""

    def __init__(self, basket_id: str, assets: list[AssetEntry] | None = None):
        self._basket_id = basket_id
        self._assets: list[AssetEntry] = []
        for entry in assets or []:
            self._append(entry)

    @property
    def basket_id(self) -> str:
        return self._basket_id

    @property
    def assets(self) -> list[AssetEntry]:
        return list(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset: str) -> bool:
        return any(entry.asset == asset for entry in self._assets)

    @property
    def total_target(self) -> int:
        return sum(entry.target_proportion for entry in self._assets)

    def is_fully_allocated(self) -> bool:
        """True when target proportions sum to exactly 100%."""
        return self.total_target == PROPORTION_SCALE

    def _check(self, capability: AdminCapability) -> None:
        if capability.basket_id != self._basket_id:
            raise CapabilityError(
                f"Capability for basket '{capability.basket_id}' cannot modify '{self._basket_id}'"
            )

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._assets):
            raise InvalidIndex(f"Index {index} out of range for {len(self._assets)} assets")

    @staticmethod
    def _check_proportion(proportion: int) -> None:
        if proportion <= 0 or proportion > PROPORTION_SCALE:
            raise InvalidProportion(f"Target proportion must be in (0, 1e18], got {proportion}")

    def _append(self, entry: AssetEntry) -> None:
        if entry.asset in self:
            raise DuplicateAsset(f"{entry.asset} is already in basket '{self._basket_id}'")
        self._check_proportion(entry.target_proportion)
        self._assets.append(entry)

    def add_asset(self, capability: AdminCapability, asset: str, decimals: int, target_proportion: int) -> AssetEntry:
        """Append a new constituent at the end of the asset list."""
        self._check(capability)
        self._check_proportion(target_proportion)
        entry = AssetEntry(asset=asset, decimals=decimals, target_proportion=target_proportion)
        self._append(entry)

        logger.info(
            "basket.asset_added",
            basket_id=self._basket_id,
            asset=asset,
            index=len(self._assets) - 1,
            target_proportion=target_proportion,
        )
        return entry

    def remove_asset(self, capability: AdminCapability, index: int) -> AssetEntry:
        """Remove the asset at ``index``; later assets shift left one place."""
        self._check(capability)
        self._check_index(index)
        removed = self._assets.pop(index)

        logger.info(
            "basket.asset_removed",
            basket_id=self._basket_id,
            asset=removed.asset,
            index=index,
            remaining=len(self._assets),
        )
        return removed

    def set_target(self, capability: AdminCapability, index: int, target_proportion: int) -> AssetEntry:
        """Change one asset's target proportion in place."""
        self._check(capability)
        self._check_index(index)
        self._check_proportion(target_proportion)
        updated = self._assets[index].model_copy(update={"target_proportion": target_proportion})
        self._assets[index] = updated

        logger.info(
            "basket.target_updated",
            basket_id=self._basket_id,
            asset=updated.asset,
            index=index,
            target_proportion=target_proportion,
        )
        return updated

    def set_targets_bps(self, capability: AdminCapability, targets_bps: list[int]) -> None:
        """Replace every target at once from basis points; they must total 100%."""
        self._check(capability)
        if len(targets_bps) != len(self._assets):
            raise InvalidIndex(f"Got {len(targets_bps)} targets for {len(self._assets)} assets")
        if sum(targets_bps) != BPS_DENOMINATOR:
            raise InvalidProportion(f"Targets must sum to {BPS_DENOMINATOR} bps, got {sum(targets_bps)}")
        proportions = [bps_to_proportion(bps) for bps in targets_bps]
        for proportion in proportions:
            self._check_proportion(proportion)

        self._assets = [
            entry.model_copy(update={"target_proportion": proportion})
            for entry, proportion in zip(self._assets, proportions)
        ]

        logger.info(
            "basket.targets_replaced",
            basket_id=self._basket_id,
            targets_bps=targets_bps,
        )
