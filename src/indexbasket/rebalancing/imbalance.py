"""Imbalance classification - split basket assets into deficit and surplus sets."""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import structlog

from indexbasket.models import PROPORTION_SCALE

logger = structlog.get_logger(__name__)


class DeltaKind(str, Enum):
    DEFICIT = "deficit"
    SURPLUS = "surplus"
    BALANCED = "balanced"


@dataclass(frozen=True)
class ImbalanceDelta:
    """Distance of one asset from its target, as an unsigned USD magnitude."""

    kind: DeltaKind
    amount: int = 0

    @classmethod
    def deficit(cls, amount: int) -> "ImbalanceDelta":
        return cls(DeltaKind.DEFICIT, amount)

    @classmethod
    def surplus(cls, amount: int) -> "ImbalanceDelta":
        return cls(DeltaKind.SURPLUS, amount)

    @classmethod
    def balanced(cls) -> "ImbalanceDelta":
        return cls(DeltaKind.BALANCED, 0)

    @property
    def signed(self) -> int:
        """Negative below target, positive above it."""
        if self.kind is DeltaKind.DEFICIT:
            return -self.amount
        return self.amount


@dataclass(frozen=True)
class Imbalance:
    """Classification of every basket asset against its target proportion.

    Index lists refer to positions in the basket's asset list and are in
    ascending order. Amount lists are parallel to their index lists.
    """

    deltas: tuple[ImbalanceDelta, ...]
    deficit_indices: tuple[int, ...]
    deficit_amounts: tuple[int, ...]
    surplus_indices: tuple[int, ...]
    surplus_amounts: tuple[int, ...]

    @property
    def total_deficit(self) -> int:
        return sum(self.deficit_amounts)

    @property
    def total_surplus(self) -> int:
        return sum(self.surplus_amounts)


def classify(
    current: Sequence[int],
    targets: Sequence[int],
    total_value: int,
) -> Imbalance:
    """Classify each asset as deficit, surplus or balanced.

    Args:
        current: Current 1e18-scaled proportions in basket order
        targets: Target 1e18-scaled proportions in basket order
        total_value: Total basket value in 18-decimal USD

    Returns:
        Imbalance with USD magnitudes of |target - current| * total_value
    """
    if len(current) != len(targets):
        raise ValueError(f"Got {len(current)} current proportions for {len(targets)} targets")

    deltas: list[ImbalanceDelta] = []
    deficit_indices: list[int] = []
    deficit_amounts: list[int] = []
    surplus_indices: list[int] = []
    surplus_amounts: list[int] = []

    for index, (have, want) in enumerate(zip(current, targets)):
        if have == want:
            deltas.append(ImbalanceDelta.balanced())
            continue

        magnitude = abs(want - have) * total_value // PROPORTION_SCALE
        if have < want:
            deltas.append(ImbalanceDelta.deficit(magnitude))
            deficit_indices.append(index)
            deficit_amounts.append(magnitude)
        else:
            deltas.append(ImbalanceDelta.surplus(magnitude))
            surplus_indices.append(index)
            surplus_amounts.append(magnitude)

    imbalance = Imbalance(
        deltas=tuple(deltas),
        deficit_indices=tuple(deficit_indices),
        deficit_amounts=tuple(deficit_amounts),
        surplus_indices=tuple(surplus_indices),
        surplus_amounts=tuple(surplus_amounts),
    )

    logger.debug(
        "imbalance.classified",
        deficits=len(deficit_indices),
        surpluses=len(surplus_indices),
        total_deficit=imbalance.total_deficit,
        total_surplus=imbalance.total_surplus,
    )

    return imbalance
