"""Swap planning - turn a deposit or withdrawal into per-asset swap instructions."""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import structlog

from indexbasket.errors import DegenerateValuation, InsufficientShares, InvalidProportion
from indexbasket.models import PROPORTION_SCALE
from indexbasket.rebalancing.imbalance import classify
from indexbasket.rebalancing.snapshot import BasketSnapshot
from indexbasket.rebalancing.valuation import token_amount, usd_value

logger = structlog.get_logger(__name__)


class PlanPath(str, Enum):
    BOOTSTRAP = "bootstrap"
    IMBALANCE_ONLY = "imbalance_only"
    IMBALANCE_THEN_TARGETS = "imbalance_then_targets"
    LIQUIDATION = "liquidation"


@dataclass(frozen=True)
class SwapInstruction:
    """A single swap to execute. Same in and out asset means a plain transfer."""

    asset_in: str
    asset_out: str
    amount_in: int

    @property
    def is_transfer(self) -> bool:
        return self.asset_in == self.asset_out


@dataclass(frozen=True)
class SwapPlan:
    """Ordered instructions for one request plus how they were derived."""

    instructions: tuple[SwapInstruction, ...]
    path: PlanPath | None
    usd_amount: int

    def __iter__(self):
        return iter(self.instructions)

    def __len__(self) -> int:
        return len(self.instructions)

    @property
    def total_in(self) -> int:
        return sum(i.amount_in for i in self.instructions)


def split_by_weights(amount: int, weights: Sequence[int], denominator: int) -> list[int]:
    """Split ``amount`` by ``weight / denominator``; the last slot takes the remainder.

    The returned parts always sum to ``amount`` exactly.
    """
    if not weights:
        return []
    parts = [amount * weight // denominator for weight in weights[:-1]]
    parts.append(amount - sum(parts))
    return parts


def _require_full_allocation(snapshot: BasketSnapshot) -> None:
    total = sum(snapshot.targets)
    if total != PROPORTION_SCALE:
        raise InvalidProportion(f"Target proportions sum to {total}, expected {PROPORTION_SCALE}")


def _allocate_to_imbalance(
    amount: int,
    indices: Sequence[int],
    magnitudes: Sequence[int],
    total_magnitude: int,
    slots: list[int],
) -> None:
    """Spread ``amount`` across ``indices`` pro rata to their magnitudes.

    Allocation walks the indices in order and never exceeds what is left of
    ``amount``; the last index gets the unassigned remainder.
    """
    remaining = amount
    last = len(indices) - 1
    for position, (index, magnitude) in enumerate(zip(indices, magnitudes)):
        if position == last:
            share = remaining
        else:
            share = min(amount * magnitude // total_magnitude, remaining)
        slots[index] += share
        remaining -= share
        if remaining == 0:
            break


def plan_deposit(snapshot: BasketSnapshot, amount: int) -> SwapPlan:
    """Plan how a deposit of ``amount`` base-currency units is deployed.

    Args:
        snapshot: Basket state read once for this request
        amount: Deposit in base-currency token units

    Returns:
        SwapPlan whose instructions spend exactly ``amount`` of the base currency

    Raises:
        DegenerateValuation: Base price is zero, the deposit has no USD value,
            or the basket has supply but no value
        InvalidProportion: Target proportions do not sum to 100%
    """
    if amount < 0:
        raise ValueError(f"Deposit amount must be non-negative, got {amount}")
    if not snapshot.assets:
        raise ValueError("Cannot plan a deposit into a basket with no assets")
    if amount == 0:
        return SwapPlan(instructions=(), path=None, usd_amount=0)
    if snapshot.base_quote.price <= 0:
        raise DegenerateValuation(f"Base currency {snapshot.base_asset} has no positive price")

    budget_usd = usd_value(amount, snapshot.base_decimals, snapshot.base_quote)
    if budget_usd == 0:
        raise DegenerateValuation(f"Deposit of {amount} {snapshot.base_asset} has no USD value")
    _require_full_allocation(snapshot)

    if snapshot.total_shares == 0:
        slots = split_by_weights(amount, snapshot.targets, PROPORTION_SCALE)
        path = PlanPath.BOOTSTRAP
    else:
        valuation = snapshot.valuation()
        if valuation.is_empty:
            raise DegenerateValuation(
                f"Basket has {snapshot.total_shares} shares outstanding but zero value"
            )

        imbalance = classify(valuation.proportions, snapshot.targets, valuation.total)
        total_deficit = imbalance.total_deficit
        slots = [0] * len(snapshot.assets)

        if total_deficit > 0 and total_deficit >= budget_usd:
            _allocate_to_imbalance(
                amount,
                imbalance.deficit_indices,
                imbalance.deficit_amounts,
                total_deficit,
                slots,
            )
            path = PlanPath.IMBALANCE_ONLY
        else:
            # Close every deficit exactly, then spread what is left by target weight
            assigned = 0
            for index, deficit in zip(imbalance.deficit_indices, imbalance.deficit_amounts):
                part = amount * deficit // budget_usd
                slots[index] += part
                assigned += part
            for index, part in enumerate(
                split_by_weights(amount - assigned, snapshot.targets, PROPORTION_SCALE)
            ):
                slots[index] += part
            path = PlanPath.IMBALANCE_THEN_TARGETS

    instructions = tuple(
        SwapInstruction(asset_in=snapshot.base_asset, asset_out=entry.asset, amount_in=slot)
        for entry, slot in zip(snapshot.assets, slots)
        if slot > 0
    )

    logger.debug(
        "planner.deposit_planned",
        path=path.value,
        amount=amount,
        usd_amount=budget_usd,
        instructions=len(instructions),
    )

    return SwapPlan(instructions=instructions, path=path, usd_amount=budget_usd)


def plan_withdraw(snapshot: BasketSnapshot, share_amount: int) -> SwapPlan:
    """Plan which assets are sold into the base currency to redeem shares.

    The redeemed USD claim is computed from the pre-burn supply. When the
    redemption retires every outstanding share, each asset's full balance is
    emitted instead.

    Raises:
        InsufficientShares: More shares than are outstanding
        DegenerateValuation: Supply is outstanding but the basket has no value,
            or a selected asset has no positive price
        InvalidProportion: Target proportions do not sum to 100%
    """
    if share_amount < 0:
        raise ValueError(f"Share amount must be non-negative, got {share_amount}")
    if share_amount > snapshot.total_shares:
        raise InsufficientShares(
            f"Cannot redeem {share_amount} shares, only {snapshot.total_shares} outstanding"
        )
    if share_amount == 0:
        return SwapPlan(instructions=(), path=None, usd_amount=0)

    valuation = snapshot.valuation()

    if share_amount == snapshot.total_shares:
        instructions = tuple(
            SwapInstruction(asset_in=entry.asset, asset_out=snapshot.base_asset, amount_in=balance)
            for entry, balance in zip(snapshot.assets, snapshot.balances)
            if balance > 0
        )
        logger.info(
            "planner.liquidation_planned",
            share_amount=share_amount,
            instructions=len(instructions),
        )
        return SwapPlan(instructions=instructions, path=PlanPath.LIQUIDATION, usd_amount=valuation.total)

    if valuation.is_empty:
        raise DegenerateValuation(
            f"Basket has {snapshot.total_shares} shares outstanding but zero value"
        )

    _require_full_allocation(snapshot)

    claim_usd = valuation.total * share_amount // snapshot.total_shares
    imbalance = classify(valuation.proportions, snapshot.targets, valuation.total)
    total_surplus = imbalance.total_surplus
    usd_slots = [0] * len(snapshot.assets)

    if total_surplus > 0 and total_surplus >= claim_usd:
        _allocate_to_imbalance(
            claim_usd,
            imbalance.surplus_indices,
            imbalance.surplus_amounts,
            total_surplus,
            usd_slots,
        )
        path = PlanPath.IMBALANCE_ONLY
    else:
        for index, surplus in zip(imbalance.surplus_indices, imbalance.surplus_amounts):
            usd_slots[index] += surplus
        for index, part in enumerate(
            split_by_weights(claim_usd - total_surplus, snapshot.targets, PROPORTION_SCALE)
        ):
            usd_slots[index] += part
        path = PlanPath.IMBALANCE_THEN_TARGETS

    instructions = []
    for entry, balance, quote, usd in zip(
        snapshot.assets, snapshot.balances, snapshot.quotes, usd_slots
    ):
        if usd == 0:
            continue
        wanted = token_amount(usd, entry.decimals, quote)
        amount_in = min(wanted, balance)
        if amount_in < wanted:
            logger.warning(
                "planner.withdraw_clamped_to_balance",
                asset=entry.asset,
                wanted=wanted,
                balance=balance,
            )
        if amount_in > 0:
            instructions.append(
                SwapInstruction(asset_in=entry.asset, asset_out=snapshot.base_asset, amount_in=amount_in)
            )

    logger.debug(
        "planner.withdraw_planned",
        path=path.value,
        share_amount=share_amount,
        usd_amount=claim_usd,
        instructions=len(instructions),
    )

    return SwapPlan(instructions=tuple(instructions), path=path, usd_amount=claim_usd)
