"""Management fee accrual, swept from basket balances once per elapsed period."""

from dataclasses import dataclass

import structlog

from indexbasket.errors import FeePeriodNotElapsed
from indexbasket.models import BPS_DENOMINATOR, FeeState
from indexbasket.rebalancing.snapshot import BasketSnapshot

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FeeCharge:
    asset: str
    amount: int


@dataclass(frozen=True)
class FeeAccrual:
    """Fees owed at a point in time and the fee state to commit once paid."""

    charges: tuple[FeeCharge, ...]
    periods: int
    next_state: FeeState


def elapsed_periods(state: FeeState, now: int) -> int:
    """Whole fee periods since the last withdrawal."""
    if now <= state.last_fee_withdrawal:
        return 0
    return (now - state.last_fee_withdrawal) // state.fee_period_seconds


def accrue_fees(state: FeeState, snapshot: BasketSnapshot, now: int) -> FeeAccrual:
    """Compute the fee owed on every asset for the periods elapsed by ``now``.

    Each asset is charged ``balance * fee_bps * periods / 10_000``, capped at
    its balance. The returned state advances the timestamp by whole periods
    only, so a partial period keeps accruing.

    Raises:
        FeePeriodNotElapsed: If less than one full period has passed
    """
    periods = elapsed_periods(state, now)
    if periods < 1:
        raise FeePeriodNotElapsed(
            f"Only {max(now - state.last_fee_withdrawal, 0)}s of a "
            f"{state.fee_period_seconds}s fee period have elapsed"
        )

    charges = []
    for entry, balance in zip(snapshot.assets, snapshot.balances):
        fee = min(balance * state.fee_bps * periods // BPS_DENOMINATOR, balance)
        if fee > 0:
            charges.append(FeeCharge(asset=entry.asset, amount=fee))

    next_state = state.model_copy(
        update={"last_fee_withdrawal": state.last_fee_withdrawal + periods * state.fee_period_seconds}
    )

    logger.info(
        "fees.accrued",
        periods=periods,
        fee_bps=state.fee_bps,
        charges=len(charges),
        next_withdrawal_base=next_state.last_fee_withdrawal,
    )

    return FeeAccrual(charges=tuple(charges), periods=periods, next_state=next_state)
