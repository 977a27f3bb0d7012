"""Rebalancing module for proportion tracking and swap planning."""

from indexbasket.rebalancing.imbalance import DeltaKind, Imbalance, ImbalanceDelta, classify
from indexbasket.rebalancing.planner import (
    PlanPath,
    SwapInstruction,
    SwapPlan,
    plan_deposit,
    plan_withdraw,
    split_by_weights,
)
from indexbasket.rebalancing.snapshot import BasketSnapshot, take_snapshot
from indexbasket.rebalancing.valuation import Valuation, value_holdings

__all__ = [
    "BasketSnapshot",
    "DeltaKind",
    "Imbalance",
    "ImbalanceDelta",
    "PlanPath",
    "SwapInstruction",
    "SwapPlan",
    "Valuation",
    "classify",
    "plan_deposit",
    "plan_withdraw",
    "split_by_weights",
    "take_snapshot",
    "value_holdings",
]
