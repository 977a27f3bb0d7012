"""Swap routing table and execution of planned instructions."""

import time
from dataclasses import dataclass
from typing import Callable, Iterable

import structlog
from tenacity import Retrying, stop_after_attempt, wait_exponential

from indexbasket.errors import CapabilityError, NoRouteConfigured, SwapExecutionError
from indexbasket.logging_config import get_swap_logger
from indexbasket.models import BPS_DENOMINATOR, ZERO_ADDRESS
from indexbasket.portfolio.basket import AdminCapability
from indexbasket.rebalancing.planner import SwapInstruction
from indexbasket.rebalancing.snapshot import BasketSnapshot
from indexbasket.rebalancing.valuation import token_amount, usd_value
from indexbasket.trading.base import SwapRouter

logger = structlog.get_logger(__name__)


def _is_unset(asset: str) -> bool:
    return not asset or asset.lower() == ZERO_ADDRESS


class RoutingTable:
    """Admin-configured swap paths keyed by (asset_in, asset_out)."""

    def __init__(self, basket_id: str):
        self._basket_id = basket_id
        self._routes: dict[tuple[str, str], tuple[str, ...]] = {}

    def __len__(self) -> int:
        return len(self._routes)

    def _check(self, capability: AdminCapability) -> None:
        if capability.basket_id != self._basket_id:
            raise CapabilityError(
                f"Capability for basket '{capability.basket_id}' cannot modify routes of '{self._basket_id}'"
            )

    def set_route(self, capability: AdminCapability, asset_in: str, asset_out: str, path: Iterable[str]) -> None:
        """Register the hop sequence used to swap ``asset_in`` into ``asset_out``."""
        self._check(capability)
        path = tuple(path)
        if _is_unset(asset_in) or _is_unset(asset_out):
            raise ValueError("Routes cannot start or end at the zero address")
        if len(path) < 2 or path[0] != asset_in or path[-1] != asset_out:
            raise ValueError(f"Path {path} must run from {asset_in} to {asset_out}")
        self._routes[(asset_in, asset_out)] = path
        logger.info("router.route_set", asset_in=asset_in, asset_out=asset_out, hops=len(path) - 1)

    def remove_route(self, capability: AdminCapability, asset_in: str, asset_out: str) -> None:
        self._check(capability)
        if self._routes.pop((asset_in, asset_out), None) is None:
            raise NoRouteConfigured(asset_in, asset_out)
        logger.info("router.route_removed", asset_in=asset_in, asset_out=asset_out)

    def route_for(self, asset_in: str, asset_out: str) -> tuple[str, ...]:
        """Look up a path. Raises NoRouteConfigured for unknown or zero-address pairs."""
        if _is_unset(asset_in) or _is_unset(asset_out):
            raise NoRouteConfigured(asset_in, asset_out)
        try:
            return self._routes[(asset_in, asset_out)]
        except KeyError:
            raise NoRouteConfigured(asset_in, asset_out) from None


@dataclass(frozen=True)
class PreparedSwap:
    instruction: SwapInstruction
    route: tuple[str, ...]
    min_out: int


@dataclass(frozen=True)
class ExecutedSwap:
    instruction: SwapInstruction
    amount_out: int


class SwapExecutor:
    """Hands a fully planned instruction list to the swap router.

    Every instruction is validated and priced before the first one executes,
    so a missing route aborts the whole list.
    """

    def __init__(
        self,
        router: SwapRouter,
        routes: RoutingTable,
        *,
        slippage_bps: int = 50,
        deadline_seconds: int = 300,
        max_attempts: int = 3,
        wait=None,
        clock: Callable[[], float] = time.time,
    ):
        self._router = router
        self._routes = routes
        self._slippage_bps = slippage_bps
        self._deadline_seconds = deadline_seconds
        self._max_attempts = max_attempts
        self._wait = wait if wait is not None else wait_exponential(min=1, max=10)
        self._clock = clock
        self._swap_log = get_swap_logger()

    def prepare(self, instructions: Iterable[SwapInstruction], snapshot: BasketSnapshot) -> list[PreparedSwap]:
        """Resolve routes and minimum outputs for every non-empty instruction."""
        prepared = []
        for instruction in instructions:
            if instruction.amount_in == 0:
                continue
            if instruction.is_transfer:
                prepared.append(PreparedSwap(instruction=instruction, route=(), min_out=instruction.amount_in))
                continue

            route = self._routes.route_for(instruction.asset_in, instruction.asset_out)
            usd = usd_value(
                instruction.amount_in,
                snapshot.decimals_for(instruction.asset_in),
                snapshot.quote_for(instruction.asset_in),
            )
            expected = token_amount(
                usd,
                snapshot.decimals_for(instruction.asset_out),
                snapshot.quote_for(instruction.asset_out),
            )
            min_out = expected * (BPS_DENOMINATOR - self._slippage_bps) // BPS_DENOMINATOR
            prepared.append(PreparedSwap(instruction=instruction, route=route, min_out=min_out))
        return prepared

    def _swap(self, swap: PreparedSwap, recipient: str, deadline: int) -> int:
        instruction = swap.instruction
        for attempt in Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            reraise=True,
        ):
            with attempt:
                return self._router.swap(
                    instruction.asset_in,
                    instruction.asset_out,
                    instruction.amount_in,
                    swap.route,
                    recipient,
                    deadline,
                    swap.min_out,
                )

    def execute(
        self,
        instructions: Iterable[SwapInstruction],
        snapshot: BasketSnapshot,
        recipient: str,
    ) -> list[ExecutedSwap]:
        """Execute instructions in order, sending swap output to ``recipient``.

        Transfers (same in and out asset) need no market and leave the tokens
        where they are; their output equals their input.
        """
        prepared = self.prepare(instructions, snapshot)
        deadline = int(self._clock()) + self._deadline_seconds
        executed = []

        for swap in prepared:
            instruction = swap.instruction
            if instruction.is_transfer:
                amount_out = instruction.amount_in
            else:
                try:
                    amount_out = self._swap(swap, recipient, deadline)
                except Exception as e:
                    logger.error(
                        "executor.swap_failed",
                        asset_in=instruction.asset_in,
                        asset_out=instruction.asset_out,
                        amount_in=instruction.amount_in,
                        error=str(e),
                    )
                    raise SwapExecutionError(
                        f"Swap {instruction.asset_in} -> {instruction.asset_out} failed: {e}"
                    ) from e

            self._swap_log.info(
                "swap.executed",
                asset_in=instruction.asset_in,
                asset_out=instruction.asset_out,
                amount_in=instruction.amount_in,
                amount_out=amount_out,
                min_out=swap.min_out,
                transfer=instruction.is_transfer,
            )
            executed.append(ExecutedSwap(instruction=instruction, amount_out=amount_out))

        return executed
