"""Tests for the routing table and swap executor."""

from unittest.mock import MagicMock

import pytest
from tenacity import wait_none

from conftest import TOKEN, USDC
from indexbasket.errors import CapabilityError, NoRouteConfigured, SwapExecutionError
from indexbasket.models import ZERO_ADDRESS
from indexbasket.portfolio.basket import AdminCapability
from indexbasket.rebalancing.planner import SwapInstruction
from indexbasket.trading.router import RoutingTable, SwapExecutor


@pytest.fixture
def admin():
    return AdminCapability(basket_id="b1")


@pytest.fixture
def routes(admin):
    table = RoutingTable("b1")
    table.set_route(admin, "USDC", "A", ["USDC", "A"])
    table.set_route(admin, "USDC", "B", ["USDC", "A", "B"])
    return table


class TestRoutingTable:
    def test_route_lookup(self, routes):
        assert routes.route_for("USDC", "B") == ("USDC", "A", "B")

    def test_missing_pair_raises(self, routes):
        with pytest.raises(NoRouteConfigured) as exc_info:
            routes.route_for("B", "USDC")
        assert exc_info.value.asset_in == "B"

    def test_zero_address_pair_raises(self, routes):
        with pytest.raises(NoRouteConfigured):
            routes.route_for(ZERO_ADDRESS, ZERO_ADDRESS)
        with pytest.raises(NoRouteConfigured):
            routes.route_for("", "A")

    def test_path_must_match_pair(self, routes, admin):
        with pytest.raises(ValueError):
            routes.set_route(admin, "USDC", "C", ["USDC", "A"])
        with pytest.raises(ValueError):
            routes.set_route(admin, "USDC", "C", ["USDC"])

    def test_remove_route(self, routes, admin):
        routes.remove_route(admin, "USDC", "A")
        assert len(routes) == 1
        with pytest.raises(NoRouteConfigured):
            routes.remove_route(admin, "USDC", "A")

    def test_foreign_capability_rejected(self, routes):
        with pytest.raises(CapabilityError):
            routes.set_route(AdminCapability(basket_id="other"), "USDC", "C", ["USDC", "C"])


class TestSwapExecutor:
    @pytest.fixture
    def router(self):
        router = MagicMock()
        router.swap.return_value = 42
        return router

    @pytest.fixture
    def executor(self, router, routes):
        return SwapExecutor(
            router,
            routes,
            slippage_bps=100,
            deadline_seconds=60,
            max_attempts=3,
            wait=wait_none(),
            clock=lambda: 1_000.0,
        )

    @pytest.fixture
    def snapshot(self, make_snapshot):
        return make_snapshot([("A", 5000, 0), ("B", 5000, 0, 8, 2 * 10**8)])

    def test_swap_gets_route_deadline_and_min_out(self, executor, router, snapshot):
        executed = executor.execute([SwapInstruction("USDC", "B", 100 * USDC)], snapshot, "0xbasket")

        # $100 buys 50 B at $2; 1% slippage allowed
        router.swap.assert_called_once_with(
            "USDC", "B", 100 * USDC, ("USDC", "A", "B"), "0xbasket", 1_060, 4_950_000_000
        )
        assert executed[0].amount_out == 42

    def test_missing_route_aborts_before_any_swap(self, executor, router, snapshot):
        instructions = [
            SwapInstruction("USDC", "A", 10 * USDC),
            SwapInstruction("A", "USDC", TOKEN),
        ]
        with pytest.raises(NoRouteConfigured):
            executor.execute(instructions, snapshot, "0xbasket")
        router.swap.assert_not_called()

    def test_transfer_skips_router(self, executor, router, snapshot):
        executed = executor.execute([SwapInstruction("USDC", "USDC", 5 * USDC)], snapshot, "0xbasket")
        router.swap.assert_not_called()
        assert executed[0].amount_out == 5 * USDC

    def test_zero_amount_skipped(self, executor, router, snapshot):
        assert executor.execute([SwapInstruction("USDC", "A", 0)], snapshot, "0xbasket") == []
        router.swap.assert_not_called()

    def test_transient_failure_retried(self, executor, router, snapshot):
        router.swap.side_effect = [ConnectionError("reset"), 99]
        executed = executor.execute([SwapInstruction("USDC", "A", USDC)], snapshot, "0xbasket")
        assert executed[0].amount_out == 99
        assert router.swap.call_count == 2

    def test_persistent_failure_wrapped(self, executor, router, snapshot):
        router.swap.side_effect = ConnectionError("down")
        with pytest.raises(SwapExecutionError, match="USDC -> A"):
            executor.execute([SwapInstruction("USDC", "A", USDC)], snapshot, "0xbasket")
        assert router.swap.call_count == 3
