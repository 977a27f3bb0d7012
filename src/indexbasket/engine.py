"""Basket engine - plans and executes deposits, withdrawals, rebalances and fee sweeps."""

from dataclasses import dataclass

import structlog

from indexbasket.errors import CapabilityError
from indexbasket.logging_config import get_decision_logger
from indexbasket.models import AssetEntry, FeeState, ShareAccount
from indexbasket.portfolio.basket import AdminCapability, Basket
from indexbasket.portfolio.fees import FeeAccrual, accrue_fees
from indexbasket.portfolio.shares import Payout, SharePricer
from indexbasket.rebalancing.planner import SwapInstruction, SwapPlan, plan_deposit, plan_withdraw
from indexbasket.rebalancing.snapshot import BasketSnapshot, take_snapshot
from indexbasket.rebalancing.valuation import usd_value
from indexbasket.state.redis_backend import RedisStateBackend
from indexbasket.trading.base import BasketLedger, FeeSink, PriceSource
from indexbasket.trading.router import ExecutedSwap, SwapExecutor

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DepositResult:
    plan: SwapPlan
    executed: tuple[ExecutedSwap, ...]
    shares_minted: int


@dataclass(frozen=True)
class WithdrawResult:
    plan: SwapPlan
    executed: tuple[ExecutedSwap, ...]
    shares_burned: int
    base_paid: int


class BasketEngine:
    """Index basket engine.

    Every request takes one snapshot of balances and prices, computes its
    complete plan from that snapshot, and only then touches the ledger or the
    router.
    """

    def __init__(
        self,
        basket: Basket,
        ledger: BasketLedger,
        prices: PriceSource,
        executor: SwapExecutor,
        fee_sink: FeeSink,
        fee_state: FeeState,
        *,
        base_asset: str,
        base_decimals: int,
        custody_address: str,
        fee_recipient: str = "",
        share_decimals: int = 18,
        state_backend: RedisStateBackend | None = None,
    ):
        self._basket = basket
        self._ledger = ledger
        self._prices = prices
        self._executor = executor
        self._fee_sink = fee_sink
        self._fee_state = fee_state
        self._base_asset = base_asset
        self._base_decimals = base_decimals
        self._custody = custody_address
        self._fee_recipient = fee_recipient
        self._pricer = SharePricer(share_decimals)
        self._state_backend = state_backend
        self._decision_log = get_decision_logger()

    @property
    def basket(self) -> Basket:
        """The live basket. Changes made on it directly are not persisted;
        the admin methods below save state after every change."""
        return self._basket

    @property
    def ledger(self) -> BasketLedger:
        return self._ledger

    @property
    def fee_sink(self) -> FeeSink:
        return self._fee_sink

    @property
    def fee_state(self) -> FeeState:
        return self._fee_state

    @property
    def share_account(self) -> ShareAccount:
        return ShareAccount(total_shares=self._ledger.total_shares(), fee_state=self._fee_state)

    def snapshot(self) -> BasketSnapshot:
        """Read balances, supply and prices once for a single request."""
        return take_snapshot(self._ledger, self._prices, self._base_asset, self._base_decimals)

    # Pure planning surface

    def plan_deposit(self, amount: int) -> SwapPlan:
        return plan_deposit(self.snapshot(), amount)

    def plan_withdraw(self, share_amount: int) -> SwapPlan:
        return plan_withdraw(self.snapshot(), share_amount)

    def mint_amount(self, usd_value: int) -> int:
        return self._pricer.mint_amount(self.snapshot(), usd_value)

    def burn_payouts(self, share_amount: int) -> list[Payout]:
        return self._pricer.burn_payouts(self.snapshot(), share_amount)

    def accrue_fees(self, now: int) -> FeeAccrual:
        return accrue_fees(self._fee_state, self.snapshot(), now)

    # Requests that move funds

    def deposit(self, depositor: str, amount: int) -> DepositResult:
        """Take ``amount`` of the base currency, deploy it and mint shares."""
        snapshot = self.snapshot()
        plan = plan_deposit(snapshot, amount)
        if not plan.instructions:
            return DepositResult(plan=plan, executed=(), shares_minted=0)

        deposit_usd = usd_value(amount, snapshot.base_decimals, snapshot.base_quote)
        shares = self._pricer.mint_amount(snapshot, deposit_usd)
        prepared = self._executor.prepare(plan.instructions, snapshot)

        self._decision_log.info(
            "decision.deposit",
            depositor=depositor,
            amount=amount,
            usd_value=deposit_usd,
            path=plan.path.value,
            instructions=len(plan),
            swaps=len(prepared),
            shares=shares,
        )

        self._ledger.transfer_in(self._base_asset, depositor, amount)
        executed = self._executor.execute(plan.instructions, snapshot, self._custody)
        self._ledger.mint_shares(depositor, shares)

        logger.info(
            "engine.deposit_completed",
            depositor=depositor,
            amount=amount,
            shares_minted=shares,
        )
        return DepositResult(plan=plan, executed=tuple(executed), shares_minted=shares)

    def withdraw(self, holder: str, share_amount: int) -> WithdrawResult:
        """Burn ``share_amount`` shares and pay the holder in the base currency."""
        snapshot = self.snapshot()
        plan = plan_withdraw(snapshot, share_amount)
        if share_amount == 0:
            return WithdrawResult(plan=plan, executed=(), shares_burned=0, base_paid=0)
        self._executor.prepare(plan.instructions, snapshot)

        self._decision_log.info(
            "decision.withdraw",
            holder=holder,
            share_amount=share_amount,
            total_shares=snapshot.total_shares,
            usd_value=plan.usd_amount,
            path=plan.path.value,
            instructions=len(plan),
        )

        self._ledger.burn_shares(holder, share_amount)
        executed = self._executor.execute(plan.instructions, snapshot, self._custody)
        base_paid = sum(swap.amount_out for swap in executed)
        if base_paid > 0:
            self._ledger.transfer(self._base_asset, holder, base_paid)

        logger.info(
            "engine.withdraw_completed",
            holder=holder,
            shares_burned=share_amount,
            base_paid=base_paid,
        )
        return WithdrawResult(
            plan=plan,
            executed=tuple(executed),
            shares_burned=share_amount,
            base_paid=base_paid,
        )

    def redeem_in_kind(self, holder: str, share_amount: int) -> list[Payout]:
        """Burn shares and hand the holder their slice of every asset, without swaps."""
        payouts = self.burn_payouts(share_amount)
        if share_amount == 0:
            return payouts

        self._ledger.burn_shares(holder, share_amount)
        for payout in payouts:
            self._ledger.transfer(payout.asset, holder, payout.amount)

        self._decision_log.info(
            "decision.redeem_in_kind",
            holder=holder,
            share_amount=share_amount,
            payouts=[(p.asset, p.amount) for p in payouts],
        )
        return payouts

    def rebalance(self, capability: AdminCapability, instructions: list[SwapInstruction]) -> list[ExecutedSwap]:
        """Execute an admin-supplied swap list against basket custody."""
        if capability.basket_id != self._basket.basket_id:
            raise CapabilityError(
                f"Capability for basket '{capability.basket_id}' cannot rebalance '{self._basket.basket_id}'"
            )
        snapshot = self.snapshot()

        self._decision_log.info(
            "decision.rebalance",
            granted_to=capability.granted_to,
            instructions=[(i.asset_in, i.asset_out, i.amount_in) for i in instructions],
        )

        return self._executor.execute(instructions, snapshot, self._custody)

    # Basket administration, persisted after every change

    def add_asset(self, capability: AdminCapability, asset: str, decimals: int, target_proportion: int) -> AssetEntry:
        entry = self._basket.add_asset(capability, asset, decimals, target_proportion)
        self.save_state()
        return entry

    def remove_asset(self, capability: AdminCapability, index: int) -> AssetEntry:
        removed = self._basket.remove_asset(capability, index)
        self.save_state()
        return removed

    def set_target(self, capability: AdminCapability, index: int, target_proportion: int) -> AssetEntry:
        updated = self._basket.set_target(capability, index, target_proportion)
        self.save_state()
        return updated

    def set_targets_bps(self, capability: AdminCapability, targets_bps: list[int]) -> None:
        self._basket.set_targets_bps(capability, targets_bps)
        self.save_state()

    def withdraw_fees(self, now: int) -> FeeAccrual:
        """Sweep fees for every whole period elapsed and advance the fee clock.

        Raises:
            FeePeriodNotElapsed: Nothing is moved and the timestamp is unchanged
        """
        accrual = self.accrue_fees(now)

        for charge in accrual.charges:
            self._ledger.transfer(charge.asset, self._fee_recipient, charge.amount)
            self._fee_sink.receive(charge.asset, charge.amount)

        self._fee_state = accrual.next_state
        self.save_state()

        self._decision_log.info(
            "decision.fees_withdrawn",
            periods=accrual.periods,
            charges=[(c.asset, c.amount) for c in accrual.charges],
            last_fee_withdrawal=self._fee_state.last_fee_withdrawal,
        )
        return accrual

    def save_state(self) -> None:
        """Persist basket composition and fee state, if a backend is configured."""
        if self._state_backend is not None:
            self._state_backend.save_state(self._basket.assets, self._fee_state)
