"""Provider factory: creates the right implementation based on config."""

import importlib

from indexbasket.config import AppConfig, Secrets
from indexbasket.engine import BasketEngine
from indexbasket.portfolio.basket import AdminCapability, Basket
from indexbasket.state.redis_backend import RedisStateBackend
from indexbasket.trading.base import BasketLedger, PriceSource, SwapRouter
from indexbasket.trading.router import RoutingTable, SwapExecutor
from indexbasket.trading.simulated import CollectingFeeSink

PRICE_PROVIDERS = {
    "static": "indexbasket.trading.simulated:StaticPriceSource",
}

LEDGER_PROVIDERS = {
    "memory": "indexbasket.trading.simulated:InMemoryLedger",
}

ROUTER_PROVIDERS = {
    "simulated": "indexbasket.trading.simulated:SimulatedRouter",
}


def _import_class(path: str):
    """Import a class from a 'module:ClassName' string."""
    module_path, class_name = path.split(":")
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def _lookup(registry: dict[str, str], kind: str, name: str):
    if name not in registry:
        raise ValueError(f"Unknown {kind} provider: '{name}'. Available: {list(registry.keys())}")
    return _import_class(registry[name])


def create_price_source(config: AppConfig) -> PriceSource:
    """Create a price source based on config.providers.prices."""
    cls = _lookup(PRICE_PROVIDERS, "price", config.providers.prices)
    return cls(config.static_prices or {})


def create_ledger(config: AppConfig, basket: Basket) -> BasketLedger:
    """Create a basket ledger based on config.providers.ledger."""
    cls = _lookup(LEDGER_PROVIDERS, "ledger", config.providers.ledger)
    return cls(basket, config.basket.custody_address)


def create_swap_router(config: AppConfig, ledger: BasketLedger, prices: PriceSource) -> SwapRouter:
    """Create a swap router based on config.providers.router."""
    cls = _lookup(ROUTER_PROVIDERS, "router", config.providers.router)
    return cls(ledger, prices, config.basket.base_currency, config.basket.base_decimals)


def create_routing_table(config: AppConfig) -> RoutingTable:
    """Seed the routing table from config.routes."""
    table = RoutingTable(config.basket.basket_id)
    capability = AdminCapability(basket_id=config.basket.basket_id, granted_to="config")
    for route in config.routes:
        table.set_route(capability, route.asset_in, route.asset_out, route.path)
    return table


def build_engine(
    config: AppConfig,
    secrets: Secrets | None = None,
    *,
    started_at: int = 0,
) -> BasketEngine:
    """Wire a BasketEngine from configuration.

    When secrets are given, basket composition and fee state are restored
    from (and saved to) Redis.
    """
    state_backend = None
    restored = None
    if secrets is not None:
        state_backend = RedisStateBackend(config.basket.basket_id, secrets)
        restored = state_backend.restore()

    if restored is not None:
        basket, fee_state = restored
    else:
        basket = Basket(config.basket.basket_id, config.basket.entries())
        fee_state = config.fees.initial_state(started_at)

    prices = create_price_source(config)
    ledger = create_ledger(config, basket)
    router = create_swap_router(config, ledger, prices)
    executor = SwapExecutor(
        router,
        create_routing_table(config),
        slippage_bps=config.execution.slippage_bps,
        deadline_seconds=config.execution.deadline_seconds,
        max_attempts=config.execution.max_attempts,
    )

    return BasketEngine(
        basket,
        ledger,
        prices,
        executor,
        CollectingFeeSink(),
        fee_state,
        base_asset=config.basket.base_currency,
        base_decimals=config.basket.base_decimals,
        custody_address=config.basket.custody_address,
        fee_recipient=config.fees.fee_recipient,
        share_decimals=config.basket.share_decimals,
        state_backend=state_backend,
    )
