"""Tests for the provider factory."""

import json
from unittest.mock import MagicMock, patch

import pytest

from indexbasket.config import Secrets
from indexbasket.engine import BasketEngine
from indexbasket.errors import PriceUnavailable
from indexbasket.providers import build_engine, create_price_source, create_routing_table
from indexbasket.trading.simulated import StaticPriceSource


class TestProviders:
    def test_create_static_price_source(self, test_config):
        prices = create_price_source(test_config)
        assert isinstance(prices, StaticPriceSource)
        assert prices.get_price("WETH").price == 300_000_000_000

    def test_unknown_price_provider(self, test_config):
        test_config.providers.prices = "chainlink"
        with pytest.raises(ValueError, match="Unknown price provider"):
            create_price_source(test_config)

    def test_missing_static_price_raises(self, test_config):
        prices = create_price_source(test_config)
        with pytest.raises(PriceUnavailable):
            prices.get_price("DOGE")

    def test_routing_table_seeded_from_config(self, test_config):
        table = create_routing_table(test_config)
        assert len(table) == 6
        assert table.route_for("USDC", "WBTC") == ("USDC", "WETH", "WBTC")

    def test_build_engine_from_config(self, test_config):
        engine = build_engine(test_config, started_at=500)
        assert isinstance(engine, BasketEngine)
        assert [a.asset for a in engine.basket.assets] == ["WETH", "WBTC", "LINK"]
        assert engine.fee_state.last_fee_withdrawal == 500

    @patch("indexbasket.state.redis_backend.redis.Redis")
    def test_build_engine_restores_from_redis(self, mock_redis_cls, test_config):
        mock_client = MagicMock()
        mock_redis_cls.return_value = mock_client
        mock_client.get.return_value = json.dumps(
            {
                "assets": [{"asset": "WETH", "decimals": 18, "target_proportion": 10**18}],
                "fee_state": {"fee_bps": 50, "fee_period_seconds": 3600, "last_fee_withdrawal": 7200},
            }
        )

        engine = build_engine(test_config, Secrets(redis_host="redis"))
        assert [a.asset for a in engine.basket.assets] == ["WETH"]
        assert engine.fee_state.fee_bps == 50

        engine.save_state()
        mock_client.set.assert_called_once()
