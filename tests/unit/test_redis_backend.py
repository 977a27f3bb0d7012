"""Tests for Redis persistence of basket state."""

import json
from unittest.mock import MagicMock, patch

import pytest

from indexbasket.config import Secrets
from indexbasket.models import AssetEntry, FeeState
from indexbasket.state.redis_backend import RedisStateBackend


@pytest.fixture
def secrets():
    return Secrets(redis_host="localhost", redis_port=6379, redis_password=None)


class TestRedisStateBackend:
    @patch("indexbasket.state.redis_backend.redis.Redis")
    def test_state_key_is_per_basket(self, mock_redis_cls, secrets):
        backend = RedisStateBackend("defi-top3", secrets)
        assert backend.state_key == "indexbasket:state:defi-top3"

    @patch("indexbasket.state.redis_backend.redis.Redis")
    def test_save_state_writes_json(self, mock_redis_cls, secrets):
        mock_client = MagicMock()
        mock_redis_cls.return_value = mock_client

        backend = RedisStateBackend("b1", secrets)
        assets = [
            AssetEntry(asset="WETH", decimals=18, target_proportion=7 * 10**17),
            AssetEntry(asset="WBTC", decimals=8, target_proportion=3 * 10**17),
        ]
        backend.save_state(assets, FeeState(fee_bps=25, fee_period_seconds=60, last_fee_withdrawal=120))

        key, payload = mock_client.set.call_args.args
        state = json.loads(payload)
        assert key == "indexbasket:state:b1"
        assert [a["asset"] for a in state["assets"]] == ["WETH", "WBTC"]
        assert state["assets"][0]["target_proportion"] == 7 * 10**17
        assert state["fee_state"]["last_fee_withdrawal"] == 120

    @patch("indexbasket.state.redis_backend.redis.Redis")
    def test_save_failure_propagates(self, mock_redis_cls, secrets):
        mock_client = MagicMock()
        mock_redis_cls.return_value = mock_client
        mock_client.set.side_effect = ConnectionError("down")

        backend = RedisStateBackend("b1", secrets)
        with pytest.raises(ConnectionError):
            backend.save_state([], FeeState(fee_period_seconds=60))

    @patch("indexbasket.state.redis_backend.redis.Redis")
    def test_load_missing_state(self, mock_redis_cls, secrets):
        mock_client = MagicMock()
        mock_redis_cls.return_value = mock_client
        mock_client.get.return_value = None

        backend = RedisStateBackend("b1", secrets)
        assert backend.load_state() is None
        assert backend.restore() is None

    @patch("indexbasket.state.redis_backend.redis.Redis")
    def test_corrupt_state_treated_as_missing(self, mock_redis_cls, secrets):
        mock_client = MagicMock()
        mock_redis_cls.return_value = mock_client
        mock_client.get.return_value = "{not json"

        backend = RedisStateBackend("b1", secrets)
        assert backend.load_state() is None

    @patch("indexbasket.state.redis_backend.redis.Redis")
    def test_restore_preserves_asset_order(self, mock_redis_cls, secrets):
        mock_client = MagicMock()
        mock_redis_cls.return_value = mock_client
        mock_client.get.return_value = json.dumps(
            {
                "version": 1,
                "assets": [
                    {"asset": "LINK", "decimals": 18, "target_proportion": 2 * 10**17},
                    {"asset": "WETH", "decimals": 18, "target_proportion": 8 * 10**17},
                ],
                "fee_state": {"fee_bps": 10, "fee_period_seconds": 60, "last_fee_withdrawal": 600},
            }
        )

        basket, fee_state = RedisStateBackend("b1", secrets).restore()
        assert basket.basket_id == "b1"
        assert [a.asset for a in basket.assets] == ["LINK", "WETH"]
        assert fee_state.last_fee_withdrawal == 600
