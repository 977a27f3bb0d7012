"""Redis-based persistence of basket composition and fee state."""

import json
from datetime import datetime, timezone
from typing import Optional

import redis
import structlog

from indexbasket.config import Secrets
from indexbasket.models import AssetEntry, FeeState
from indexbasket.portfolio.basket import Basket

logger = structlog.get_logger(__name__)

STATE_VERSION = 1


class RedisStateBackend:
    """Redis-backed state persistence for one basket."""

    def __init__(self, basket_id: str, secrets: Secrets):
        """
        Initialize Redis connection.

        Args:
            basket_id: Unique identifier of the basket (e.g., "defi-top5")
            secrets: Connection settings loaded from the environment
        """
        self._basket_id = basket_id
        self._state_key = f"indexbasket:state:{basket_id}"

        self._client = redis.Redis(
            host=secrets.redis_host,
            port=secrets.redis_port,
            password=secrets.redis_password,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

        logger.info(
            "redis.backend_initialized",
            basket_id=basket_id,
            host=secrets.redis_host,
            port=secrets.redis_port,
            state_key=self._state_key,
        )

    @property
    def state_key(self) -> str:
        return self._state_key

    def save_state(self, assets: list[AssetEntry], fee_state: FeeState) -> None:
        """
        Persist asset order, targets and fee state.

        Args:
            assets: Basket constituents in basket order
            fee_state: Current fee parameters and last sweep timestamp
        """
        state = {
            "version": STATE_VERSION,
            "last_saved": datetime.now(timezone.utc).isoformat(),
            "assets": [entry.model_dump() for entry in assets],
            "fee_state": fee_state.model_dump(),
        }

        try:
            self._client.set(self._state_key, json.dumps(state))

            logger.debug(
                "redis.state_saved",
                basket_id=self._basket_id,
                assets_count=len(assets),
                last_fee_withdrawal=fee_state.last_fee_withdrawal,
            )

        except Exception as e:
            logger.error(
                "redis.save_failed",
                basket_id=self._basket_id,
                error=str(e),
                exc_info=True,
            )
            raise

    def load_state(self) -> Optional[dict]:
        """
        Load raw state from Redis.

        Returns:
            State dict if found, None otherwise
        """
        try:
            state_json = self._client.get(self._state_key)

            if state_json is None:
                logger.info(
                    "redis.no_state_found",
                    basket_id=self._basket_id,
                    state_key=self._state_key,
                )
                return None

            state = json.loads(state_json)

            logger.info(
                "redis.state_loaded",
                basket_id=self._basket_id,
                last_saved=state.get("last_saved"),
                assets_count=len(state.get("assets", [])),
            )

            return state

        except json.JSONDecodeError as e:
            logger.error(
                "redis.state_parse_failed",
                basket_id=self._basket_id,
                error=str(e),
            )
            return None
        except Exception as e:
            logger.error(
                "redis.load_failed",
                basket_id=self._basket_id,
                error=str(e),
                exc_info=True,
            )
            raise

    def restore(self) -> Optional[tuple[Basket, FeeState]]:
        """Rebuild the basket and fee state from the stored snapshot."""
        state = self.load_state()
        if state is None:
            return None
        assets = [AssetEntry(**entry) for entry in state.get("assets", [])]
        fee_state = FeeState(**state["fee_state"])
        return Basket(self._basket_id, assets), fee_state

    def close(self) -> None:
        """Close Redis connection."""
        try:
            self._client.close()
            logger.debug("redis.connection_closed", basket_id=self._basket_id)
        except Exception as e:
            logger.warning("redis.close_failed", error=str(e))
