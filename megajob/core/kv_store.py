"""Redis key-value store for short-lived auth state.

Holds pending signups (``signup:<id>``), password reset tokens
(``password_reset:<token>``) and revoked access tokens (``revoked:<jti>``).
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from megajob.config import Settings, settings

logger = logging.getLogger(__name__)

_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    retry=retry_if_exception_type((ConnectionError, TimeoutError)),
    reraise=True,
)


class KeyValueStore:
    """
    JSON values in Redis with per-key TTL.

    When Redis is unreachable the store disables itself: writes return
    False and reads return None, so callers can report the feature as
    unavailable instead of crashing.
    """

    def __init__(self, settings: Settings, client: Optional[redis.Redis] = None):
        self.settings = settings
        self.prefix = settings.KV_KEY_PREFIX
        self.enabled = settings.KV_ENABLED
        self._pool: Optional[ConnectionPool] = None
        self._client = client

        if client is not None:
            self.enabled = True

    async def connect(self) -> None:
        """Open the connection pool and ping."""
        if not self.enabled:
            logger.info("Key-value store is disabled. Skipping Redis connection.")
            return
        if self._client is not None:
            return

        try:
            self._pool = ConnectionPool(
                host=self.settings.REDIS_HOST,
                port=self.settings.REDIS_PORT,
                db=self.settings.REDIS_DB,
                password=self.settings.REDIS_PASSWORD or None,
                max_connections=self.settings.REDIS_MAX_CONNECTIONS,
                socket_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            await self._client.ping()
            logger.info(
                "Redis key-value store connected to %s:%s",
                self.settings.REDIS_HOST,
                self.settings.REDIS_PORT,
            )
        except Exception as e:
            logger.error("Failed to connect to Redis: %s", e)
            logger.warning("Key-value store disabled; signup and password reset are unavailable")
            self._client = None
            self.enabled = False

    async def disconnect(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            except Exception as e:
                logger.error("Error closing Redis connection: %s", e)
        if self._pool is not None:
            await self._pool.disconnect()
        self._client = None
        self._pool = None

    @property
    def available(self) -> bool:
        return self.enabled and self._client is not None

    async def is_healthy(self) -> bool:
        if not self.available:
            return False
        try:
            await self._client.ping()
            return True
        except Exception:
            return False

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @_retry
    async def _execute(self, command: str, *args):
        """Run a client command, retrying transient connection failures."""
        return await getattr(self._client, command)(*args)

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None when missing or unavailable."""
        if not self.available:
            return None

        try:
            value = await self._execute("get", self._key(key))
        except RedisError as e:
            logger.warning("Redis error getting key '%s': %s", key, e)
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error("Corrupt value for key '%s': %s", key, e)
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store ``value`` for ``ttl`` seconds."""
        if not self.available:
            return False

        try:
            serialized = json.dumps(value, default=str)
            return bool(await self._execute("setex", self._key(key), max(int(ttl), 1), serialized))
        except (TypeError, ValueError) as e:
            logger.error("Failed to serialize value for key '%s': %s", key, e)
            return False
        except RedisError as e:
            logger.warning("Redis error setting key '%s': %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        if not self.available:
            return False

        try:
            return bool(await self._execute("delete", self._key(key)))
        except RedisError as e:
            logger.error("Redis error deleting key '%s': %s", key, e)
            return False


kv_store = KeyValueStore(settings)


def get_kv_store() -> KeyValueStore:
    """Dependency returning the process-wide store."""
    return kv_store
