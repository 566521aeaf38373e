"""Redis-based cache service backing the policy cache.

Provides async string get/set/delete/keys/exists with TTL support. Every
operation is bounded by cache_operation_timeout; connection errors and
timeouts raise CacheUnavailableError so callers can fall back to the store.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from authz.core.config import Settings, get_settings
from authz.domain.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (RedisConnectionError, RedisTimeoutError, TimeoutError)


class CacheService:
    """Async Redis cache service with TTL support.

    Call connect() at startup and disconnect() at shutdown. An injected
    client (tests, shared pools) is never replaced on reconnect.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize cache service.

        Args:
            redis_client: Optional Redis client for testing or DI.
            settings: Optional settings; defaults to get_settings().
        """
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._owns_client = redis_client is None
        self._connected = False
        self._op_timeout = self.settings.cache_operation_timeout

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup.

        Failures leave the service unavailable instead of raising; the
        policy cache then reads straight from the store.
        """
        if self.redis is None:
            self.redis = redis.Redis(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=self.settings.redis_password.get_secret_value()
                if self.settings.redis_password
                else None,
                decode_responses=True,
                socket_connect_timeout=self.settings.redis_socket_timeout,
                socket_timeout=self.settings.redis_socket_timeout,
                socket_keepalive=True,
            )
            self._owns_client = True
        try:
            await asyncio.wait_for(self.redis.ping(), timeout=self._op_timeout)
            self._connected = True
            logger.info(
                "Redis cache connected: %s:%s",
                self.settings.redis_host,
                self.settings.redis_port,
            )
        except (*_TRANSIENT_ERRORS, RedisError) as e:
            logger.warning("Redis connection failed: %s. Cache disabled.", e)
            self._connected = False
            if self._owns_client:
                await self._close_quietly()

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis is not None:
            if self._owns_client:
                await self._close_quietly()
            self._connected = False
            logger.info("Redis cache disconnected")

    async def _close_quietly(self) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.aclose()
        except RedisError:
            logger.debug("Ignoring error while closing Redis client", exc_info=True)
        self.redis = None

    async def _reconnect(self) -> bool:
        """Rebuild an owned client after a transient failure. Returns True if reconnected."""
        if not self._owns_client or self.redis is None:
            return False
        await self._close_quietly()
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _call(
        self,
        operation: str,
        key: str | None,
        command: Callable[[redis.Redis], Awaitable[Any]],
    ) -> Any:
        """Run one bounded Redis command, retrying once after a reconnect."""
        if not self.is_available() or self.redis is None:
            raise CacheUnavailableError(operation, key)
        try:
            return await asyncio.wait_for(command(self.redis), timeout=self._op_timeout)
        except _TRANSIENT_ERRORS as e:
            if await self._reconnect() and self.redis is not None:
                try:
                    return await asyncio.wait_for(
                        command(self.redis), timeout=self._op_timeout
                    )
                except (*_TRANSIENT_ERRORS, RedisError) as retry_error:
                    logger.warning(
                        "Cache %s failed for %s after reconnect: %s",
                        operation,
                        key,
                        retry_error,
                    )
                    raise CacheUnavailableError(operation, key) from retry_error
            logger.warning("Cache %s unavailable for %s: %r", operation, key, e)
            raise CacheUnavailableError(operation, key) from e
        except RedisError as e:
            logger.exception("Cache %s error for key %s", operation, key)
            raise CacheUnavailableError(operation, key) from e

    async def get(self, key: str) -> str | None:
        """Return the cached string or None on a miss.

        Raises:
            CacheUnavailableError: Redis unreachable or timed out.
        """
        value = await self._call("get", key, lambda r: r.get(key))
        logger.debug("Cache %s: %s", "HIT" if value is not None else "MISS", key)
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store value with TTL in seconds.

        Raises:
            CacheUnavailableError: Redis unreachable or timed out.
        """
        await self._call("set", key, lambda r: r.setex(key, ttl, value))
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)

    async def delete(self, *keys: str) -> int:
        """Remove keys. Returns the number of keys deleted."""
        if not keys:
            return 0
        deleted = await self._call("delete", ",".join(keys), lambda r: r.delete(*keys))
        logger.debug("Cache DELETE: %s (%s removed)", keys, deleted)
        return int(deleted or 0)

    async def keys(self, pattern: str) -> list[str]:
        """Return keys matching pattern using SCAN (non-blocking on the server)."""

        async def _scan(r: redis.Redis) -> list[str]:
            return [key async for key in r.scan_iter(match=pattern)]

        return await self._call("keys", pattern, _scan)

    async def exists(self, key: str) -> bool:
        """Return True if key is present."""
        count = await self._call("exists", key, lambda r: r.exists(key))
        return bool(count)
