"""Per-key serialisation of progress read-merge-write cycles.

Two concurrent updates for the same (user, video) must not both read the old
interval list; updates for different keys run in parallel.

Within one worker an ``asyncio.Lock`` per key is always taken. When Redis is
configured a Redis lock is taken on top of it so workers in other processes
are serialised too. A Redis error fails the update as busy instead of
running it under the local lock alone.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from redis.exceptions import LockError, RedisError

from .exceptions import ProgressLockTimeoutError


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


class KeyedLock:
    """Mutual exclusion keyed by an arbitrary string."""

    def __init__(
        self,
        redis: Redis | None = None,
        timeout: float = 10.0,
        blocking_timeout: float = 5.0,
        prefix: str = "progress:lock",
    ) -> None:
        """Initialize keyed lock.

        Args:
            redis: Optional Redis client for cross-process locking
            timeout: Seconds before a held Redis lock expires
            blocking_timeout: Seconds to wait for a lock before giving up
            prefix: Redis key prefix
        """
        self.redis = redis
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.prefix = prefix
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}
        self.redis_healthy = redis is not None

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block.

        Raises:
            ProgressLockTimeoutError: If the lock is not acquired in time
        """
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.blocking_timeout)
            except TimeoutError as e:
                logger.warning("progress_lock_timeout", key=key)
                raise ProgressLockTimeoutError from e

            try:
                if self.redis is None:
                    yield
                else:
                    async with self._hold_redis(key):
                        yield
            finally:
                lock.release()
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                # Nobody waits on this key any more
                del self._holders[key]
                self._locks.pop(key, None)

    @asynccontextmanager
    async def _hold_redis(self, key: str) -> AsyncIterator[None]:
        """Take the cross-process Redis lock for ``key``."""
        redis_lock = self.redis.lock(
            f"{self.prefix}:{key}",
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        try:
            acquired = await redis_lock.acquire()
        except RedisError as e:
            # Other workers may hold the key; the client retries on 503
            self.redis_healthy = False
            logger.warning("progress_lock_redis_unavailable", key=key, error=str(e))
            raise ProgressLockTimeoutError from e

        self.redis_healthy = True
        if not acquired:
            logger.warning("progress_lock_timeout", key=key, backend="redis")
            raise ProgressLockTimeoutError

        try:
            yield
        finally:
            try:
                await redis_lock.release()
            except LockError:
                logger.warning("progress_lock_expired", key=key)
            except RedisError as e:
                # The key expires after `timeout`
                self.redis_healthy = False
                logger.warning(
                    "progress_lock_release_failed", key=key, error=str(e)
                )

    @property
    def shared(self) -> bool:
        """Whether the last Redis lock attempt succeeded."""
        return self.redis is not None and self.redis_healthy

    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        return len(self._locks)
