from contextlib import contextmanager
import asyncio
import logging
from typing import Any, Callable, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import WatchError

from .config import RedisConfig, config
from .protocol.errors import CacheUnavailable, ConcurrentUpdate


logger = logging.getLogger(__name__)


class RedisCacheManager:
    """Process-wide Redis handle. Connects lazily on first use and is reused until close()."""

    def __init__(self, redis_config: Optional[RedisConfig] = None, client: Optional[redis.Redis] = None):
        self.config = redis_config or config.redis
        self.max_retries = max(1, self.config.max_retries)
        self.client = client
        self._connect_lock = asyncio.Lock()

    def _build_client(self) -> redis.Redis:
        if self.config.url:
            return redis.Redis.from_url(
                self.config.url,
                decode_responses=True,
                socket_timeout=self.config.socket_timeout
            )
        return redis.Redis(
            host=self.config.host,
            port=self.config.port,
            db=self.config.db,
            password=self.config.password,
            decode_responses=True,
            socket_timeout=self.config.socket_timeout
        )

    @contextmanager
    def _translate_errors(self, operation: str):
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(f"Redis {operation} failed: {e}")
            raise CacheUnavailable(f"{operation} failed: {e}") from e

    async def _get_client(self) -> redis.Redis:
        if self.client is not None:
            return self.client
        async with self._connect_lock:
            if self.client is None:
                client = self._build_client()
                try:
                    with self._translate_errors("connect"):
                        await client.ping()
                except CacheUnavailable:
                    await client.aclose()
                    raise
                self.client = client
                logger.info(f"Connected to Redis at {self.config.url or f'{self.config.host}:{self.config.port}/{self.config.db}'}")
        return self.client

    async def get(self, key: str) -> Optional[str]:
        client = await self._get_client()
        with self._translate_errors("get"):
            return await client.get(key)

    async def transaction(self, key: str, build: Callable[[Optional[str], Any], Any]) -> Any:
        """Optimistic read-modify-write of one key.

        WATCHes key, reads its current value, then calls build(current, pipe)
        with the pipeline already in MULTI mode so build can queue writes.
        The queued writes are applied atomically; if key changed meanwhile the
        whole attempt is retried. Exceptions raised by build abort without
        writing anything.

        Returns:
            Whatever build returned for the attempt that committed

        Raises:
            ConcurrentUpdate: key kept changing for max_retries attempts
        """
        client = await self._get_client()
        with self._translate_errors("transaction"):
            for attempt in range(1, self.max_retries + 1):
                async with client.pipeline(transaction=True) as pipe:
                    try:
                        await pipe.watch(key)
                        current = await pipe.get(key)
                        pipe.multi()
                        result = build(current, pipe)
                        await pipe.execute()
                        return result
                    except WatchError:
                        logger.warning(f"Concurrent write on {key}, retrying (attempt {attempt}/{self.max_retries})")
        raise ConcurrentUpdate(key, self.max_retries)

    async def delete_with_prefix(self, key: str, prefix: str) -> Tuple[int, int]:
        """Atomically delete key and every key starting with prefix.

        key is WATCHed before the prefix scan, so a writer that touches key
        while the scan runs forces a retry instead of leaving stray keys.
        Callers must not pass glob metacharacters in prefix.

        Returns:
            (keys deleted for key itself, keys deleted under prefix)

        Raises:
            ConcurrentUpdate: key kept changing for max_retries attempts
        """
        client = await self._get_client()
        with self._translate_errors("delete"):
            for attempt in range(1, self.max_retries + 1):
                async with client.pipeline(transaction=True) as pipe:
                    try:
                        await pipe.watch(key)
                        related = [k async for k in client.scan_iter(match=f"{prefix}*", count=100)]
                        pipe.multi()
                        pipe.delete(key)
                        if related:
                            pipe.delete(*related)
                        results = await pipe.execute()
                        return int(results[0]), int(results[1]) if related else 0
                    except WatchError:
                        logger.warning(f"Concurrent write on {key} during delete, retrying "
                                       f"(attempt {attempt}/{self.max_retries})")
        raise ConcurrentUpdate(key, self.max_retries)

    async def close(self):
        if self.client is not None:
            await self.client.aclose()
            self.client = None
            logger.info("Redis connection closed")


_redis_client: Optional[RedisCacheManager] = None


def get_redis_client() -> RedisCacheManager:
    """Return the global RedisCacheManager instance, creating it if necessary."""
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisCacheManager()
    return _redis_client


async def close_redis_client():
    """Teardown hook for process shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None
