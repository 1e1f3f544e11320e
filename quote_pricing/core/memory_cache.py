import asyncio
import fnmatch
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Tuple, TypeVar

from quote_pricing.core.cache import AbstractCacheProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InMemoryCacheProvider(AbstractCacheProvider):
    """Cache en mémoire du processus, expiration basée sur time.monotonic()."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get_or_set(self, key: str, ttl: int, producer: Callable[[], Awaitable[T]]) -> T:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                expires_at, value = entry
                if expires_at > self._clock():
                    logger.debug(f"[InMemoryCache] Hit: {key}")
                    return value
                del self._entries[key]

        logger.debug(f"[InMemoryCache] Miss: {key}")
        value = await producer()
        if value is not None:
            async with self._lock:
                self._entries[key] = (self._clock() + ttl, value)
        return value

    async def bust(self, key_or_pattern: str) -> int:
        async with self._lock:
            if "*" in key_or_pattern:
                keys = [k for k in self._entries if fnmatch.fnmatchcase(k, key_or_pattern)]
            else:
                keys = [key_or_pattern] if key_or_pattern in self._entries else []
            for key in keys:
                del self._entries[key]
        logger.debug(f"[InMemoryCache] {len(keys)} clé(s) invalidée(s) pour '{key_or_pattern}'")
        return len(keys)

    def __len__(self) -> int:
        return len(self._entries)
