from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

LOGGER = logging.getLogger(__name__)

DEFAULT_GROUP_TTL_SECONDS = 24 * 60 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60

Clock = Callable[[], float]


class CacheEntry:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: Any, expires_at: float) -> None:
        self.value = value
        self.expires_at = expires_at

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class MediaGroupCache:
    """Time-bounded store that maps a media group id to the note created for it.

    All access goes through one ``asyncio.Lock``. ``get_or_create`` keeps that
    lock held while the factory runs, so concurrent messages of one album
    produce a single note. The factory is a network call; it is bounded by the
    HTTP client timeout and blocks other group lookups while it runs. Messages
    without a group id never touch the cache.
    """

    def __init__(
        self,
        *,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._sweep_task: Optional[asyncio.Task[None]] = None

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Tuple[Any, bool]:
        async with self._lock:
            return self._lookup(key)

    async def set(self, key: str, value: Any, ttl: float) -> None:
        async with self._lock:
            self._store(key, value, ttl)

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: float = DEFAULT_GROUP_TTL_SECONDS,
    ) -> Any:
        """Return the cached value for ``key`` or create, store and return it.

        The lookup, the factory call and the insert run in one critical section.
        If the factory raises, nothing is stored and the exception propagates.
        """
        async with self._lock:
            value, found = self._lookup(key)
            if found:
                LOGGER.debug("Media group cache hit (key=%s)", key)
                return value
            LOGGER.debug("Media group cache miss (key=%s)", key)
            value = await factory()
            self._store(key, value, ttl)
            return value

    async def sweep(self) -> int:
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            LOGGER.info("Evicted %s expired media group entries", len(expired))
        return len(expired)

    def start(self) -> None:
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="media-group-cache-sweep")
        LOGGER.info("Media group cache sweep started (interval=%ss)", self._sweep_interval)

    async def stop(self) -> None:
        task = self._sweep_task
        self._sweep_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        LOGGER.info("Media group cache sweep stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                await self.sweep()
            except Exception:  # noqa: BLE001
                LOGGER.exception("Media group cache sweep failed")

    def _lookup(self, key: str) -> Tuple[Any, bool]:
        entry = self._entries.get(key)
        if entry is None:
            return None, False
        if entry.expired(self._clock()):
            self._entries.pop(key, None)
            return None, False
        return entry.value, True

    def _store(self, key: str, value: Any, ttl: float) -> None:
        self._entries[key] = CacheEntry(value, self._clock() + ttl)


__all__ = [
    "CacheEntry",
    "DEFAULT_GROUP_TTL_SECONDS",
    "DEFAULT_SWEEP_INTERVAL_SECONDS",
    "MediaGroupCache",
]
