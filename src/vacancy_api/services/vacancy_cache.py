from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from vacancy_api.infrastructure.models import VacancyRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    value: VacancyRecord
    inserted_at: float
    ttl: float

    def expires_at(self) -> float:
        return self.inserted_at + self.ttl


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    count: int = 0
    keys: list[str] = field(default_factory=list)


class VacancyCache:
    """In-memory vacancy cache with a fixed TTL.

    Expired entries are invisible to reads at once and physically removed by a
    background sweep every ``check_period`` seconds.
    """

    def __init__(
        self,
        ttl_seconds: int = 900,
        check_period: float = 120,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._check_period = check_period
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[asyncio.Task] = None
        logger.info("Cache initialized with TTL: %ss", self._ttl)

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None or self._clock() >= entry.expires_at():
            return None
        return entry

    def set(self, key: str, value: VacancyRecord) -> None:
        self._entries[key] = CacheEntry(value=value, inserted_at=self._clock(), ttl=self._ttl)
        logger.debug("Cache SET: %s", key)

    def get(self, key: str) -> Optional[VacancyRecord]:
        entry = self._live_entry(key)
        if entry is None:
            self._misses += 1
            logger.debug("Cache MISS: %s", key)
            return None
        self._hits += 1
        logger.debug("Cache HIT: %s", key)
        return entry.value

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def delete(self, key: str) -> int:
        return 1 if self._entries.pop(key, None) is not None else 0

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Cache cleared")

    def get_age(self, key: str) -> Optional[int]:
        """Whole seconds since the entry was stored, derived from its remaining TTL."""
        entry = self._live_entry(key)
        if entry is None:
            return None
        remaining = entry.expires_at() - self._clock()
        return int(entry.ttl - math.floor(remaining))

    def live_keys(self) -> list[str]:
        now = self._clock()
        return [key for key, entry in self._entries.items() if now < entry.expires_at()]

    def get_stats(self) -> CacheStats:
        keys = self.live_keys()
        return CacheStats(hits=self._hits, misses=self._misses, count=len(keys), keys=keys)

    def sweep(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at()]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Cache sweep evicted %d entries", len(expired))
        return len(expired)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._check_period)
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed")

    def start(self) -> None:
        """Start the background sweep. Must be called from a running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def stop(self) -> None:
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is None:
            return
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            logger.debug("Cache sweeper stopped")
