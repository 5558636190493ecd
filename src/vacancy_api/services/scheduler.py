"""
Cadence-aligned refresh of cached vacancy records.

Upstream republishes vacancy data every 10 minutes (XX:00, XX:10, ...) and the
new numbers settle about two minutes after each boundary. Refreshing at a fixed
margin past every boundary (XX:04, XX:14, ...) therefore always picks up the
latest publication instead of polling at arbitrary offsets.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Coroutine, Iterable, Optional

from vacancy_api.services.vacancy_service import CACHE_KEY_PREFIX, VacancyService

logger = logging.getLogger(__name__)


def compute_next_trigger(now: datetime, interval_minutes: int = 10, margin_minutes: int = 4) -> datetime:
    """Next ``slot * interval + margin`` instant strictly after ``now``."""
    slot = now.minute // interval_minutes
    hour_start = now.replace(minute=0, second=0, microsecond=0)
    trigger = hour_start + timedelta(minutes=slot * interval_minutes + margin_minutes)
    if now >= trigger:
        trigger += timedelta(minutes=interval_minutes)
    return trigger


@dataclass
class RoundResult:
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class VacancyScheduler:
    def __init__(
        self,
        service: VacancyService,
        default_store_codes: Iterable[str],
        interval_minutes: int = 10,
        margin_minutes: int = 4,
        max_attempts: Optional[int] = 2,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._service = service
        self._default_store_codes = list(default_store_codes)
        self._interval_minutes = interval_minutes
        self._margin_minutes = margin_minutes
        self._max_attempts = max_attempts
        self._clock = clock
        self._tasks: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def tracked_store_codes(self) -> list[str]:
        keys = self._service.cache_stats().keys
        codes = [key[len(CACHE_KEY_PREFIX):] for key in keys if key.startswith(CACHE_KEY_PREFIX)]
        codes = list(dict.fromkeys(codes))
        if not codes:
            logger.info("No store codes in cache, using default stores")
            return list(self._default_store_codes)
        return codes

    async def _refresh_one(self, store_code: str) -> bool:
        try:
            logger.info("Fetching %s...", store_code)
            await self._service.acquire(store_code, max_attempts=self._max_attempts)
        except Exception:
            logger.exception("Failed to fetch %s", store_code)
            return False
        logger.info("%s updated successfully", store_code)
        return True

    async def refresh_round(self) -> RoundResult:
        """Refresh every tracked store concurrently; one failure never affects the others."""
        codes = self.tracked_store_codes()
        logger.info("Scheduled scraping started: %d stores (%s)", len(codes), ", ".join(codes))
        outcomes = await asyncio.gather(*(self._refresh_one(code) for code in codes))

        result = RoundResult()
        for code, ok in zip(codes, outcomes):
            (result.succeeded if ok else result.failed).append(code)
        logger.info(
            "Scheduled scraping completed: %d succeeded, %d failed",
            len(result.succeeded),
            len(result.failed),
        )
        return result

    async def _safe_round(self) -> None:
        try:
            await self.refresh_round()
        except Exception:
            logger.exception("Refresh round failed")

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_timer(self, delay: float) -> None:
        loop = asyncio.get_running_loop()
        interval = self._interval_minutes * 60
        await asyncio.sleep(delay)
        next_tick = loop.time()
        while True:
            self._spawn(self._safe_round())
            next_tick += interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    def start(self) -> None:
        """Warm the cache now, then refresh on every aligned trigger.

        Must be called from a running event loop.
        """
        if self._tasks:
            logger.warning("Scheduler already started")
            return
        logger.info("Scheduler starting, running initial scraping")
        self._spawn(self._safe_round())

        now = self._clock()
        next_trigger = compute_next_trigger(now, self._interval_minutes, self._margin_minutes)
        delay = max(0.0, (next_trigger - now).total_seconds())
        logger.info(
            "Next scheduled scraping at %s (in %ds)", next_trigger.strftime("%H:%M:%S"), int(delay)
        )
        self._spawn(self._run_timer(delay))

    def stop(self) -> None:
        if not self._tasks:
            return
        logger.info("Stopping scheduler")
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
