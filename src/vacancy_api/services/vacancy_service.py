from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Mapping, Optional

from bs4 import BeautifulSoup

from vacancy_api.infrastructure.empty_seat_client import EmptySeatClient
from vacancy_api.infrastructure.models import VacancyRecord
from vacancy_api.infrastructure.vacancy_page_client import VacancyPageClient
from vacancy_api.services.normalizer import normalize_seat_payload
from vacancy_api.services.page_extractors import extract_store_name, normalize_vacancy_page
from vacancy_api.services.retry import RetryPolicy
from vacancy_api.services.vacancy_cache import CacheStats, VacancyCache

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "vacancy:"


def cache_key(store_code: str) -> str:
    return f"{CACHE_KEY_PREFIX}{store_code}"


class VacancyService:
    """Acquires vacancy records: direct endpoint first, rendered page as fallback.

    Every successful ``acquire`` is written through to the cache.
    """

    def __init__(
        self,
        direct: EmptySeatClient,
        rendered: VacancyPageClient,
        cache: VacancyCache,
        seat_name: str,
        category_id: str,
        store_names: Optional[Mapping[str, str]] = None,
        retry_policy: Optional[RetryPolicy] = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._direct = direct
        self._rendered = rendered
        self._cache = cache
        self._seat_name = seat_name
        self._category_id = category_id
        self._store_names = dict(store_names or {})
        self._retry_policy = retry_policy or RetryPolicy()
        self._now = now

    async def fetch_direct(self, store_code: str) -> VacancyRecord:
        payload = await self._direct.fetch(store_code)
        return normalize_seat_payload(
            payload,
            store_code,
            seat_name=self._seat_name,
            category_id=self._category_id,
            store_name=self._store_names.get(store_code),
            now=self._now,
        )

    async def fetch_rendered(self, store_code: str) -> VacancyRecord:
        page = await self._rendered.fetch(store_code)
        if page.captured is not None:
            soup = BeautifulSoup(page.html, "html.parser")
            return normalize_seat_payload(
                page.captured,
                store_code,
                seat_name=self._seat_name,
                category_id=self._category_id,
                store_name=extract_store_name(soup, store_code, self._store_names),
                now=self._now,
            )
        return normalize_vacancy_page(page.html, store_code, self._store_names, now=self._now)

    async def fetch_via_rendered_with_retry(
        self, store_code: str, max_attempts: Optional[int] = None
    ) -> VacancyRecord:
        policy = self._retry_policy
        if max_attempts is not None:
            policy = policy.with_attempts(max_attempts)
        return await policy.run(
            lambda: self.fetch_rendered(store_code), label=f"Rendered fetch {store_code}"
        )

    async def fetch_with_fallback(
        self, store_code: str, max_attempts: Optional[int] = None
    ) -> VacancyRecord:
        try:
            return await self.fetch_direct(store_code)
        except Exception as e:
            logger.warning("Official API failed for %s, falling back to scraping: %s", store_code, e)
        return await self.fetch_via_rendered_with_retry(store_code, max_attempts)

    async def acquire(self, store_code: str, max_attempts: Optional[int] = None) -> VacancyRecord:
        """Fetch a fresh record for ``store_code`` and store it in the cache."""
        record = await self.fetch_with_fallback(store_code, max_attempts)
        record = record.with_fetched_at(self._now())
        self._cache.set(cache_key(store_code), record)
        return record

    def cached(self, store_code: str) -> Optional[tuple[VacancyRecord, int]]:
        key = cache_key(store_code)
        record = self._cache.get(key)
        if record is None:
            return None
        return record, self._cache.get_age(key) or 0

    def cache_stats(self) -> CacheStats:
        return self._cache.get_stats()

    def cache_clear(self) -> None:
        self._cache.clear()
