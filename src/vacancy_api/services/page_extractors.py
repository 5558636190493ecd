"""
Rendered vacancy page extraction.

The vacancy page markup is undocumented and changes without notice, so every
field is read by an ordered tuple of small strategies. Each strategy takes the
parsed document and returns a value or ``None``; the first value wins. When a
markup variant breaks one strategy, only that strategy needs replacing.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, time
from typing import Callable, Iterable, Mapping, Optional, TypeVar

from bs4 import BeautifulSoup

from vacancy_api.config import DEFAULT_STORE_NAME
from vacancy_api.infrastructure.models import (
    UNKNOWN_AVAILABILITY,
    Availability,
    VacancyRecord,
)
from vacancy_api.services.normalizer import determine_status

logger = logging.getLogger(__name__)

T = TypeVar("T")
Strategy = Callable[[BeautifulSoup], Optional[T]]

SCRIPT_NAME_PATTERNS = (
    re.compile(r"store_name\s*[=:]\s*[\"']([^\"']+)[\"']"),
    re.compile(r"storeName\s*[=:]\s*[\"']([^\"']+)[\"']"),
)
NAME_SELECTORS = (
    ".shop-name",
    ".store-name",
    "h1",
    ".page-title",
    "[data-store-name]",
    ".shopName",
    "#storeName",
    "#shopName",
)
PAGE_HEADING_MARKER = "空席照会"
TITLE_NAME_RE = re.compile(r"(.+?)[\s|｜]")

VACANCY_SELECTORS = (
    ".dart-vacancy",
    '[data-type="dart"]',
    ".vacancy-dart",
    "#dartVacancy",
)
ROW_KEYWORDS = ("ダーツ", "DARTS")
AVAILABLE_OF_TOTAL_RE = re.compile(r"(\d+)\s*/\s*(\d+)\s*台")
AVAILABLE_RE = re.compile(r"(\d+)\s*台")
TOTAL_RE = re.compile(r"全\s*(\d+)\s*台")

UPDATED_SELECTORS = (
    ".last-updated",
    ".update-time",
    "[data-last-updated]",
    ".vacancy-time",
)
CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})")


def first_match(strategies: Iterable[Strategy[T]], soup: BeautifulSoup) -> Optional[T]:
    for strategy in strategies:
        value = strategy(soup)
        if value is not None:
            logger.debug("Strategy %s matched", getattr(strategy, "__name__", strategy))
            return value
    return None


def _is_real_name(name: Optional[str]) -> bool:
    return bool(name) and name != DEFAULT_STORE_NAME


# --- store name ---------------------------------------------------------------


def name_from_table(table: Mapping[str, str], store_code: str) -> Strategy[str]:
    def lookup(_soup: BeautifulSoup) -> Optional[str]:
        name = table.get(store_code)
        return name if _is_real_name(name) else None

    lookup.__name__ = "name_from_table"
    return lookup


def name_from_scripts(soup: BeautifulSoup) -> Optional[str]:
    for script in soup.find_all("script"):
        content = script.string or script.get_text()
        if not content:
            continue
        for pattern in SCRIPT_NAME_PATTERNS:
            match = pattern.search(content)
            if match:
                name = match.group(1).strip()
                if _is_real_name(name):
                    return name
    return None


def name_from_selectors(soup: BeautifulSoup) -> Optional[str]:
    for selector in NAME_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = element.get_text(strip=True)
        if _is_real_name(text) and PAGE_HEADING_MARKER not in text:
            return text
    return None


def name_from_title(soup: BeautifulSoup) -> Optional[str]:
    if soup.title is None:
        return None
    match = TITLE_NAME_RE.match(soup.title.get_text())
    if match:
        name = match.group(1).strip()
        if _is_real_name(name):
            return name
    return None


def extract_store_name(
    soup: BeautifulSoup, store_code: str, store_names: Mapping[str, str]
) -> Optional[str]:
    """Store name from the page, or None when no strategy recognised one."""
    strategies = (
        name_from_table(store_names, store_code),
        name_from_scripts,
        name_from_selectors,
        name_from_title,
    )
    return first_match(strategies, soup)


# --- availability -------------------------------------------------------------


def _parse_count_text(text: str) -> Optional[Availability]:
    match = AVAILABLE_OF_TOTAL_RE.search(text)
    if match:
        available, total = int(match.group(1)), int(match.group(2))
    else:
        match = AVAILABLE_RE.search(text)
        if not match:
            return None
        available = int(match.group(1))
        total_match = TOTAL_RE.search(text)
        total = int(total_match.group(1)) if total_match else available
    return Availability(available=available, total=total, status=determine_status(available, total))


def availability_from_selectors(soup: BeautifulSoup) -> Optional[Availability]:
    for selector in VACANCY_SELECTORS:
        elements = soup.select(selector)
        if not elements:
            continue
        parsed = _parse_count_text(" ".join(el.get_text() for el in elements))
        if parsed is not None:
            return parsed
    return None


def availability_from_rows(soup: BeautifulSoup) -> Optional[Availability]:
    for row in soup.find_all(["tr", "li"]):
        text = row.get_text()
        if not any(keyword in text for keyword in ROW_KEYWORDS):
            continue
        match = AVAILABLE_RE.search(text)
        if match:
            available = int(match.group(1))
            return Availability(
                available=available,
                total=available,
                status=determine_status(available, available),
            )
    return None


AVAILABILITY_STRATEGIES: tuple[Strategy[Availability], ...] = (
    availability_from_selectors,
    availability_from_rows,
)


def extract_availability(soup: BeautifulSoup) -> Availability:
    return first_match(AVAILABILITY_STRATEGIES, soup) or UNKNOWN_AVAILABILITY


# --- last updated -------------------------------------------------------------


def clock_from_selectors(soup: BeautifulSoup) -> Optional[time]:
    for selector in UPDATED_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        match = CLOCK_RE.search(element.get_text(strip=True))
        if not match:
            continue
        try:
            return time(int(match.group(1)), int(match.group(2)))
        except ValueError:
            continue
    return None


UPDATED_STRATEGIES: tuple[Strategy[time], ...] = (clock_from_selectors,)


def extract_last_updated(soup: BeautifulSoup, now: datetime) -> datetime:
    """Page clock ("10:30更新") on today's date, or ``now`` when the page has none."""
    clock = first_match(UPDATED_STRATEGIES, soup)
    if clock is None:
        return now
    return now.replace(hour=clock.hour, minute=clock.minute, second=0, microsecond=0)


def normalize_vacancy_page(
    html: str,
    store_code: str,
    store_names: Mapping[str, str],
    now: Callable[[], datetime] = datetime.now,
) -> VacancyRecord:
    retrieved_at = now()
    soup = BeautifulSoup(html, "html.parser")
    name = extract_store_name(soup, store_code, store_names)
    if name is None:
        logger.info("Store name not found for %s, using default", store_code)
    return VacancyRecord(
        store_code=store_code,
        store_name=name or DEFAULT_STORE_NAME,
        availability=extract_availability(soup),
        upstream_updated_at=extract_last_updated(soup, retrieved_at),
        fetched_at=retrieved_at,
    )
