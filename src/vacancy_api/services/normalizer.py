"""
Structured seat payload normalization.

Maps the JSON document of the empty-seat endpoint (fetched directly or captured
while the vacancy page rendered) onto a ``VacancyRecord``. Nothing here does I/O
and nothing raises on odd input: unknown shapes degrade to default values.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Callable, Optional

from vacancy_api.config import DEFAULT_STORE_NAME
from vacancy_api.infrastructure.models import (
    UNKNOWN_AVAILABILITY,
    Availability,
    VacancyRecord,
    VacancyStatus,
)

logger = logging.getLogger(__name__)

FULL_TOKENS = frozenset({"満席", "×"})
REMAINING_SEATS_RE = re.compile(r"残?(\d+)席")

STATUS_NO_MAP: dict[int, VacancyStatus] = {
    1: VacancyStatus.VACANT,
    2: VacancyStatus.CROWDED,
    3: VacancyStatus.CROWDED,  # few seats left
    4: VacancyStatus.FULL,
}

CROWDED_RATIO = 0.3
STATUS_NO_RE = re.compile(r"\s*(\d+)")

UPDATE_TIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
)


def parse_seat_status(text: Optional[str]) -> int:
    """Seats left from a status string: "満席" -> 0, "残3席" -> 3, "残10席以上" -> 10."""
    if not text:
        return 0
    text = text.strip()
    if text in FULL_TOKENS:
        return 0
    match = REMAINING_SEATS_RE.search(text)
    if match:
        return int(match.group(1))
    return 0


def map_status_no(status_no: Any) -> VacancyStatus:
    """Map the upstream status code, reading only its leading digits ("3件" -> 3)."""
    if status_no is None:
        return VacancyStatus.UNKNOWN
    match = STATUS_NO_RE.match(str(status_no))
    if match is None:
        return VacancyStatus.UNKNOWN
    return STATUS_NO_MAP.get(int(match.group(1)), VacancyStatus.UNKNOWN)


def determine_status(available: int, total: int) -> VacancyStatus:
    if total == 0:
        return VacancyStatus.UNKNOWN
    if available == 0:
        return VacancyStatus.FULL
    if available / total < CROWDED_RATIO:
        return VacancyStatus.CROWDED
    return VacancyStatus.VACANT


def parse_update_time(value: Any, fallback: datetime) -> datetime:
    """Parse the upstream update time permissively; fall back to ``fallback``."""
    if not value or not isinstance(value, str):
        return fallback
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in UPDATE_TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    logger.warning("Failed to parse update_time: %r", value)
    return fallback


def find_seat_entry(
    payload: dict[str, Any], seat_name: str, category_id: str
) -> Optional[dict[str, Any]]:
    seat_types = payload.get("seat_type") or []
    if not isinstance(seat_types, list):
        return None
    for seat in seat_types:
        if not isinstance(seat, dict):
            continue
        if seat.get("seat_name") == seat_name or str(seat.get("category_id")) == category_id:
            return seat
    return None


def seat_availability(seat: Optional[dict[str, Any]]) -> Availability:
    if seat is None:
        return UNKNOWN_AVAILABILITY
    available = parse_seat_status(seat.get("seat_status"))
    # The endpoint does not report capacity, so total mirrors what is left.
    total = available if available > 0 else 0
    status_no = seat.get("status_no")
    if status_no is None or status_no == "":
        status = determine_status(available, total)
    else:
        status = map_status_no(status_no)
    return Availability(available=available, total=total, status=status)


def normalize_seat_payload(
    payload: dict[str, Any],
    store_code: str,
    seat_name: str,
    category_id: str,
    store_name: Optional[str] = None,
    now: Callable[[], datetime] = datetime.now,
) -> VacancyRecord:
    """Build a record from an empty-seat payload.

    ``store_name`` wins over the payload's own ``store_name`` when given.
    """
    retrieved_at = now()
    seat = find_seat_entry(payload, seat_name, category_id)
    if seat is None:
        logger.warning("No %s entry in seat payload for %s", seat_name, store_code)
    availability = seat_availability(seat)

    name = store_name or payload.get("store_name") or DEFAULT_STORE_NAME
    return VacancyRecord(
        store_code=store_code,
        store_name=name,
        availability=availability,
        upstream_updated_at=parse_update_time(payload.get("update_time"), retrieved_at),
        fetched_at=retrieved_at,
    )
