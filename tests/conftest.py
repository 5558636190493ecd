"""
Shared fixtures for the vacancy API tests.

Nothing here touches the network or launches a browser: upstream payloads and
pages are canned, clocks and sleeps are fakes.
"""

from datetime import datetime

import pytest

from vacancy_api.infrastructure.models import Availability, VacancyRecord, VacancyStatus


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async stand-in for asyncio.sleep that only records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 15, 23, 7, 30)


@pytest.fixture
def seat_payload() -> dict:
    """Typical empty-seat response with a darts entry."""
    return {
        "status": 0,
        "store_name": "快活CLUB 16号相模原大野台店",
        "update_time": "2025-01-15 23:02:00",
        "seat_type": [
            {"seat_name": "オープン席", "category_id": "1", "seat_status": "残12席", "status_no": "1"},
            {"seat_name": "ダーツ", "category_id": "10", "seat_status": "残3席", "status_no": "3"},
        ],
    }


@pytest.fixture
def make_record():
    def _make(store_code: str = "20333", available: int = 3, fetched_at: datetime = None) -> VacancyRecord:
        stamp = fetched_at or datetime(2025, 1, 15, 23, 4)
        return VacancyRecord(
            store_code=store_code,
            store_name="Test Store",
            availability=Availability(available=available, total=available, status=VacancyStatus.VACANT),
            upstream_updated_at=stamp,
            fetched_at=stamp,
        )

    return _make
