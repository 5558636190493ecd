from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional


class VacancyStatus(str, enum.Enum):
    VACANT = "vacant"
    CROWDED = "crowded"
    FULL = "full"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Availability:
    available: int = 0
    total: int = 0
    status: VacancyStatus = VacancyStatus.UNKNOWN


UNKNOWN_AVAILABILITY = Availability()


@dataclass(frozen=True)
class VacancyRecord:
    """Canonical vacancy snapshot for one store, rebuilt on every successful fetch."""

    store_code: str
    store_name: str
    availability: Availability
    upstream_updated_at: datetime
    fetched_at: datetime = field(default_factory=datetime.now)

    def with_fetched_at(self, fetched_at: datetime) -> VacancyRecord:
        return replace(self, fetched_at=fetched_at)


@dataclass(frozen=True)
class RenderedPage:
    """Raw output of one browser page load."""

    html: str
    captured: Optional[dict[str, Any]] = None
    captured_url: Optional[str] = None
