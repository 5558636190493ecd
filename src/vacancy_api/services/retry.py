"""Retry policy with exponential backoff for async acquisition channels."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def exponential_backoff(attempt: int) -> float:
    """Seconds to wait after failed attempt ``attempt`` (1-based): 2, 4, 8, ..."""
    return float(2**attempt)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff: Callable[[int], float] = exponential_backoff
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def with_attempts(self, max_attempts: int) -> RetryPolicy:
        return RetryPolicy(max_attempts=max_attempts, backoff=self.backoff, sleep=self.sleep)

    async def run(self, call: Callable[[], Awaitable[T]], label: str = "call") -> T:
        """Await ``call`` until it succeeds or attempts run out.

        The error of the final attempt is re-raised unchanged.
        """
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.info("%s: attempt %d/%d", label, attempt, self.max_attempts)
                return await call()
            except Exception as e:
                last_error = e
                if attempt < self.max_attempts:
                    delay = self.backoff(attempt)
                    logger.warning(
                        "%s failed (attempt %d/%d): %s. Retrying in %.1f seconds...",
                        label,
                        attempt,
                        self.max_attempts,
                        e,
                        delay,
                    )
                    await self.sleep(delay)
                else:
                    logger.error("%s failed after %d attempts: %s", label, self.max_attempts, e)

        raise last_error  # type: ignore[misc]
