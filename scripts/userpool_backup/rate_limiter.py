"""Minimum-interval throttle shared by every call of one restore run."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger("userpool_backup.rate_limiter")

T = TypeVar("T")

DEFAULT_MIN_INTERVAL_MS = 2000


class RateLimiter:
    """Spaces out the start of successive calls by at least ``min_interval_ms``.

    One instance is created per restore and handed to the importer; nothing
    else reads or writes its state.
    """

    def __init__(
        self,
        min_interval_ms: int = DEFAULT_MIN_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval_ms < 0:
            raise ValueError(f"min_interval_ms must be >= 0, got {min_interval_ms}")
        self.min_interval = min_interval_ms / 1000.0
        self._clock = clock
        self._sleep = sleep
        self._last_start: Optional[float] = None

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Wait for the next free slot, then run ``func``."""
        if self._last_start is not None:
            wait = self._last_start + self.min_interval - self._clock()
            if wait > 0:
                logger.debug("Throttling for %.3fs", wait)
                self._sleep(wait)
        self._last_start = self._clock()
        return func(*args, **kwargs)
