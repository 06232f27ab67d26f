"""Sliding-window submission rate limiter.

One instance is shared by every caller in the process: the window models a
global submission budget towards the ledger network, not a per-payer quota.
check_limit() never awaits, so under asyncio the evict/count/record sequence
cannot interleave with another coroutine.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable

from settlement.config import RateLimitSettings
from settlement.logging import get_logger
from settlement.models import RateCheck

logger = get_logger(__name__)


class RateLimiter:
    """Admits at most `max_submissions` calls per sliding `window_ms`.

    Args:
        settings: Window length and capacity.
        clock: Monotonic clock returning seconds. Injected for tests.
    """

    def __init__(
        self,
        settings: RateLimitSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window_ms = settings.window_ms
        self._max_submissions = settings.max_submissions
        self._clock = clock
        self._admitted: deque[int] = deque()

    def _now_ms(self) -> int:
        return round(self._clock() * 1000)

    def _evict(self, now_ms: int) -> None:
        while self._admitted and now_ms - self._admitted[0] >= self._window_ms:
            self._admitted.popleft()

    def check_limit(self) -> RateCheck:
        """Admit the call if the window has capacity, recording it.

        Returns:
            RateCheck(allowed=True) when admitted; otherwise allowed=False and
            wait_time_ms until the oldest admission leaves the window.
        """
        now_ms = self._now_ms()
        self._evict(now_ms)

        if len(self._admitted) < self._max_submissions:
            self._admitted.append(now_ms)
            return RateCheck(allowed=True, wait_time_ms=0)

        wait_time_ms = max(0, self._window_ms - (now_ms - self._admitted[0]))
        logger.warning(
            "rate_limit_exceeded",
            window_ms=self._window_ms,
            max_submissions=self._max_submissions,
            wait_time_ms=wait_time_ms,
        )
        return RateCheck(allowed=False, wait_time_ms=wait_time_ms)

    @property
    def in_window(self) -> int:
        """Number of admissions currently counted against the window."""
        self._evict(self._now_ms())
        return len(self._admitted)
