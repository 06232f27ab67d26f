"""Bounded retry with an explicit outcome and a pluggable classifier.

run_with_retry() never raises for failures of the wrapped operation. It
returns a RetryResult that says whether the operation succeeded, failed
fatally, or ran out of attempts, so the policy can be tested without any
network calls and the caller decides what to surface.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from settlement.exceptions import SettlementError, TransientNetworkError
from settlement.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Lower-cased fragments of ledger/RPC error messages that indicate a
# transient condition rather than a rejected transaction.
_TRANSIENT_MARKERS = (
    "blockhash not found",
    "block height exceeded",
    "was not confirmed",
    "timed out",
    "connection closed",
    "connection reset",
    "rate limited",
    "too many requests",
)


def is_transient_error(exc: BaseException) -> bool:
    """Classify an error as retryable (True) or fatal (False).

    Settlement errors are trusted as classified by whoever raised them; only
    TransientNetworkError is retryable among them. Foreign exceptions are
    retryable when they are timeouts, connection errors, or carry one of the
    known transient messages.
    """
    if isinstance(exc, TransientNetworkError):
        return True
    if isinstance(exc, SettlementError):
        return False
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


@dataclass
class RetryResult(Generic[T]):
    """Outcome of run_with_retry.

    Exactly one of value/error is meaningful: error is None on success.
    exhausted is True when every attempt failed with a retryable error.
    """

    value: T | None = None
    error: BaseException | None = None
    attempts: int = 0
    exhausted: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_with_retry(
    operation: Callable[[int], Awaitable[T]],
    *,
    is_retryable: Callable[[BaseException], bool],
    max_retries: int,
    delay_seconds: float,
    before_retry: Callable[[int], Awaitable[None]] | None = None,
) -> RetryResult[T]:
    """Run operation up to max_retries + 1 times.

    Before every retry, before_retry(attempt) runs first (e.g. to refresh a
    sequencing token and re-sign), then the loop waits delay_seconds. An
    error raised by before_retry is classified like an error of the
    operation itself and uses up that attempt: the operation is not run
    for it, so a failing refresh leaves fewer operation runs than
    max_retries + 1. RetryResult.attempts counts attempts, not operation
    runs.

    Args:
        operation: Coroutine function receiving the 0-based attempt number.
        is_retryable: Classifier; False ends the loop immediately.
        max_retries: Additional attempts after the first.
        delay_seconds: Fixed wait before each retry.
        before_retry: Optional coroutine function run before each retry.

    Returns:
        RetryResult with the value, or the fatal/last error.
    """
    max_attempts = max_retries + 1
    last_error: BaseException | None = None

    for attempt in range(max_attempts):
        try:
            if attempt > 0:
                if before_retry is not None:
                    await before_retry(attempt)
                await asyncio.sleep(delay_seconds)
            value = await operation(attempt)
            return RetryResult(value=value, attempts=attempt + 1)
        except Exception as exc:
            last_error = exc
            if not is_retryable(exc):
                logger.warning(
                    "attempt_failed_fatal",
                    attempt=attempt + 1,
                    max_attempts=max_attempts,
                    error=str(exc),
                )
                return RetryResult(error=exc, attempts=attempt + 1)

            logger.warning(
                "attempt_failed_retryable",
                attempt=attempt + 1,
                max_attempts=max_attempts,
                delay=delay_seconds,
                error=str(exc),
            )

    logger.error("retries_exhausted", attempts=max_attempts, error=str(last_error))
    return RetryResult(error=last_error, attempts=max_attempts, exhausted=True)
