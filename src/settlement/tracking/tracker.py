"""In-memory duplicate detection for in-flight payments.

A fingerprint is derived from (payer, payee, amount, currency) only, so a
retry of the same logical payment produces the same fingerprint and is
recognised as a duplicate while the first attempt is pending or confirmed.

Entries expire after a fixed TTL regardless of status. Expiry bounds memory
and lets the same tuple be paid again later. Tracking is process-local and
best-effort: nothing survives a restart.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from settlement.config import TrackerSettings
from settlement.exceptions import DuplicateTransaction
from settlement.logging import get_logger
from settlement.models import PaymentIntent, TrackedTransaction, TxStatus

logger = get_logger(__name__)

_ACTIVE_STATUSES = (TxStatus.PENDING, TxStatus.CONFIRMED)


def fingerprint_for(intent: PaymentIntent) -> str:
    """Deterministic identifier of a logical payment."""
    return f"{intent.payer}-{intent.payee}-{intent.amount}-{intent.currency.key}"


class TransactionTracker:
    """Tracks payment fingerprints and their lifecycle status.

    Callers check is_duplicate() and then call add_transaction() without an
    await in between; the event loop cannot switch coroutines there.

    Args:
        settings: Expiry configuration.
        clock: Monotonic clock returning seconds. Injected for tests.
    """

    def __init__(
        self,
        settings: TrackerSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = settings.ttl_seconds
        self._clock = clock
        self._entries: dict[str, TrackedTransaction] = {}

    def _clean_expired(self) -> None:
        now = self._clock()
        expired = [
            fingerprint
            for fingerprint, entry in self._entries.items()
            if now - entry.created_at > self._ttl_seconds
        ]
        for fingerprint in expired:
            del self._entries[fingerprint]
        if expired:
            logger.debug("tracked_transactions_expired", count=len(expired))

    def is_duplicate(self, fingerprint: str) -> bool:
        """True iff a live entry for fingerprint is pending or confirmed."""
        self._clean_expired()
        entry = self._entries.get(fingerprint)
        return entry is not None and entry.status in _ACTIVE_STATUSES

    def add_transaction(self, fingerprint: str, signature: str | None = None) -> TrackedTransaction:
        """Start tracking a payment attempt as pending.

        A previous failed entry for the same fingerprint is replaced.

        Raises:
            DuplicateTransaction: If the fingerprint is already pending or confirmed.
        """
        if self.is_duplicate(fingerprint):
            raise DuplicateTransaction(fingerprint)

        entry = TrackedTransaction(
            fingerprint=fingerprint,
            created_at=self._clock(),
            signature=signature,
        )
        self._entries[fingerprint] = entry
        logger.debug("transaction_tracked", fingerprint=fingerprint)
        return entry

    def update_status(
        self,
        fingerprint: str,
        status: TxStatus,
        signature: str | None = None,
    ) -> None:
        """Move a pending entry to confirmed or failed.

        Unknown (already expired) fingerprints are ignored, as are entries
        that already reached a terminal status.
        """
        if status is TxStatus.PENDING:
            raise ValueError("update_status only accepts a terminal status")

        self._clean_expired()
        entry = self._entries.get(fingerprint)
        if entry is None:
            logger.debug("status_update_for_unknown_fingerprint", fingerprint=fingerprint)
            return
        if entry.status is not TxStatus.PENDING:
            logger.warning(
                "status_already_terminal",
                fingerprint=fingerprint,
                current=entry.status.value,
                requested=status.value,
            )
            return

        entry.status = status
        if signature is not None:
            entry.signature = signature
        logger.debug("transaction_status_updated", fingerprint=fingerprint, status=status.value)

    def get(self, fingerprint: str) -> TrackedTransaction | None:
        """Return the live entry for fingerprint, if any."""
        self._clean_expired()
        return self._entries.get(fingerprint)

    def __len__(self) -> int:
        self._clean_expired()
        return len(self._entries)
