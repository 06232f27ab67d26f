"""In-flight payment tracking for duplicate prevention."""

from settlement.tracking.tracker import TransactionTracker, fingerprint_for

__all__ = ["TransactionTracker", "fingerprint_for"]
