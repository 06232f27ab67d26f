"""Tests for TransactionTracker -- fingerprints, duplicate detection and expiry."""

import pytest

from fakes import FakeClock
from settlement.config import TrackerSettings
from settlement.exceptions import DuplicateTransaction
from settlement.models import NATIVE, FungibleToken, PaymentIntent, TxStatus
from settlement.tracking.tracker import TransactionTracker, fingerprint_for


@pytest.fixture
def tracker(clock: FakeClock) -> TransactionTracker:
    return TransactionTracker(TrackerSettings(ttl_seconds=60.0), clock=clock)


class TestFingerprint:
    def test_same_intent_same_fingerprint(self) -> None:
        a = PaymentIntent("alice", "game", 1_000, NATIVE)
        b = PaymentIntent("alice", "game", 1_000, NATIVE)
        assert fingerprint_for(a) == fingerprint_for(b)

    def test_components_change_fingerprint(self) -> None:
        base = PaymentIntent("alice", "game", 1_000, NATIVE)
        variants = [
            PaymentIntent("bob", "game", 1_000, NATIVE),
            PaymentIntent("alice", "other", 1_000, NATIVE),
            PaymentIntent("alice", "game", 1_001, NATIVE),
            PaymentIntent("alice", "game", 1_000, FungibleToken("mint")),
        ]
        fingerprints = {fingerprint_for(v) for v in variants}
        assert fingerprint_for(base) not in fingerprints
        assert len(fingerprints) == len(variants)

    def test_format(self) -> None:
        intent = PaymentIntent("alice", "game", 42, NATIVE)
        assert fingerprint_for(intent) == "alice-game-42-SOL"


class TestDuplicateDetection:
    def test_unknown_is_not_duplicate(self, tracker: TransactionTracker) -> None:
        assert not tracker.is_duplicate("fp")

    def test_pending_is_duplicate(self, tracker: TransactionTracker) -> None:
        tracker.add_transaction("fp")
        assert tracker.is_duplicate("fp")

    def test_adding_pending_twice_raises(self, tracker: TransactionTracker) -> None:
        tracker.add_transaction("fp")
        with pytest.raises(DuplicateTransaction) as exc_info:
            tracker.add_transaction("fp")
        assert exc_info.value.fingerprint == "fp"

    def test_confirmed_is_duplicate(self, tracker: TransactionTracker) -> None:
        tracker.add_transaction("fp")
        tracker.update_status("fp", TxStatus.CONFIRMED, signature="sig")
        assert tracker.is_duplicate("fp")
        with pytest.raises(DuplicateTransaction):
            tracker.add_transaction("fp")

    def test_failed_allows_retry(self, tracker: TransactionTracker) -> None:
        tracker.add_transaction("fp")
        tracker.update_status("fp", TxStatus.FAILED)

        assert not tracker.is_duplicate("fp")
        entry = tracker.add_transaction("fp")
        assert entry.status is TxStatus.PENDING


class TestExpiry:
    def test_entry_expires_after_ttl(
        self, tracker: TransactionTracker, clock: FakeClock
    ) -> None:
        tracker.add_transaction("fp")
        tracker.update_status("fp", TxStatus.CONFIRMED)

        clock.advance(60.0)
        assert tracker.is_duplicate("fp")

        clock.advance(0.5)
        assert not tracker.is_duplicate("fp")
        assert tracker.get("fp") is None
        assert len(tracker) == 0

    def test_pending_entries_expire_too(
        self, tracker: TransactionTracker, clock: FakeClock
    ) -> None:
        tracker.add_transaction("fp")
        clock.advance(61.0)
        tracker.add_transaction("fp")
        assert len(tracker) == 1

    def test_only_old_entries_removed(
        self, tracker: TransactionTracker, clock: FakeClock
    ) -> None:
        tracker.add_transaction("old")
        clock.advance(30.0)
        tracker.add_transaction("new")
        clock.advance(31.0)

        assert tracker.get("old") is None
        assert tracker.get("new") is not None


class TestUpdateStatus:
    def test_records_signature(self, tracker: TransactionTracker) -> None:
        tracker.add_transaction("fp")
        tracker.update_status("fp", TxStatus.CONFIRMED, signature="sig-1")

        entry = tracker.get("fp")
        assert entry is not None
        assert entry.status is TxStatus.CONFIRMED
        assert entry.signature == "sig-1"

    def test_unknown_fingerprint_is_noop(self, tracker: TransactionTracker) -> None:
        tracker.update_status("missing", TxStatus.FAILED)
        assert len(tracker) == 0

    def test_terminal_status_transitions_once(self, tracker: TransactionTracker) -> None:
        tracker.add_transaction("fp")
        tracker.update_status("fp", TxStatus.CONFIRMED)
        tracker.update_status("fp", TxStatus.FAILED)

        entry = tracker.get("fp")
        assert entry is not None
        assert entry.status is TxStatus.CONFIRMED

    def test_pending_is_not_a_terminal_status(self, tracker: TransactionTracker) -> None:
        tracker.add_transaction("fp")
        with pytest.raises(ValueError):
            tracker.update_status("fp", TxStatus.PENDING)
