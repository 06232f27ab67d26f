"""Custom exceptions for the settlement layer.

Every error carries its context as attributes so callers can render an
actionable message without parsing strings. All exceptions live here to
avoid circular imports between the component modules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from settlement.models import Currency


class SettlementError(Exception):
    """Base exception for all settlement errors."""


class InvalidAmount(SettlementError, ValueError):
    """Raised when an amount is negative, non-integral or out of range."""

    def __init__(self, amount: object, reason: str = "amount must be a non-negative integer") -> None:
        super().__init__(f"Invalid amount {amount!r}: {reason}")
        self.amount = amount
        self.reason = reason


class UnsupportedCurrency(SettlementError, ValueError):
    """Raised when a currency kind has no handling in a component."""

    def __init__(self, currency: object) -> None:
        super().__init__(f"Unsupported currency: {currency!r}")
        self.currency = currency


class InsufficientFunds(SettlementError):
    """Raised when the payer cannot cover the required amount.

    Attributes:
        currency: Currency the shortfall is in.
        required: Amount needed, in smallest units.
        available: Spendable amount, in smallest units. May be negative
            when the balance sits below the reserve floor.
    """

    def __init__(self, currency: Currency, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient {currency.symbol} balance. "
            f"Required: {required}, Available: {available}"
        )
        self.currency = currency
        self.required = required
        self.available = available

    @property
    def shortfall(self) -> int:
        """Smallest-unit amount missing to satisfy the payment."""
        return self.required - self.available


class RateLimited(SettlementError):
    """Raised when the submission budget for the current window is spent."""

    def __init__(self, wait_time_ms: int) -> None:
        super().__init__(
            f"Rate limit exceeded. Please wait {wait_time_ms}ms before trying again."
        )
        self.wait_time_ms = wait_time_ms


class DuplicateTransaction(SettlementError):
    """Raised when an identical payment is already pending or confirmed."""

    def __init__(self, fingerprint: str) -> None:
        super().__init__(
            "Duplicate transaction detected. "
            "Please wait for the previous transaction to complete."
        )
        self.fingerprint = fingerprint


class SimulationError(SettlementError):
    """Raised when the ledger reports an error while dry-running a transaction."""

    def __init__(self, message: str, logs: list[str] | None = None) -> None:
        super().__init__(f"Transaction simulation failed: {message}")
        self.message = message
        self.logs = list(logs or [])


class TransientNetworkError(SettlementError, ConnectionError):
    """Raised by ledger adapters for failures worth retrying.

    Covers stale sequencing tokens, confirmation timeouts, dropped
    connections and network-side rate limiting. Never surfaced by the
    submitter on its own; only wrapped in RetriesExhausted.
    """


class LedgerRequestError(SettlementError):
    """Raised by ledger adapters for non-retryable request failures."""


class SubmissionError(SettlementError):
    """Base for failures that ended a submission.

    Attributes:
        attempts: Total submission attempts made.
        last_error: The underlying error of the final attempt.
    """

    def __init__(self, message: str, attempts: int, last_error: BaseException | None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class RetriesExhausted(SubmissionError):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        super().__init__(
            f"Transaction failed after {attempts} attempts: {last_error}",
            attempts,
            last_error,
        )


class TransactionRejected(SubmissionError):
    """Raised when a submission failed with a non-retryable error."""

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        super().__init__(
            f"Transaction rejected on attempt {attempts}: {last_error}",
            attempts,
            last_error,
        )
