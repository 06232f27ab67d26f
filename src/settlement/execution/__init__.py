"""Transaction building and submission with retry."""

from settlement.execution.builder import TransactionBuilder
from settlement.execution.retry import RetryResult, is_transient_error, run_with_retry
from settlement.execution.submitter import SubmissionState, Submitter

__all__ = [
    "RetryResult",
    "SubmissionState",
    "Submitter",
    "TransactionBuilder",
    "is_transient_error",
    "run_with_retry",
]
