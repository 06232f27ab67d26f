"""Simulate-then-submit with bounded retry.

State machine per transaction:

    BUILT -> SIMULATED -> SUBMITTED -> CONFIRMED
                              |  ^
                              v  |  retry: refresh sequencing token,
                            (retry)  re-sign, wait retry_delay_ms
                              |
                              v
                            FAILED

Errors reported by a simulation are fatal: they mean the transaction is
structurally invalid, not that the network hiccuped. Failed simulation
requests and submission errors are classified by is_transient_error(); only
transient ones are retried, up to max_retries additional attempts.
Individual transient errors are never surfaced; the caller sees either the
signature, SimulationError or TransactionRejected (fatal error), or
RetriesExhausted (last error attached).
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from settlement.config import RetrySettings
from settlement.exceptions import RetriesExhausted, SimulationError, TransactionRejected
from settlement.execution.retry import is_transient_error, run_with_retry
from settlement.logging import get_logger
from settlement.models import SignedTransaction, SimulationResult, SubmissionResult, UnsignedTransaction

if TYPE_CHECKING:
    from settlement.ledger.client import LedgerClient
    from settlement.ledger.signer import WalletSigner

logger = get_logger(__name__)


class SubmissionState(str, Enum):
    """Lifecycle states of a single transaction submission."""

    BUILT = "built"
    SIMULATED = "simulated"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class Submitter:
    """Simulates, signs and submits transactions with retry.

    Args:
        ledger: Ledger client for simulation, sequencing tokens and submission.
        signer: Wallet signer capability.
        settings: Retry budget, delay and preflight default.
        classifier: Retryable-vs-fatal predicate for simulation request and
            submission errors.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        signer: WalletSigner,
        settings: RetrySettings,
        classifier: Callable[[BaseException], bool] = is_transient_error,
    ) -> None:
        self._ledger = ledger
        self._signer = signer
        self._settings = settings
        self._classifier = classifier

    async def simulate(self, tx: UnsignedTransaction) -> SimulationResult:
        """Dry-run tx against the ledger.

        A simulation request that fails transiently (timeout, dropped
        connection) is retried with the same budget and delay as submission.

        Raises:
            SimulationError: If the simulation reports an error, or the
                simulation request fails with a non-retryable error.
            RetriesExhausted: If every simulation request failed transiently.
        """

        async def request(attempt: int) -> SimulationResult:
            return await self._ledger.simulate_transaction(tx)

        outcome = await run_with_retry(
            request,
            is_retryable=self._classifier,
            max_retries=self._settings.max_retries,
            delay_seconds=self._settings.retry_delay_ms / 1000,
        )
        if not outcome.ok:
            if outcome.exhausted:
                raise RetriesExhausted(outcome.attempts, outcome.error) from outcome.error
            if isinstance(outcome.error, SimulationError):
                raise outcome.error
            raise SimulationError(
                f"Simulation request failed: {outcome.error}"
            ) from outcome.error

        result = outcome.value
        if not result.ok:
            logger.warning(
                "simulation_failed",
                error=result.error,
                log_lines=len(result.logs),
            )
            raise SimulationError(result.error or "unknown error", list(result.logs))

        logger.debug("submission_state", state=SubmissionState.SIMULATED.value)
        return result

    async def submit(self, tx: UnsignedTransaction) -> SubmissionResult:
        """Sign and submit tx, retrying transient failures.

        Each retry fetches a fresh sequencing token and re-signs before
        waiting retry_delay_ms and resubmitting.

        Returns:
            SubmissionResult with the confirmed signature and attempt count.

        Raises:
            TransactionRejected: On the first non-retryable error.
            RetriesExhausted: After max_retries + 1 transient failures.
        """
        current = tx
        signed: SignedTransaction | None = None

        async def refresh(attempt: int) -> None:
            nonlocal current, signed
            token = await self._ledger.get_latest_sequencing_token()
            current = current.with_sequencing_token(token)
            signed = await self._signer.sign(current)
            logger.info("sequencing_token_refreshed", attempt=attempt + 1)

        async def attempt_once(attempt: int) -> str:
            nonlocal signed
            if signed is None:
                signed = await self._signer.sign(current)
            logger.debug(
                "submission_state",
                state=SubmissionState.SUBMITTED.value,
                attempt=attempt + 1,
            )
            return await self._ledger.submit_and_confirm(signed)

        result = await run_with_retry(
            attempt_once,
            is_retryable=self._classifier,
            max_retries=self._settings.max_retries,
            delay_seconds=self._settings.retry_delay_ms / 1000,
            before_retry=refresh,
        )

        if result.ok and result.value is not None:
            logger.info(
                "submission_state",
                state=SubmissionState.CONFIRMED.value,
                signature=result.value,
                attempts=result.attempts,
            )
            return SubmissionResult(signature=result.value, attempts=result.attempts)

        logger.error(
            "submission_state",
            state=SubmissionState.FAILED.value,
            attempts=result.attempts,
            exhausted=result.exhausted,
            error=str(result.error),
        )
        if result.exhausted:
            raise RetriesExhausted(result.attempts, result.error) from result.error
        raise TransactionRejected(result.attempts, result.error) from result.error

    async def send(
        self, tx: UnsignedTransaction, *, skip_simulation: bool | None = None
    ) -> SubmissionResult:
        """Simulate (unless skipped) and then submit tx.

        Args:
            tx: Built, unsigned transaction.
            skip_simulation: Override RetrySettings.skip_preflight.
        """
        logger.debug(
            "submission_state",
            state=SubmissionState.BUILT.value,
            operations=len(tx.operations),
        )
        skip = self._settings.skip_preflight if skip_simulation is None else skip_simulation
        if not skip:
            await self.simulate(tx)
        return await self.submit(tx)
