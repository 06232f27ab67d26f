"""Settlement orchestrator: one payment request end to end.

Flow for every payment:
1. Reject non-positive amounts (InvalidAmount)
2. BalanceVerifier.check_sufficient (InsufficientFunds)
3. TransactionTracker.is_duplicate (DuplicateTransaction)
4. RateLimiter.check_limit (RateLimited)
5. TransactionTracker.add_transaction -> pending
6. TransactionBuilder builds operations and assembles the transaction
7. Submitter simulates and submits with retry
8. TransactionTracker.update_status -> confirmed / failed

Steps 3-5 contain no await, so two coroutines paying the same intent cannot
both pass the duplicate check: the second one fails fast instead of queueing.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from settlement.config import AppSettings, FeeSettings
from settlement.exceptions import DuplicateTransaction, InvalidAmount, RateLimited
from settlement.execution.builder import TransactionBuilder
from settlement.execution.submitter import Submitter
from settlement.fees.calculator import FeeCalculator
from settlement.logging import get_logger, setup_logging
from settlement.models import FeeSplit, Operation, PaymentIntent, SettlementReceipt, TxStatus
from settlement.risk.balance import BalanceVerifier
from settlement.risk.rate_limiter import RateLimiter
from settlement.tracking.tracker import TransactionTracker, fingerprint_for

if TYPE_CHECKING:
    from settlement.ledger.client import LedgerClient
    from settlement.ledger.signer import WalletSigner

logger = get_logger(__name__)


class SettlementOrchestrator:
    """Runs payments through verification, deduplication, admission and submission.

    The tracker and rate limiter are shared state: pass the same instances to
    every orchestrator that should share a duplicate map and a submission
    budget.

    Args:
        balance_verifier: Pre-build funds check.
        tracker: Shared in-flight payment tracker.
        rate_limiter: Shared submission budget.
        builder: Operation and transaction assembly.
        submitter: Simulation and submission with retry.
        fee_settings: Default fee destination for split payments.
    """

    def __init__(
        self,
        balance_verifier: BalanceVerifier,
        tracker: TransactionTracker,
        rate_limiter: RateLimiter,
        builder: TransactionBuilder,
        submitter: Submitter,
        fee_settings: FeeSettings,
    ) -> None:
        self._balance_verifier = balance_verifier
        self._tracker = tracker
        self._rate_limiter = rate_limiter
        self._builder = builder
        self._submitter = submitter
        self._fee_settings = fee_settings

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        ledger: LedgerClient,
        signer: WalletSigner,
        clock: Callable[[], float] = time.monotonic,
    ) -> SettlementOrchestrator:
        """Configure logging and wire all components around a ledger client and signer."""
        setup_logging(settings.log_level)
        fee_calculator = FeeCalculator(settings.fees)
        return cls(
            balance_verifier=BalanceVerifier(ledger, settings.balance),
            tracker=TransactionTracker(settings.tracker, clock=clock),
            rate_limiter=RateLimiter(settings.rate_limit, clock=clock),
            builder=TransactionBuilder(ledger, fee_calculator),
            submitter=Submitter(ledger, signer, settings.retry),
            fee_settings=settings.fees,
        )

    @property
    def tracker(self) -> TransactionTracker:
        return self._tracker

    async def pay_entry_fee(self, intent: PaymentIntent) -> SettlementReceipt:
        """Pay the full amount to the payee, which does its own fee accounting."""
        return await self._settle(intent, fee_destination=None)

    async def pay_tournament_entry(self, intent: PaymentIntent) -> SettlementReceipt:
        """Tournament entry; currently settled exactly like an entry fee."""
        return await self.pay_entry_fee(intent)

    async def pay_with_fee_split(
        self, intent: PaymentIntent, fee_destination: str | None = None
    ) -> SettlementReceipt:
        """Pay the pot to the payee and the protocol fee to fee_destination.

        Args:
            intent: Payment to settle.
            fee_destination: Fee recipient; defaults to FeeSettings.collector.
        """
        destination = fee_destination or self._fee_settings.collector
        if not destination:
            raise ValueError("no fee destination given and FEES_COLLECTOR is not configured")
        return await self._settle(intent, fee_destination=destination)

    async def _settle(
        self, intent: PaymentIntent, fee_destination: str | None
    ) -> SettlementReceipt:
        if intent.amount <= 0:
            raise InvalidAmount(intent.amount, "payment amount must be greater than 0")

        fingerprint = fingerprint_for(intent)

        with structlog.contextvars.bound_contextvars(
            fingerprint=fingerprint,
            payer=intent.payer,
            currency=intent.currency.key,
        ):
            await self._balance_verifier.check_sufficient(
                intent.payer, intent.amount, intent.currency
            )

            # From here to add_transaction: no await
            if self._tracker.is_duplicate(fingerprint):
                logger.info("duplicate_payment_rejected")
                raise DuplicateTransaction(fingerprint)

            rate_check = self._rate_limiter.check_limit()
            if not rate_check.allowed:
                raise RateLimited(rate_check.wait_time_ms)

            self._tracker.add_transaction(fingerprint)
            logger.info(
                "payment_started",
                payee=intent.payee,
                amount=intent.amount,
                split=fee_destination is not None,
            )

            fee_split: FeeSplit | None = None
            operations: list[Operation]
            try:
                if fee_destination is None:
                    operations = await self._builder.build_direct_transfer(intent)
                else:
                    operations, fee_split = await self._builder.build_split_transfer(
                        intent, fee_destination
                    )
                tx = await self._builder.assemble(intent.payer, operations)
                result = await self._submitter.send(tx)
            except Exception:
                self._tracker.update_status(fingerprint, TxStatus.FAILED)
                logger.warning("payment_failed", exc_info=True)
                raise

            self._tracker.update_status(
                fingerprint, TxStatus.CONFIRMED, signature=result.signature
            )
            logger.info(
                "payment_settled",
                signature=result.signature,
                attempts=result.attempts,
            )
            return SettlementReceipt(
                fingerprint=fingerprint,
                signature=result.signature,
                intent=intent,
                operations=tuple(operations),
                attempts=result.attempts,
                fee_split=fee_split,
            )
