"""Assembly of value-transfer operations for a payment.

Two shapes:
  - Direct: the whole gross amount goes to the payee, which does its own
    fee accounting (e.g. a game account that splits pot and fee on-chain).
  - Split: FeeCalculator divides the gross amount; the pot goes to the
    payee and the fee to a fee destination.

Token payments prepend account-creation operations for destinations that
lack a token account, inside the same transaction, so the settlement stays
atomic at the ledger level. Zero-amount legs are never emitted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from settlement.exceptions import UnsupportedCurrency
from settlement.fees.calculator import FeeCalculator
from settlement.logging import get_logger
from settlement.models import (
    CreateTokenAccount,
    FeeSplit,
    FungibleToken,
    NativeCurrency,
    Operation,
    PaymentIntent,
    Transfer,
    UnsignedTransaction,
)

if TYPE_CHECKING:
    from settlement.ledger.client import LedgerClient

logger = get_logger(__name__)


class TransactionBuilder:
    """Builds operation lists and unsigned transactions.

    Args:
        ledger: Ledger client for token account lookups and sequencing tokens.
        fee_calculator: Fee split for split transfers.
    """

    def __init__(self, ledger: LedgerClient, fee_calculator: FeeCalculator) -> None:
        self._ledger = ledger
        self._fee_calculator = fee_calculator

    async def build_direct_transfer(self, intent: PaymentIntent) -> list[Operation]:
        """Single transfer of the full gross amount from payer to payee."""
        legs = [(intent.payee, intent.amount)]
        return await self._build(intent, legs)

    async def build_split_transfer(
        self, intent: PaymentIntent, fee_destination: str
    ) -> tuple[list[Operation], FeeSplit]:
        """Pot to the payee and fee to fee_destination.

        Returns:
            Tuple of (operations, fee split). Transfer amounts in operations
            sum to intent.amount exactly.
        """
        if not fee_destination:
            raise ValueError("fee destination is required for a split transfer")

        split = self._fee_calculator.split_for_settlement(intent.amount)
        legs = [(intent.payee, split.pot_amount), (fee_destination, split.fee_amount)]
        operations = await self._build(intent, legs)

        logger.debug(
            "split_transfer_built",
            gross=intent.amount,
            pot=split.pot_amount,
            fee=split.fee_amount,
            operations=len(operations),
        )
        return operations, split

    async def assemble(self, fee_payer: str, operations: list[Operation]) -> UnsignedTransaction:
        """Bind operations to a fee payer and a fresh sequencing token."""
        token = await self._ledger.get_latest_sequencing_token()
        return UnsignedTransaction(
            fee_payer=fee_payer,
            operations=tuple(operations),
            sequencing_token=token,
        )

    async def _build(
        self, intent: PaymentIntent, legs: list[tuple[str, int]]
    ) -> list[Operation]:
        legs = [(destination, amount) for destination, amount in legs if amount > 0]
        currency = intent.currency

        transfers: list[Operation] = [
            Transfer(
                source=intent.payer,
                destination=destination,
                amount=amount,
                currency=currency,
            )
            for destination, amount in legs
        ]

        if isinstance(currency, NativeCurrency):
            return transfers
        if isinstance(currency, FungibleToken):
            setup = await self._missing_token_accounts(
                intent.payer, [destination for destination, _ in legs], currency
            )
            return setup + transfers
        raise UnsupportedCurrency(currency)

    async def _missing_token_accounts(
        self, funder: str, owners: list[str], token: FungibleToken
    ) -> list[Operation]:
        operations: list[Operation] = []
        seen: set[str] = set()
        for owner in owners:
            if owner in seen:
                continue
            seen.add(owner)
            if not await self._ledger.token_account_exists(owner, token.token_id):
                logger.debug("token_account_missing", owner=owner, token=token.key)
                operations.append(
                    CreateTokenAccount(funder=funder, owner=owner, token_id=token.token_id)
                )
        return operations
