"""Pre-build balance verification.

Checks run before any transaction is built so a payer is told about a
shortfall without a simulation round trip. Read-only: only balance queries
against the ledger client.

Native currency:
    required  = amount + estimated network fee
    available = balance - reserve floor (rent-exempt minimum stays untouched)

Fungible token:
    The payer's native balance must cover the network fee, then the token
    account must hold the amount. A missing token account counts as a zero
    balance, reported as ordinary insufficient funds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from settlement.config import BalanceSettings
from settlement.exceptions import InsufficientFunds, UnsupportedCurrency
from settlement.logging import get_logger
from settlement.models import NATIVE, Currency, FungibleToken, NativeCurrency, validate_amount

if TYPE_CHECKING:
    from settlement.ledger.client import LedgerClient

logger = get_logger(__name__)


class BalanceVerifier:
    """Verifies a payer can afford a payment before it is built.

    Args:
        ledger: Ledger client used for balance queries.
        settings: Reserve floor and network fee estimate.
        native: The ledger's native currency.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        settings: BalanceSettings,
        native: NativeCurrency = NATIVE,
    ) -> None:
        self._ledger = ledger
        self._settings = settings
        self._native = native

    async def check_sufficient(self, payer: str, amount: int, currency: Currency) -> None:
        """Raise InsufficientFunds unless payer can cover amount in currency.

        Args:
            payer: Payer identity.
            amount: Amount in smallest units.
            currency: Currency of the payment.

        Raises:
            InvalidAmount: If amount is not a u64-safe integer.
            InsufficientFunds: With the exact required and available amounts.
            UnsupportedCurrency: For an unknown currency kind.
        """
        validate_amount(amount)

        if isinstance(currency, NativeCurrency):
            await self._check_native(payer, amount + self._settings.estimated_network_fee)
        elif isinstance(currency, FungibleToken):
            await self._check_token(payer, amount, currency)
        else:
            raise UnsupportedCurrency(currency)

    async def _check_native(self, payer: str, required: int) -> None:
        balance = await self._ledger.get_balance(payer, self._native)
        available = balance - self._settings.reserve_floor
        if available < required:
            logger.info(
                "insufficient_native_balance",
                payer=payer,
                required=required,
                available=available,
                reserve_floor=self._settings.reserve_floor,
            )
            raise InsufficientFunds(self._native, required, available)

    async def _check_token(self, payer: str, amount: int, token: FungibleToken) -> None:
        # The network fee is always paid in the native currency
        fee = self._settings.estimated_network_fee
        native_balance = await self._ledger.get_balance(payer, self._native)
        if native_balance < fee:
            logger.info(
                "insufficient_native_for_network_fee",
                payer=payer,
                required=fee,
                available=native_balance,
            )
            raise InsufficientFunds(self._native, fee, native_balance)

        if await self._ledger.token_account_exists(payer, token.token_id):
            available = await self._ledger.get_balance(payer, token)
        else:
            available = 0

        if available < amount:
            logger.info(
                "insufficient_token_balance",
                payer=payer,
                token=token.key,
                required=amount,
                available=available,
            )
            raise InsufficientFunds(token, amount, available)

    async def get_balances(self, identity: str, token: FungibleToken | None = None) -> dict[str, int]:
        """Return native (and optionally token) balances keyed by currency key.

        A missing token account is reported as 0.
        """
        balances = {self._native.key: await self._ledger.get_balance(identity, self._native)}
        if token is not None:
            if await self._ledger.token_account_exists(identity, token.token_id):
                balances[token.key] = await self._ledger.get_balance(identity, token)
            else:
                balances[token.key] = 0
        return balances
