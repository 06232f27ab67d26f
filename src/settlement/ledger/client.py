"""Abstract ledger client interface.

Defines the contract for all ledger network implementations. Balance
checks, transaction building and submission depend only on this interface,
keeping network-specific details isolated in the concrete implementation.

Adapters raise TransientNetworkError for failures worth retrying (stale
sequencing token, confirmation timeout, dropped connection, network rate
limiting) and LedgerRequestError for everything the network rejects.
"""

from abc import ABC, abstractmethod

from settlement.models import Currency, SignedTransaction, SimulationResult, UnsignedTransaction


class LedgerClient(ABC):
    """Abstract base class for ledger network clients."""

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...

    @abstractmethod
    async def get_balance(self, identity: str, currency: Currency) -> int:
        """Return the balance of identity in smallest units.

        For a fungible token this is the balance of the identity's token
        account; 0 when that account does not exist.
        """
        ...

    @abstractmethod
    async def token_account_exists(self, owner: str, token_id: str) -> bool:
        """Return True if owner already holds a token account for token_id."""
        ...

    @abstractmethod
    async def get_latest_sequencing_token(self) -> str:
        """Return a fresh sequencing token (recent blockhash)."""
        ...

    @abstractmethod
    async def simulate_transaction(self, tx: UnsignedTransaction) -> SimulationResult:
        """Dry-run a transaction without signature verification."""
        ...

    @abstractmethod
    async def submit_and_confirm(self, signed: SignedTransaction) -> str:
        """Send a signed transaction and wait for confirmation.

        Returns:
            The transaction signature.
        """
        ...
