"""Wallet signer capability.

The settlement layer never sees key material. A wallet (browser extension,
hardware device, custody service) is handed in as an object that can sign.
"""

from abc import ABC, abstractmethod

from settlement.models import SignedTransaction, UnsignedTransaction


class WalletSigner(ABC):
    """Abstract signer for transactions paid by the wallet's identity."""

    @property
    @abstractmethod
    def identity(self) -> str:
        """Public identity (address) the signer signs for."""
        ...

    @abstractmethod
    async def sign(self, tx: UnsignedTransaction) -> SignedTransaction:
        """Sign tx and return it with its wire payload.

        Called again after every sequencing token refresh, since a signature
        covers the token.
        """
        ...
