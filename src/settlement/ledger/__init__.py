"""Ledger network layer -- client interface, signer capability, Solana implementation."""

from settlement.ledger.client import LedgerClient
from settlement.ledger.signer import WalletSigner
from settlement.ledger.solana_client import SolanaLedgerClient, build_instructions

__all__ = ["LedgerClient", "SolanaLedgerClient", "WalletSigner", "build_instructions"]
