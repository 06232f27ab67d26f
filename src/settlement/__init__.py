"""Transaction reliability and fee-settlement layer for ledger payments.

Sits between an application and a ledger network: verifies balances,
deduplicates in-flight payments, enforces a submission budget, splits
protocol fees with integer arithmetic, and submits with bounded retry.
"""

from settlement.config import AppSettings
from settlement.models import (
    NATIVE,
    FungibleToken,
    NativeCurrency,
    PaymentIntent,
    SettlementReceipt,
)
from settlement.orchestrator import SettlementOrchestrator

__all__ = [
    "NATIVE",
    "AppSettings",
    "FungibleToken",
    "NativeCurrency",
    "PaymentIntent",
    "SettlementOrchestrator",
    "SettlementReceipt",
]
