"""Shared data models for the settlement layer.

CRITICAL: All amounts are Python ints in the smallest indivisible currency
unit (lamports, raw token units). Never use float for amounts or fees.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum

from settlement.exceptions import InvalidAmount

# Ledger amounts are unsigned 64-bit integers
MAX_AMOUNT = 2**64 - 1


def validate_amount(amount: object) -> int:
    """Return amount unchanged if it is a u64-safe integer, else raise InvalidAmount."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(amount, "amount must be an integer in smallest units")
    if amount < 0:
        raise InvalidAmount(amount, "amount cannot be negative")
    if amount > MAX_AMOUNT:
        raise InvalidAmount(amount, "amount exceeds the 64-bit ledger range")
    return amount


# ──────────────────────────────────────────────
# Currencies
# ──────────────────────────────────────────────


@dataclass(frozen=True)
class NativeCurrency:
    """The ledger's native currency (pays network fees and rent)."""

    symbol: str = "SOL"
    decimals: int = 9

    @property
    def key(self) -> str:
        return self.symbol


@dataclass(frozen=True)
class FungibleToken:
    """A fungible token identified by its mint address."""

    token_id: str
    symbol: str = "TOKEN"
    decimals: int = 9

    @property
    def key(self) -> str:
        return f"{self.symbol}:{self.token_id}"


Currency = NativeCurrency | FungibleToken

NATIVE = NativeCurrency()


# ──────────────────────────────────────────────
# Payments and fees
# ──────────────────────────────────────────────


@dataclass(frozen=True)
class PaymentIntent:
    """Request to move `amount` smallest units of `currency` from payer to payee."""

    payer: str
    payee: str
    amount: int
    currency: Currency = NATIVE

    def __post_init__(self) -> None:
        validate_amount(self.amount)
        if not self.payer or not self.payee:
            raise ValueError("payer and payee identities are required")


@dataclass(frozen=True)
class FeeSplit:
    """Division of a gross amount into the pot credit and the protocol fee."""

    pot_amount: int
    fee_amount: int

    @property
    def gross_amount(self) -> int:
        return self.pot_amount + self.fee_amount


# ──────────────────────────────────────────────
# Tracking and admission
# ──────────────────────────────────────────────


class TxStatus(str, Enum):
    """Lifecycle status of a tracked transaction."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class TrackedTransaction:
    """In-memory record of a payment attempt, keyed by fingerprint."""

    fingerprint: str
    created_at: float  # clock seconds
    status: TxStatus = TxStatus.PENDING
    signature: str | None = None


@dataclass(frozen=True)
class RateCheck:
    """Result of a rate limiter admission check."""

    allowed: bool
    wait_time_ms: int = 0


# ──────────────────────────────────────────────
# Ledger operations and transactions
# ──────────────────────────────────────────────


@dataclass(frozen=True)
class Transfer:
    """Move `amount` of `currency` from source owner to destination owner.

    For tokens, source and destination are wallet owners; the ledger adapter
    resolves their associated token accounts.
    """

    source: str
    destination: str
    amount: int
    currency: Currency


@dataclass(frozen=True)
class CreateTokenAccount:
    """Create the associated token account of `owner` for `token_id`, paid by `funder`."""

    funder: str
    owner: str
    token_id: str


Operation = Transfer | CreateTokenAccount


@dataclass(frozen=True)
class UnsignedTransaction:
    """Operations bound to a fee payer and a sequencing token (recent blockhash)."""

    fee_payer: str
    operations: tuple[Operation, ...]
    sequencing_token: str

    def with_sequencing_token(self, token: str) -> UnsignedTransaction:
        """Return a copy of this transaction carrying a fresh sequencing token."""
        return dataclasses.replace(self, sequencing_token=token)

    @property
    def transfers(self) -> list[Transfer]:
        return [op for op in self.operations if isinstance(op, Transfer)]


@dataclass(frozen=True)
class SignedTransaction:
    """A transaction together with its signed wire payload."""

    transaction: UnsignedTransaction
    payload: bytes


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of a dry run. `error` is None when the simulation succeeded."""

    error: str | None = None
    logs: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SubmissionResult:
    """Confirmed submission: ledger signature and attempts it took."""

    signature: str
    attempts: int


@dataclass(frozen=True)
class SettlementReceipt:
    """Returned to the caller once a payment is confirmed."""

    fingerprint: str
    signature: str
    intent: PaymentIntent
    operations: tuple[Operation, ...]
    attempts: int
    fee_split: FeeSplit | None = None
