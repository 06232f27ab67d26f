"""Solana ledger client implementation via solana-py async.

Wraps solana.rpc.async_api.AsyncClient with balance and token account
lookups, blockhash retrieval, unsigned simulation, and raw submission with
confirmation. Operations are compiled into system-program transfers, SPL
token transfers between associated token accounts, and associated token
account creations.

Error mapping:
  - transport failures, RPC wrapper exceptions and confirmation timeouts
    become TransientNetworkError
  - RPC error responses become TransientNetworkError when their message is
    a known transient condition (stale blockhash, rate limiting), else
    LedgerRequestError
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import TransferParams as TokenTransferParams
from spl.token.instructions import (
    create_associated_token_account,
    get_associated_token_address,
)
from spl.token.instructions import transfer as token_transfer

from settlement.config import LedgerSettings
from settlement.exceptions import (
    LedgerRequestError,
    SettlementError,
    TransientNetworkError,
    UnsupportedCurrency,
)
from settlement.execution.retry import is_transient_error
from settlement.ledger.client import LedgerClient
from settlement.logging import get_logger
from settlement.models import (
    CreateTokenAccount,
    Currency,
    FungibleToken,
    NativeCurrency,
    Operation,
    SignedTransaction,
    SimulationResult,
    Transfer,
    UnsignedTransaction,
)

logger = get_logger(__name__)


@contextmanager
def _rpc_errors(action: str) -> Iterator[None]:
    """Translate solana-py / httpx failures into settlement errors."""
    try:
        yield
    except SettlementError:
        raise
    except (
        httpx.TransportError,
        SolanaRpcException,
        UnconfirmedTxError,
        asyncio.TimeoutError,
    ) as exc:
        raise TransientNetworkError(f"{action} failed: {exc}") from exc
    except RPCException as exc:
        if is_transient_error(exc):
            raise TransientNetworkError(f"{action} failed: {exc}") from exc
        raise LedgerRequestError(f"{action} rejected: {exc}") from exc


def _token_account(owner: Pubkey, token_id: str) -> Pubkey:
    return get_associated_token_address(owner, Pubkey.from_string(token_id))


def build_instructions(operations: Sequence[Operation]) -> list[Instruction]:
    """Compile settlement operations into Solana instructions, in order."""
    instructions: list[Instruction] = []
    for op in operations:
        if isinstance(op, CreateTokenAccount):
            instructions.append(
                create_associated_token_account(
                    Pubkey.from_string(op.funder),
                    Pubkey.from_string(op.owner),
                    Pubkey.from_string(op.token_id),
                )
            )
        elif isinstance(op, Transfer):
            instructions.append(_transfer_instruction(op))
        else:
            raise ValueError(f"Unknown operation: {op!r}")
    return instructions


def _transfer_instruction(op: Transfer) -> Instruction:
    source = Pubkey.from_string(op.source)
    destination = Pubkey.from_string(op.destination)
    currency = op.currency

    if isinstance(currency, NativeCurrency):
        return transfer(
            TransferParams(from_pubkey=source, to_pubkey=destination, lamports=op.amount)
        )
    if isinstance(currency, FungibleToken):
        return token_transfer(
            TokenTransferParams(
                program_id=TOKEN_PROGRAM_ID,
                source=_token_account(source, currency.token_id),
                dest=_token_account(destination, currency.token_id),
                owner=source,
                amount=op.amount,
            )
        )
    raise UnsupportedCurrency(currency)


class SolanaLedgerClient(LedgerClient):
    """Concrete ledger client for a Solana RPC endpoint.

    Args:
        settings: RPC URL and commitment level.
        client: Pre-built AsyncClient (tests inject a mock).
    """

    def __init__(self, settings: LedgerSettings, client: AsyncClient | None = None) -> None:
        self._settings = settings
        self._commitment = Commitment(settings.commitment)
        self._client = client or AsyncClient(settings.rpc_url, commitment=self._commitment)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        logger.info("closing_ledger_connection", rpc_url=self._settings.rpc_url)
        await self._client.close()

    def compile_transaction(self, tx: UnsignedTransaction) -> Transaction:
        """Compile tx into an unsigned Solana transaction.

        Wallet signers use this to obtain the exact message they sign.
        """
        message = Message.new_with_blockhash(
            build_instructions(tx.operations),
            Pubkey.from_string(tx.fee_payer),
            Hash.from_string(tx.sequencing_token),
        )
        return Transaction.new_unsigned(message)

    async def get_balance(self, identity: str, currency: Currency) -> int:
        """Return lamports, or raw token units of the associated token account."""
        owner = Pubkey.from_string(identity)

        if isinstance(currency, NativeCurrency):
            with _rpc_errors("get_balance"):
                resp = await self._client.get_balance(owner, self._commitment)
            return int(resp.value)

        if isinstance(currency, FungibleToken):
            account = _token_account(owner, currency.token_id)
            with _rpc_errors("get_token_account_balance"):
                info = await self._client.get_account_info(account, self._commitment)
                if info.value is None:
                    return 0
                resp = await self._client.get_token_account_balance(account, self._commitment)
            return int(resp.value.amount)

        raise UnsupportedCurrency(currency)

    async def token_account_exists(self, owner: str, token_id: str) -> bool:
        account = _token_account(Pubkey.from_string(owner), token_id)
        with _rpc_errors("get_account_info"):
            resp = await self._client.get_account_info(account, self._commitment)
        return resp.value is not None

    async def get_latest_sequencing_token(self) -> str:
        """Return the latest blockhash as a base58 string."""
        with _rpc_errors("get_latest_blockhash"):
            resp = await self._client.get_latest_blockhash(self._commitment)
        return str(resp.value.blockhash)

    async def simulate_transaction(self, tx: UnsignedTransaction) -> SimulationResult:
        """Simulate tx without signature verification."""
        compiled = self.compile_transaction(tx)
        with _rpc_errors("simulate_transaction"):
            resp = await self._client.simulate_transaction(
                compiled, sig_verify=False, commitment=self._commitment
            )
        value = resp.value
        logs = tuple(value.logs or ())
        if value.err is not None:
            return SimulationResult(error=str(value.err), logs=logs)
        return SimulationResult(logs=logs)

    async def submit_and_confirm(self, signed: SignedTransaction) -> str:
        """Send the signed wire payload and wait for confirmation.

        Preflight is skipped on send; the submitter simulates beforehand.
        """
        opts = TxOpts(skip_preflight=True, preflight_commitment=self._commitment)

        with _rpc_errors("send_raw_transaction"):
            resp = await self._client.send_raw_transaction(signed.payload, opts=opts)
        signature = resp.value
        logger.info("transaction_sent", signature=str(signature))

        with _rpc_errors("confirm_transaction"):
            status = await self._client.confirm_transaction(signature, self._commitment)

        statuses = status.value
        if statuses and statuses[0] is not None and statuses[0].err is not None:
            raise LedgerRequestError(f"Transaction {signature} failed: {statuses[0].err}")

        logger.info("transaction_confirmed", signature=str(signature))
        return str(signature)
