"""Tests for Submitter -- simulation gate, retry with token refresh, failure surfacing."""

from unittest.mock import AsyncMock, patch

import pytest

from fakes import FakeLedger, FakeSigner
from settlement.config import RetrySettings
from settlement.exceptions import (
    LedgerRequestError,
    RetriesExhausted,
    SimulationError,
    TransactionRejected,
    TransientNetworkError,
)
from settlement.execution.submitter import Submitter
from settlement.models import NATIVE, SimulationResult, Transfer, UnsignedTransaction


@pytest.fixture
def submitter(ledger: FakeLedger, signer: FakeSigner) -> Submitter:
    return Submitter(ledger, signer, RetrySettings(max_retries=3, retry_delay_ms=1_000))


@pytest.fixture
def tx() -> UnsignedTransaction:
    return UnsignedTransaction(
        fee_payer="payer",
        operations=(Transfer("payer", "game", 1_000, NATIVE),),
        sequencing_token="blockhash-0",
    )


class TestSimulate:
    @pytest.mark.asyncio
    async def test_simulation_error_is_fatal(
        self, submitter: Submitter, ledger: FakeLedger, tx: UnsignedTransaction
    ) -> None:
        ledger.simulation = SimulationResult(
            error="InstructionError(0, Custom(1))",
            logs=("Program log: insufficient lamports",),
        )

        with pytest.raises(SimulationError) as exc_info:
            await submitter.send(tx)

        assert exc_info.value.message == "InstructionError(0, Custom(1))"
        assert exc_info.value.logs == ["Program log: insufficient lamports"]
        assert ledger.submitted == []

    @pytest.mark.asyncio
    async def test_rejected_simulation_request_is_fatal(
        self, submitter: Submitter, ledger: FakeLedger, tx: UnsignedTransaction
    ) -> None:
        ledger.simulate_errors = [LedgerRequestError("invalid transaction encoding")]

        with pytest.raises(SimulationError, match="Simulation request failed"):
            await submitter.simulate(tx)

        assert len(ledger.simulated) == 1

    @pytest.mark.asyncio
    async def test_simulation_timeout_is_retried(
        self, submitter: Submitter, ledger: FakeLedger, tx: UnsignedTransaction
    ) -> None:
        ledger.simulate_errors = [TransientNetworkError("simulate_transaction failed: timed out")]

        with patch("settlement.execution.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await submitter.send(tx)

        assert result.signature == "sig-1"
        assert len(ledger.simulated) == 2
        assert len(ledger.submitted) == 1
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_simulation_timeouts_exhaust_budget(
        self, submitter: Submitter, ledger: FakeLedger, tx: UnsignedTransaction
    ) -> None:
        ledger.simulate_errors = [TransientNetworkError(f"timed out {i}") for i in range(4)]

        with patch("settlement.execution.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RetriesExhausted) as exc_info:
                await submitter.send(tx)

        assert exc_info.value.attempts == 4
        assert len(ledger.simulated) == 4
        assert ledger.submitted == []

    @pytest.mark.asyncio
    async def test_skip_simulation(
        self, submitter: Submitter, ledger: FakeLedger, tx: UnsignedTransaction
    ) -> None:
        ledger.simulation = SimulationResult(error="would fail")

        result = await submitter.send(tx, skip_simulation=True)

        assert result.signature == "sig-1"
        assert ledger.simulated == []

    @pytest.mark.asyncio
    async def test_skip_preflight_setting(
        self, ledger: FakeLedger, signer: FakeSigner, tx: UnsignedTransaction
    ) -> None:
        submitter = Submitter(ledger, signer, RetrySettings(skip_preflight=True))

        await submitter.send(tx)

        assert ledger.simulated == []


class TestSubmit:
    @pytest.mark.asyncio
    async def test_first_attempt_success(
        self,
        submitter: Submitter,
        ledger: FakeLedger,
        signer: FakeSigner,
        tx: UnsignedTransaction,
    ) -> None:
        result = await submitter.send(tx)

        assert result.signature == "sig-1"
        assert result.attempts == 1
        assert len(signer.signed) == 1
        assert ledger.simulated == [tx]
        assert ledger.blockhash_requests == 0

    @pytest.mark.asyncio
    async def test_retry_refreshes_token_and_resigns(
        self,
        submitter: Submitter,
        ledger: FakeLedger,
        signer: FakeSigner,
        tx: UnsignedTransaction,
    ) -> None:
        ledger.submit_errors = [TransientNetworkError("Blockhash not found")]

        with patch("settlement.execution.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await submitter.submit(tx)

        assert result.attempts == 2
        assert [s.sequencing_token for s in signer.signed] == ["blockhash-0", "blockhash-1"]
        assert ledger.submitted[-1].payload == b"blockhash-1"
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_exhausted_retries_surface_one_failure(
        self, submitter: Submitter, ledger: FakeLedger, tx: UnsignedTransaction
    ) -> None:
        ledger.submit_errors = [TransientNetworkError(f"timeout {i}") for i in range(4)]

        with patch("settlement.execution.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RetriesExhausted) as exc_info:
                await submitter.submit(tx)

        assert exc_info.value.attempts == 4
        assert str(exc_info.value.last_error) == "timeout 3"
        assert len(ledger.submitted) == 4
        assert ledger.blockhash_requests == 3

    @pytest.mark.asyncio
    async def test_fatal_error_not_retried(
        self, submitter: Submitter, ledger: FakeLedger, tx: UnsignedTransaction
    ) -> None:
        rejection = LedgerRequestError("custom program error: 0x1")
        ledger.submit_errors = [rejection]

        with pytest.raises(TransactionRejected) as exc_info:
            await submitter.submit(tx)

        assert exc_info.value.attempts == 1
        assert exc_info.value.last_error is rejection
        assert len(ledger.submitted) == 1
