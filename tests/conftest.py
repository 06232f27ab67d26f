"""Shared test fixtures for the settlement layer."""

import logging

import pytest
import structlog

from fakes import FakeClock, FakeLedger, FakeSigner
from settlement.config import (
    AppSettings,
    BalanceSettings,
    FeeSettings,
    RateLimitSettings,
    RetrySettings,
    TrackerSettings,
)
from settlement.models import FungibleToken


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner("payer")


@pytest.fixture
def token() -> FungibleToken:
    return FungibleToken(token_id="rps-mint", symbol="RPS", decimals=6)


@pytest.fixture
def fee_settings() -> FeeSettings:
    """1% protocol fee paid to the 'treasury' identity."""
    return FeeSettings(numerator=10, denominator=1000, collector="treasury")


@pytest.fixture
def mock_settings(fee_settings: FeeSettings) -> AppSettings:
    """AppSettings with the documented defaults and a configured fee collector."""
    return AppSettings(
        log_level="DEBUG",
        fees=fee_settings,
        balance=BalanceSettings(reserve_floor=2_000_000, estimated_network_fee=5_000),
        rate_limit=RateLimitSettings(window_ms=10_000, max_submissions=5),
        tracker=TrackerSettings(ttl_seconds=60.0),
        retry=RetrySettings(max_retries=3, retry_delay_ms=1_000),
    )


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo setup_logging() calls made by a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
