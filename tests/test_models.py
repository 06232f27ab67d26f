"""Tests for shared models and settings validation."""

import pytest
from pydantic import ValidationError

from settlement.config import AppSettings, FeeSettings
from settlement.exceptions import InvalidAmount
from settlement.models import (
    MAX_AMOUNT,
    NATIVE,
    FeeSplit,
    FungibleToken,
    PaymentIntent,
    Transfer,
    UnsignedTransaction,
)


class TestPaymentIntent:
    def test_defaults_to_native(self) -> None:
        intent = PaymentIntent("payer", "game", 5)
        assert intent.currency is NATIVE

    @pytest.mark.parametrize("amount", [-1, 1.5, "100", True, MAX_AMOUNT + 1])
    def test_invalid_amounts(self, amount: object) -> None:
        with pytest.raises(InvalidAmount):
            PaymentIntent("payer", "game", amount)  # type: ignore[arg-type]

    def test_identities_required(self) -> None:
        with pytest.raises(ValueError):
            PaymentIntent("", "game", 5)


class TestCurrencyKeys:
    def test_token_key_includes_mint(self) -> None:
        token = FungibleToken("mint-1", "RPS", 6)
        assert token.key == "RPS:mint-1"
        assert NATIVE.key == "SOL"


class TestUnsignedTransaction:
    def test_with_sequencing_token_keeps_operations(self) -> None:
        tx = UnsignedTransaction(
            fee_payer="payer",
            operations=(Transfer("payer", "game", 5, NATIVE),),
            sequencing_token="old",
        )

        refreshed = tx.with_sequencing_token("new")

        assert refreshed.sequencing_token == "new"
        assert refreshed.operations == tx.operations
        assert tx.sequencing_token == "old"
        assert refreshed.transfers == [Transfer("payer", "game", 5, NATIVE)]


class TestSettings:
    def test_fee_split_gross(self) -> None:
        assert FeeSplit(pot_amount=990, fee_amount=10).gross_amount == 1_000

    def test_fee_numerator_above_denominator_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FeeSettings(numerator=11, denominator=10)

    def test_zero_denominator_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FeeSettings(denominator=0)

    def test_nested_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RATE_LIMIT__MAX_SUBMISSIONS", "9")
        settings = AppSettings(_env_file=None)
        assert settings.rate_limit.max_submissions == 9
