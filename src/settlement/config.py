"""Configuration system using pydantic-settings with environment variable loading.

All amounts are integers in the smallest currency unit (lamports or raw
token units). Durations carry their unit in the field name.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeeSettings(BaseSettings):
    """Protocol fee taken off every split settlement."""

    model_config = SettingsConfigDict(env_prefix="FEES_")

    numerator: int = Field(default=10, ge=0)
    denominator: int = Field(default=1000, gt=0)  # 10/1000 = 1%
    collector: str = ""  # fee destination identity

    @model_validator(mode="after")
    def _fee_not_above_gross(self) -> "FeeSettings":
        if self.numerator > self.denominator:
            raise ValueError("fee numerator must not exceed denominator")
        return self


class BalanceSettings(BaseSettings):
    """Balance headroom required before a native payment is built."""

    model_config = SettingsConfigDict(env_prefix="BALANCE_")

    reserve_floor: int = Field(default=2_000_000, ge=0)  # 0.002 SOL rent floor
    estimated_network_fee: int = Field(default=5_000, ge=0)  # lamports per signature


class RateLimitSettings(BaseSettings):
    """Process-wide submission budget."""

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_")

    window_ms: int = Field(default=10_000, gt=0)
    max_submissions: int = Field(default=5, gt=0)


class TrackerSettings(BaseSettings):
    """In-memory duplicate tracking."""

    model_config = SettingsConfigDict(env_prefix="TRACKER_")

    ttl_seconds: float = Field(default=60.0, gt=0)


class RetrySettings(BaseSettings):
    """Submission retry policy."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_retries: int = Field(default=3, ge=0)  # additional attempts after the first
    retry_delay_ms: int = Field(default=1_000, ge=0)
    skip_preflight: bool = False


class LedgerSettings(BaseSettings):
    """Ledger network connection settings."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    rpc_url: str = "https://api.devnet.solana.com"
    commitment: str = "confirmed"


class AppSettings(BaseSettings):
    """Root settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    fees: FeeSettings = FeeSettings()
    balance: BalanceSettings = BalanceSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    tracker: TrackerSettings = TrackerSettings()
    retry: RetrySettings = RetrySettings()
    ledger: LedgerSettings = LedgerSettings()
