"""Pre-submission guards -- balance verification and submission rate limiting."""

from settlement.risk.balance import BalanceVerifier
from settlement.risk.rate_limiter import RateLimiter

__all__ = ["BalanceVerifier", "RateLimiter"]
