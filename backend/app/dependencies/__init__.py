"""
Dependencies module for FastAPI dependency injection.
"""

from .subscription_check import (
    get_user_plan,
    require_chat_access,
    subscription_gate_enabled,
)

from .rate_limit import (
    daily_rate_limiter,
    DailyRateLimiter,
    check_daily_limit,
    get_rate_limit_key,
    add_rate_limit_headers,
)

__all__ = [
    # Subscription checking
    "get_user_plan",
    "require_chat_access",
    "subscription_gate_enabled",
    # Rate limiting
    "daily_rate_limiter",
    "DailyRateLimiter",
    "check_daily_limit",
    "get_rate_limit_key",
    "add_rate_limit_headers",
]
