"""
Plan configuration for the AI chat proxy.
Defines daily request limits for free users vs subscribers.
"""

from typing import Optional
from dataclasses import dataclass

from .config import settings


@dataclass
class TierLimits:
    """Limits for a user plan."""
    chat_requests_per_day: int
    max_tokens_cap: Optional[int]  # Upper bound on requested max_tokens (None = no cap)


# Plans
# - free: no active subscription (or subscription gate skipped in dev)
# - paid: at least one active or trialing subscription
PLAN_FREE = "free"
PLAN_PAID = "paid"


def get_tier_limits(plan_type: str) -> TierLimits:
    """Get limits for a given plan. Unknown plans get free limits."""
    if plan_type == PLAN_PAID:
        return TierLimits(
            chat_requests_per_day=settings.ai_daily_limit_paid,
            max_tokens_cap=None,
        )
    return TierLimits(
        chat_requests_per_day=settings.ai_daily_limit_free,
        max_tokens_cap=settings.ai_default_max_tokens,
    )
