"""
Dependency for checking a user's subscription and applying plan limits.
"""

import logging
from typing import Tuple

from fastapi import Depends, HTTPException, status

from app.core.config import settings
from app.core.dependencies import get_current_user
from app.core.tier_limits import PLAN_FREE, PLAN_PAID, TierLimits, get_tier_limits
from app.schemas.auth import UserResponse
from app.services.subscription_service import subscription_service

logger = logging.getLogger(__name__)


async def get_user_plan(user: UserResponse) -> str:
    """Return 'paid' for users with an active or trialing subscription, else 'free'."""
    if await subscription_service.has_active_subscription(user.email):
        return PLAN_PAID
    return PLAN_FREE


def subscription_gate_enabled() -> bool:
    """The gate is off in development when configured to skip it."""
    return not (settings.is_development_environment and settings.skip_subscription_check_in_dev)


async def require_chat_access(
    user: UserResponse = Depends(get_current_user),
) -> Tuple[UserResponse, str, TierLimits]:
    """
    Dependency for the chat proxy.

    Returns (user, plan_type, limits). Raises 403 with debug details when
    the subscription gate is on and the user has no active subscription.
    """
    plan_type = await get_user_plan(user)

    if plan_type != PLAN_PAID:
        if subscription_gate_enabled():
            try:
                debug = (await subscription_service.build_debug_info(user.email)).model_dump()
            except Exception as e:
                logger.error(f"Debug info collection failed for {user.email}: {e}")
                debug = None

            detail = {"error": "Subscription required"}
            if debug is not None:
                detail["debug"] = debug
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

        logger.info(f"⚠️ Dev mode: skipping subscription check for {user.email}")

    return user, plan_type, get_tier_limits(plan_type)
