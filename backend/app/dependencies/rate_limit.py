"""
Daily rate limiting for the AI chat proxy.

Counters live in process memory and reset at UTC midnight:
Free users: settings.ai_daily_limit_free requests/day
Subscribers: settings.ai_daily_limit_paid requests/day
"""

from datetime import datetime
from typing import Dict, Optional, Tuple
from fastapi import Request, HTTPException, status
from starlette.responses import Response

from app.utils.time_utils import utc_now, seconds_until_next_utc_day


# In-memory rate limit storage: key -> {"count": int, "day": "YYYY-MM-DD"}
# Single process only; each worker keeps its own counters
_daily_store: Dict[str, Dict[str, object]] = {}


def get_rate_limit_key(request: Request, user_id: Optional[str] = None) -> str:
    """
    Generate a unique rate limit key based on user or IP.
    """
    if user_id:
        return f"user:{user_id}"

    # Client address as resolved by ProxyHeadersMiddleware
    ip = request.client.host if request.client else "unknown"
    return f"ip:{ip}"


def check_daily_limit(
    key: str,
    limit: int,
    now: Optional[datetime] = None,
) -> Tuple[bool, int, int]:
    """
    Count one request against today's quota for `key`.

    Returns:
        (is_allowed, remaining, reset_in_seconds)
    """
    now = now or utc_now()
    today = now.date().isoformat()
    reset_in = seconds_until_next_utc_day(now)

    bucket = _daily_store.get(key)
    if bucket is None or bucket["day"] != today:
        bucket = {"count": 0, "day": today}
        _daily_store[key] = bucket

    if bucket["count"] >= limit:
        return False, 0, reset_in

    bucket["count"] += 1
    return True, limit - bucket["count"], reset_in


def reset_daily_limits() -> None:
    """Forget all counters."""
    _daily_store.clear()


def rate_limit_headers(limit: int, remaining: int, reset_in: int) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset_in),
    }


class DailyRateLimiter:
    """
    Rate limiter that applies a per-day quota chosen by the caller's plan.

    Usage:
        limiter = DailyRateLimiter()

        @router.post("/chat")
        async def chat(request: Request, ...):
            limiter.enforce(request, user_id, limit)
    """

    def enforce(self, request: Request, user_id: Optional[str], limit: int) -> None:
        """Check the quota and raise HTTPException(429) if exceeded."""
        key = get_rate_limit_key(request, user_id)
        is_allowed, remaining, reset_in = check_daily_limit(key, limit)

        # Store rate limit info in request for headers
        request.state.rate_limit_limit = limit
        request.state.rate_limit_remaining = remaining
        request.state.rate_limit_reset = reset_in

        if not is_allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Daily limit of {limit} requests reached. Try again in {reset_in} seconds.",
                headers={
                    **rate_limit_headers(limit, 0, reset_in),
                    "Retry-After": str(reset_in),
                },
            )


def add_rate_limit_headers(response: Response, request: Request) -> Response:
    """
    Add rate limit headers to response.
    Call this in the endpoint after enforcing the limit.
    """
    if hasattr(request.state, "rate_limit_limit"):
        response.headers.update(rate_limit_headers(
            request.state.rate_limit_limit,
            request.state.rate_limit_remaining,
            request.state.rate_limit_reset,
        ))

    return response


# Pre-configured rate limiter instance
daily_rate_limiter = DailyRateLimiter()
