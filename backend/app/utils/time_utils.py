"""
UTC timestamp helpers shared by webhook ingestion, usage stats and rate limiting.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return utc_now().isoformat()


def start_of_utc_day(now: Optional[datetime] = None) -> datetime:
    """Midnight UTC of the day containing `now`."""
    now = now or utc_now()
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def seconds_until_next_utc_day(now: Optional[datetime] = None) -> int:
    """Whole seconds until the next UTC midnight (at least 1)."""
    now = now or utc_now()
    next_midnight = start_of_utc_day(now) + timedelta(days=1)
    return max(1, int((next_midnight - now).total_seconds()))
