"""
Utility modules for the application.
"""

from .time_utils import utc_now, utc_now_iso, start_of_utc_day, seconds_until_next_utc_day

__all__ = [
    'utc_now',
    'utc_now_iso',
    'start_of_utc_day',
    'seconds_until_next_utc_day',
]
