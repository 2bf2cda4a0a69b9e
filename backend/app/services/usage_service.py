"""
AI usage logging and statistics backed by the ai_logs table.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.supabase_client import supabase_client
from ..schemas.ai import UsageStats
from ..utils.time_utils import start_of_utc_day

logger = logging.getLogger(__name__)

# Stored prompt/response text is truncated to keep rows small
MAX_LOGGED_TEXT = 4000


def summarize_usage(all_time: List[Dict[str, Any]], today: List[Dict[str, Any]]) -> UsageStats:
    """Aggregate ai_logs rows into request and token totals."""
    def tokens(rows: List[Dict[str, Any]], column: str) -> int:
        return sum(row.get(column) or 0 for row in rows)

    model_counts = Counter(row["model"] for row in all_time if row.get("model"))
    most_used = model_counts.most_common(1)

    return UsageStats(
        total_requests=len(all_time),
        total_tokens=tokens(all_time, "total_tokens"),
        total_prompt_tokens=tokens(all_time, "prompt_tokens"),
        total_completion_tokens=tokens(all_time, "completion_tokens"),
        today_requests=len(today),
        today_tokens=tokens(today, "total_tokens"),
        most_used_model=most_used[0][0] if most_used else "N/A",
    )


class UsageService:
    """Service class for AI usage tracking."""

    @property
    def supabase(self):
        return supabase_client.service_client

    async def log_usage(
        self,
        customer_id: Optional[str],
        model: str,
        usage: Optional[Dict[str, Any]],
        input_text: str,
        response_text: str,
    ) -> None:
        """
        Record one completion. Tracking failures are logged and never
        surface to the caller.
        """
        if not customer_id:
            logger.debug(f"Skipping usage log for {model}: no customer record")
            return

        usage = usage or {}
        try:
            self.supabase.table("ai_logs").insert({
                "customer_id": customer_id,
                "model": model,
                "prompt_tokens": usage.get("prompt_tokens"),
                "completion_tokens": usage.get("completion_tokens"),
                "total_tokens": usage.get("total_tokens"),
                "input_text": input_text[:MAX_LOGGED_TEXT],
                "response_text": response_text[:MAX_LOGGED_TEXT],
            }).execute()
        except Exception as e:
            logger.warning(f"Failed to log AI usage for customer {customer_id}: {e}")

    async def get_usage_stats(self, customer_id: str, now: Optional[datetime] = None) -> UsageStats:
        """All-time and since-UTC-midnight totals for one customer."""
        columns = "model, prompt_tokens, completion_tokens, total_tokens"

        all_time = self.supabase.table("ai_logs").select(columns).eq(
            "customer_id", customer_id
        ).execute()

        today = self.supabase.table("ai_logs").select(columns).eq(
            "customer_id", customer_id
        ).gte("created_at", start_of_utc_day(now).isoformat()).execute()

        return summarize_usage(all_time.data or [], today.data or [])


# Global service instance
usage_service = UsageService()
