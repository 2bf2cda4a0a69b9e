"""
Subscription lookups against the billing tables written by webhook ingestion.
"""
import logging
from typing import Any, Dict, List, Optional

from ..core.supabase_client import supabase_client
from ..schemas.ai import SubscriptionDebugInfo
from ..schemas.billing import SubscriptionStatusResponse, SubscriptionSummary

logger = logging.getLogger(__name__)

ACTIVE_SUBSCRIPTION_STATUSES = ("active", "trialing")


class SubscriptionService:
    """Service class for reading customer and subscription state."""

    @property
    def supabase(self):
        return supabase_client.service_client

    async def get_customer_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Return the customer row for an email, or None."""
        if not email:
            return None

        # Use .limit(1) instead of .single() to avoid exception on no results
        result = self.supabase.table("customers").select(
            "customer_id, email, name, auth_user_id"
        ).eq("email", email.strip().lower()).limit(1).execute()

        if result.data:
            return result.data[0]
        return None

    async def list_subscriptions(self, customer_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("subscriptions").select(
            "subscription_id, subscription_status, product_id, next_billing_date, created_at"
        ).eq("customer_id", customer_id).execute()
        return result.data or []

    async def has_active_subscription(self, email: str) -> bool:
        """
        True when the customer behind this email has an active or trialing
        subscription. Lookup errors count as not subscribed.
        """
        try:
            customer = await self.get_customer_by_email(email)
            if not customer:
                return False

            subscriptions = await self.list_subscriptions(customer["customer_id"])
            return any(
                sub.get("subscription_status") in ACTIVE_SUBSCRIPTION_STATUSES
                for sub in subscriptions
            )
        except Exception as e:
            logger.error(f"Subscription check failed for {email}: {e}")
            return False

    async def get_subscription_status(self, email: str) -> SubscriptionStatusResponse:
        customer = await self.get_customer_by_email(email)
        if not customer:
            return SubscriptionStatusResponse(is_subscribed=False)

        subscriptions = [
            SubscriptionSummary(**sub)
            for sub in await self.list_subscriptions(customer["customer_id"])
        ]
        return SubscriptionStatusResponse(
            is_subscribed=any(
                sub.subscription_status in ACTIVE_SUBSCRIPTION_STATUSES for sub in subscriptions
            ),
            customer_id=customer["customer_id"],
            subscriptions=subscriptions,
        )

    async def build_debug_info(self, email: str) -> SubscriptionDebugInfo:
        """Describe what was found for this email, for the 403 response body."""
        customer = await self.get_customer_by_email(email)
        if not customer:
            return SubscriptionDebugInfo(userEmail=email)

        subscriptions = await self.list_subscriptions(customer["customer_id"])
        return SubscriptionDebugInfo(
            userEmail=email,
            customerId=customer["customer_id"],
            subscriptionsFound=len(subscriptions),
            subscriptions=[
                {
                    "subscription_id": sub.get("subscription_id"),
                    "subscription_status": sub.get("subscription_status"),
                    "created_at": sub.get("created_at"),
                }
                for sub in subscriptions
            ],
        )


# Global service instance
subscription_service = SubscriptionService()
