"""
Dodo Payments webhook ingestion.

Verifies Standard Webhooks signatures, narrows the event payload by type and
upserts billing state into Supabase. Every write is keyed on the provider's
natural identifier, so a redelivered event leaves the tables unchanged.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel
from standardwebhooks import Webhook, WebhookVerificationError

from ..core.config import settings
from ..core.supabase_client import supabase_client
from ..schemas.billing import (
    CustomerRow,
    ProductRow,
    SubscriptionRow,
    TransactionRow,
    RefundRow,
    DisputeRow,
)
from ..schemas.webhooks import (
    DodoCustomer,
    DisputeEvent,
    PaymentSucceededEvent,
    RefundEvent,
    SubscriptionEvent,
    UnhandledEvent,
    WebhookEvent,
)
from ..utils.time_utils import utc_now, utc_now_iso

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("webhook-id", "webhook-timestamp", "webhook-signature")

# Supabase Auth admin listing pagination
AUTH_USERS_PAGE_SIZE = 1000
AUTH_USERS_MAX_PAGES = 20


class WebhookConfigurationError(RuntimeError):
    """The server has no webhook signing secret configured."""


class WebhookVerificationFailed(Exception):
    """Signature headers are missing, stale or do not match the body."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


class WebhookIngestService:
    """Service class for payment webhook ingestion."""

    def __init__(self, webhook_key: Optional[str] = None):
        self._webhook_key = webhook_key

    @property
    def supabase(self):
        return supabase_client.service_client

    @property
    def webhook_key(self) -> Optional[str]:
        return self._webhook_key or settings.dodo_payments_webhook_key

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self, body: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
        """
        Verify the Standard Webhooks signature on the raw body.

        Returns the decoded JSON payload. Raises `WebhookVerificationFailed`
        for bad or missing signatures and `ValueError` when a correctly
        signed body is not JSON.
        """
        if not self.webhook_key:
            raise WebhookConfigurationError("DODO_PAYMENTS_WEBHOOK_KEY is not configured")

        signature_headers = {name: headers.get(name, "") for name in SIGNATURE_HEADERS}
        missing = [name for name, value in signature_headers.items() if not value]
        if missing:
            raise WebhookVerificationFailed(f"Missing signature headers: {', '.join(missing)}")

        # Each entry must be "<version>,<base64 signature>"
        if any("," not in part for part in signature_headers["webhook-signature"].split()):
            raise WebhookVerificationFailed("Malformed webhook-signature header")

        try:
            return Webhook(self.webhook_key).verify(body, signature_headers)
        except WebhookVerificationError as e:
            raise WebhookVerificationFailed(str(e)) from e

    # ------------------------------------------------------------------
    # Supabase helpers
    # ------------------------------------------------------------------

    async def upsert_row(
        self,
        table: str,
        row: Union[BaseModel, Dict[str, Any]],
        conflict_column: str,
    ) -> None:
        """Insert-or-update a row keyed on `conflict_column`. Database errors propagate."""
        record = row.model_dump() if isinstance(row, BaseModel) else dict(row)

        try:
            self.supabase.table(table).upsert(record, on_conflict=conflict_column).execute()
        except Exception as e:
            logger.error(f"❌ Failed to upsert {table} ({conflict_column}={record.get(conflict_column)}): {e}")
            raise

        logger.info(f"✅ Upserted {table}: {conflict_column}={record.get(conflict_column)}")

    async def find_auth_user_id_by_email(self, email: str) -> Optional[str]:
        """Find the Supabase auth user with this email. Lookup failures return None."""
        target = normalize_email(email)

        try:
            for page in range(1, AUTH_USERS_MAX_PAGES + 1):
                users = self.supabase.auth.admin.list_users(page=page, per_page=AUTH_USERS_PAGE_SIZE)
                for user in users or []:
                    if user.email and normalize_email(user.email) == target:
                        return user.id
                if not users or len(users) < AUTH_USERS_PAGE_SIZE:
                    break
        except Exception as e:
            logger.warning(f"Could not look up auth user for {target}: {e}")

        return None

    async def upsert_customer(self, customer: DodoCustomer) -> str:
        """
        Make sure a customer row exists and return the customer_id to reference.

        An existing row matched by email wins over the provider's id so that
        one person keeps one customer record. Failures are logged and the
        provider's id is returned so the rest of the event still lands.
        """
        email = normalize_email(customer.email)

        try:
            existing = self.supabase.table("customers").select(
                "customer_id, auth_user_id"
            ).eq("email", email).limit(1).execute()

            if existing.data:
                row = existing.data[0]
                customer_id = row["customer_id"]
                logger.debug(f"🔄 Reusing customer_id {customer_id} for {email}")

                if not row.get("auth_user_id"):
                    auth_user_id = await self.find_auth_user_id_by_email(email)
                    if auth_user_id:
                        self.supabase.table("customers").update({
                            "auth_user_id": auth_user_id,
                            "updated_at": utc_now_iso(),
                        }).eq("customer_id", customer_id).execute()
                        logger.info(f"🔗 Linked customer {customer_id} to auth user {auth_user_id}")

                return customer_id

            now = utc_now_iso()
            await self.upsert_row("customers", CustomerRow(
                customer_id=customer.customer_id,
                email=email,
                name=customer.name,
                auth_user_id=await self.find_auth_user_id_by_email(email),
                created_at=now,
                updated_at=now,
            ), "customer_id")
        except Exception as e:
            logger.error(f"❌ Failed to upsert customer {email}: {e}")

        return customer.customer_id

    async def ensure_product_exists(self, product_id: str) -> None:
        now = utc_now_iso()
        await self.upsert_row("products", ProductRow(
            product_id=product_id,
            name=product_id,
            created_at=now,
            updated_at=now,
        ), "product_id")

    async def mark_subscription_active(self, subscription_id: str, customer_id: str) -> None:
        """
        Flag a subscription active after a successful payment.

        Existing rows only get their status touched; an unseen subscription is
        created with defaults and filled in by its own subscription event.
        """
        now = utc_now_iso()
        existing = self.supabase.table("subscriptions").select(
            "subscription_id"
        ).eq("subscription_id", subscription_id).limit(1).execute()

        if existing.data:
            self.supabase.table("subscriptions").update({
                "customer_id": customer_id,
                "subscription_status": "active",
                "updated_at": now,
            }).eq("subscription_id", subscription_id).execute()
            logger.info(f"✅ Marked subscription {subscription_id} active")
            return

        await self.upsert_row("subscriptions", SubscriptionRow(
            subscription_id=subscription_id,
            customer_id=customer_id,
            subscription_status="active",
            start_date=now,
            created_at=now,
            updated_at=now,
        ), "subscription_id")

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def handle_subscription(self, event: SubscriptionEvent, customer_id: str) -> None:
        data = event.data
        now = utc_now()

        if data.product_id:
            await self.ensure_product_exists(data.product_id)

        trial_end_date = None
        if data.trial_period_days and data.trial_period_days > 0:
            trial_end_date = (now + timedelta(days=data.trial_period_days)).isoformat()

        await self.upsert_row("subscriptions", SubscriptionRow(
            subscription_id=data.subscription_id,
            customer_id=customer_id,
            product_id=data.product_id,
            subscription_status=data.status,
            quantity=data.quantity or 1,
            currency=data.currency,
            start_date=data.start_date or now.isoformat(),
            next_billing_date=data.next_billing_date,
            trial_end_date=trial_end_date,
            metadata=data.metadata or {},
            created_at=data.created_at or now.isoformat(),
            updated_at=now.isoformat(),
        ), "subscription_id")

    async def handle_transaction(self, event: PaymentSucceededEvent, customer_id: str) -> None:
        data = event.data
        now = utc_now_iso()

        if data.subscription_id:
            await self.mark_subscription_active(data.subscription_id, customer_id)

        await self.upsert_row("transactions", TransactionRow(
            transaction_id=data.payment_id,
            subscription_id=data.subscription_id,
            customer_id=customer_id,
            status=data.status or "unknown",
            amount=data.total_amount,
            currency=data.currency or "USD",
            payment_method=data.payment_method,
            card_last_four=data.card_last_four,
            card_network=data.card_network,
            card_type=data.card_type,
            billed_at=event.timestamp or now,
            metadata=data.metadata or {},
            created_at=now,
            updated_at=now,
        ), "transaction_id")

    async def handle_refund(self, event: RefundEvent, customer_id: str) -> None:
        data = event.data
        await self.upsert_row("refunds", RefundRow(
            refund_id=data.refund_id,
            transaction_id=data.payment_id,
            customer_id=customer_id,
            amount=data.amount,
            currency=data.currency,
            is_partial=bool(data.is_partial),
            reason=data.reason,
            status=data.status,
            created_at=data.created_at or utc_now_iso(),
        ), "refund_id")

    async def handle_dispute(self, event: DisputeEvent) -> None:
        data = event.data
        await self.upsert_row("disputes", DisputeRow(
            dispute_id=data.dispute_id,
            transaction_id=data.payment_id,
            amount=data.amount,
            currency=data.currency,
            dispute_stage=data.dispute_stage,
            dispute_status=data.dispute_status,
            remarks=data.remarks,
            created_at=data.created_at or utc_now_iso(),
        ), "dispute_id")

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def process_event(self, event: WebhookEvent) -> bool:
        """
        Store a narrowed event. Returns False when the event type is not stored.
        """
        logger.info(f"🔔 Received webhook event: {event.type}")

        if isinstance(event, UnhandledEvent):
            logger.info(f"Ignoring unhandled webhook event type: {event.type}")
            return False

        customer_id = None
        customer = getattr(event.data, "customer", None)
        if customer is not None:
            customer_id = await self.upsert_customer(customer)

        if isinstance(event, PaymentSucceededEvent):
            await self.handle_transaction(event, customer_id)
        elif isinstance(event, SubscriptionEvent):
            await self.handle_subscription(event, customer_id)
        elif isinstance(event, RefundEvent):
            await self.handle_refund(event, customer_id)
        elif isinstance(event, DisputeEvent):
            await self.handle_dispute(event)

        return True


# Global service instance
webhook_service = WebhookIngestService()
