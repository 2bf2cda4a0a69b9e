"""
Pydantic schemas for Dodo Payments webhook payloads.

Every delivery shares the same envelope (`type`, `timestamp`, `data`); the
shape of `data` depends on `type`. `parse_webhook_event` narrows a raw
payload to the matching event model.
"""
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class DodoCustomer(BaseModel):
    """Customer block embedded in payment, subscription and refund events."""
    model_config = ConfigDict(extra="allow")

    customer_id: str
    email: str
    name: Optional[str] = None


class PaymentSucceededData(BaseModel):
    model_config = ConfigDict(extra="allow")

    payment_id: str
    status: Optional[str] = None
    total_amount: int
    currency: Optional[str] = None
    customer: DodoCustomer
    subscription_id: Optional[str] = None
    payment_method: Optional[str] = None
    card_last_four: Optional[str] = None
    card_network: Optional[str] = None
    card_type: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class SubscriptionData(BaseModel):
    model_config = ConfigDict(extra="allow")

    subscription_id: str
    status: str
    customer: DodoCustomer
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    currency: Optional[str] = None
    start_date: Optional[str] = None
    next_billing_date: Optional[str] = None
    trial_period_days: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


class RefundData(BaseModel):
    model_config = ConfigDict(extra="allow")

    refund_id: str
    payment_id: str
    customer: DodoCustomer
    amount: int
    currency: Optional[str] = None
    is_partial: Optional[bool] = None
    reason: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = None


class DisputeData(BaseModel):
    model_config = ConfigDict(extra="allow")

    dispute_id: str
    payment_id: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    dispute_stage: Optional[str] = None
    dispute_status: Optional[str] = None
    remarks: Optional[str] = None
    created_at: Optional[str] = None


class WebhookEnvelope(BaseModel):
    """Fields common to every delivery, validated before narrowing."""
    model_config = ConfigDict(extra="allow")

    type: str = Field(..., min_length=1)
    timestamp: Optional[str] = None
    business_id: Optional[str] = None
    data: Any = None


SubscriptionEventType = Literal[
    "subscription.active",
    "subscription.created",
    "subscription.cancelled",
    "subscription.renewed",
    "subscription.on_hold",
    "subscription.failed",
    "subscription.expired",
    "subscription.plan_changed",
]


class PaymentSucceededEvent(WebhookEnvelope):
    type: Literal["payment.succeeded"]
    data: PaymentSucceededData


class SubscriptionEvent(WebhookEnvelope):
    type: SubscriptionEventType
    data: SubscriptionData


class RefundEvent(WebhookEnvelope):
    type: Literal["payment.refund", "refund.succeeded"]
    data: RefundData


class DisputeEvent(WebhookEnvelope):
    type: Literal["payment.dispute", "dispute.opened"]
    data: DisputeData


class UnhandledEvent(WebhookEnvelope):
    """A well-formed delivery whose type this service does not store."""


WebhookEvent = Union[
    PaymentSucceededEvent,
    SubscriptionEvent,
    RefundEvent,
    DisputeEvent,
    UnhandledEvent,
]


EVENT_MODELS = {
    "payment.succeeded": PaymentSucceededEvent,
    "subscription.active": SubscriptionEvent,
    "subscription.created": SubscriptionEvent,
    "subscription.cancelled": SubscriptionEvent,
    "subscription.renewed": SubscriptionEvent,
    "subscription.on_hold": SubscriptionEvent,
    "subscription.failed": SubscriptionEvent,
    "subscription.expired": SubscriptionEvent,
    "subscription.plan_changed": SubscriptionEvent,
    "payment.refund": RefundEvent,
    "refund.succeeded": RefundEvent,
    "payment.dispute": DisputeEvent,
    "dispute.opened": DisputeEvent,
}


class WebhookPayloadError(ValueError):
    """Raised when a delivery cannot be narrowed to a valid event."""


def parse_webhook_event(payload: Dict[str, Any]) -> WebhookEvent:
    """
    Narrow a raw webhook payload to its typed event model.

    Unknown event types come back as `UnhandledEvent` so the caller can
    acknowledge them. A known type with a malformed `data` block raises
    `WebhookPayloadError`.
    """
    if not isinstance(payload, dict):
        raise WebhookPayloadError("Webhook payload must be a JSON object")

    try:
        envelope = WebhookEnvelope.model_validate(payload)
    except ValidationError as e:
        raise WebhookPayloadError(f"Invalid webhook envelope: {e.errors()}") from e

    model = EVENT_MODELS.get(envelope.type)
    if model is None:
        return UnhandledEvent.model_validate(payload)

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise WebhookPayloadError(
            f"Invalid payload for {envelope.type}: {e.error_count()} validation error(s)"
        ) from e
