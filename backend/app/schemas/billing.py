"""
Pydantic schemas for billing endpoints and the billing tables.
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Table rows (upserted by webhook ingestion)
# ---------------------------------------------------------------------------

class CustomerRow(BaseModel):
    customer_id: str
    email: str
    name: Optional[str] = None
    auth_user_id: Optional[str] = None
    created_at: str
    updated_at: str


class ProductRow(BaseModel):
    product_id: str
    name: str
    created_at: str
    updated_at: str


class SubscriptionRow(BaseModel):
    subscription_id: str
    customer_id: str
    product_id: Optional[str] = None
    subscription_status: str
    quantity: int = 1
    currency: Optional[str] = None
    start_date: str
    next_billing_date: Optional[str] = None
    trial_end_date: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str


class TransactionRow(BaseModel):
    transaction_id: str
    subscription_id: Optional[str] = None
    customer_id: str
    status: str
    amount: int
    currency: str
    payment_method: Optional[str] = None
    card_last_four: Optional[str] = None
    card_network: Optional[str] = None
    card_type: Optional[str] = None
    billed_at: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str


class RefundRow(BaseModel):
    refund_id: str
    transaction_id: str
    customer_id: str
    amount: int
    currency: Optional[str] = None
    is_partial: bool = False
    reason: Optional[str] = None
    status: Optional[str] = None
    created_at: str


class DisputeRow(BaseModel):
    dispute_id: str
    transaction_id: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    dispute_stage: Optional[str] = None
    dispute_status: Optional[str] = None
    remarks: Optional[str] = None
    created_at: str


# ---------------------------------------------------------------------------
# API models
# ---------------------------------------------------------------------------

class WebhookResponse(BaseModel):
    """Response from webhook processing."""
    status: str
    message: str
    event_type: Optional[str] = None


ProrationMode = Literal["prorated_immediately", "prorated_next_billing_cycle", "no_proration"]


class ChangePlanRequest(BaseModel):
    """Request to move a subscription to another product."""
    subscription_id: str = ""
    product_id: str = ""
    prorate: ProrationMode = "prorated_immediately"


class ChangePlanResponse(BaseModel):
    subscription_id: str
    status: str
    message: Optional[str] = None


class CustomerWallet(BaseModel):
    wallet_id: Optional[str] = None
    balance: int = 0
    currency: str
    created_at: Optional[str] = None


class CustomerWalletsResponse(BaseModel):
    wallets: List[CustomerWallet] = Field(default_factory=list)


class SubscriptionSummary(BaseModel):
    subscription_id: str
    subscription_status: str
    product_id: Optional[str] = None
    next_billing_date: Optional[str] = None
    created_at: Optional[str] = None


class SubscriptionStatusResponse(BaseModel):
    """The caller's subscription state, derived from the billing tables."""
    is_subscribed: bool
    customer_id: Optional[str] = None
    subscriptions: List[SubscriptionSummary] = Field(default_factory=list)
