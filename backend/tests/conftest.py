"""
Shared test fixtures.

Required settings are seeded into the environment before any `app` module is
imported, since `app.core.config.settings` is built at import time.
"""
import base64
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

os.environ["SUPABASE_URL"] = "https://test-project.supabase.co"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-service-role-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-enough-length-for-hs256"
os.environ["ENVIRONMENT"] = "test"
os.environ["DODO_PAYMENTS_WEBHOOK_KEY"] = "whsec_" + base64.b64encode(
    b"test-webhook-signing-secret-0123"
).decode()
os.environ["OPENROUTER_API_KEY"] = "sk-or-test-key"
os.environ.pop("DODO_PAYMENTS_API_KEY", None)

from jose import jwt  # noqa: E402
from standardwebhooks import Webhook  # noqa: E402

from app.core.config import settings  # noqa: E402
from app.core.supabase_client import supabase_client  # noqa: E402
from app.dependencies.rate_limit import reset_daily_limits  # noqa: E402


TEST_USER_ID = "user-123"
TEST_USER_EMAIL = "user@example.com"

QUERY_BUILDER_METHODS = (
    "select", "insert", "update", "upsert", "delete",
    "eq", "gte", "is_", "limit", "order", "range",
)


def make_query(data: Optional[List[Dict[str, Any]]] = None) -> MagicMock:
    """A chainable PostgREST query whose execute() returns `data`."""
    query = MagicMock()
    for method in QUERY_BUILDER_METHODS:
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=data if data is not None else [])
    return query


class FakeSupabase:
    """Stand-in for the service role client: one chainable query per table."""

    def __init__(self):
        self.queries: Dict[str, MagicMock] = {}
        self.auth = MagicMock()
        self.auth.admin.list_users.return_value = []

    def table(self, name: str) -> MagicMock:
        return self.queries.setdefault(name, make_query())

    def returns(self, name: str, data: List[Dict[str, Any]]) -> MagicMock:
        self.queries[name] = make_query(data)
        return self.queries[name]


@pytest.fixture
def fake_supabase():
    """Route every service through a FakeSupabase for the duration of a test."""
    fake = FakeSupabase()
    previous = supabase_client._service_client
    supabase_client._service_client = fake
    yield fake
    supabase_client._service_client = previous


@pytest.fixture(autouse=True)
def reset_rate_limits():
    reset_daily_limits()
    yield
    reset_daily_limits()


@pytest.fixture
def auth_token():
    """A Supabase-style access token for the test user."""
    return jwt.encode(
        {
            "sub": TEST_USER_ID,
            "email": TEST_USER_EMAIL,
            "aud": "authenticated",
            "exp": int(time.time()) + 3600,
            "user_metadata": {"full_name": "Test User"},
        },
        settings.supabase_jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def auth_headers(auth_token):
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def sign_webhook():
    """Build Standard Webhooks headers for a raw body."""
    def _sign(
        body: str,
        secret: Optional[str] = None,
        msg_id: str = "msg_test_1",
        timestamp: Optional[datetime] = None,
    ) -> Dict[str, str]:
        now = timestamp or datetime.now(timezone.utc)
        return {
            "webhook-id": msg_id,
            "webhook-timestamp": str(int(now.timestamp())),
            "webhook-signature": Webhook(secret or settings.dodo_payments_webhook_key).sign(msg_id, now, body),
            "content-type": "application/json",
        }
    return _sign


@pytest.fixture
def customer_payload():
    return {"customer_id": "cus_123", "email": "Buyer@Example.com ", "name": "Buyer"}


@pytest.fixture
def payment_succeeded_payload(customer_payload):
    return {
        "business_id": "bus_1",
        "type": "payment.succeeded",
        "timestamp": "2025-01-15T10:00:00Z",
        "data": {
            "payment_id": "pay_123",
            "status": "succeeded",
            "total_amount": 1999,
            "currency": "USD",
            "customer": customer_payload,
            "subscription_id": "sub_123",
            "payment_method": "card",
            "card_last_four": "4242",
            "card_network": "VISA",
            "card_type": "credit",
        },
    }


@pytest.fixture
def subscription_payload(customer_payload):
    return {
        "business_id": "bus_1",
        "type": "subscription.active",
        "timestamp": "2025-01-15T10:00:00Z",
        "data": {
            "subscription_id": "sub_123",
            "status": "active",
            "customer": customer_payload,
            "product_id": "prod_pro",
            "quantity": 1,
            "currency": "USD",
            "start_date": "2025-01-15T10:00:00Z",
            "next_billing_date": "2025-02-15T10:00:00Z",
            "trial_period_days": 7,
            "metadata": {"plan": "pro"},
        },
    }
