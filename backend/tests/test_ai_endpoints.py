"""
Tests for the AI chat proxy endpoints.
"""
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.core.config import settings
from app.schemas.ai import SubscriptionDebugInfo
from app.services.openrouter_client import (
    AllModelsFailedError,
    FallbackResult,
    ModelAttempt,
    ModelRateLimitError,
)
from app.services.usage_service import MAX_LOGGED_TEXT, summarize_usage, usage_service


client = TestClient(app)

CHAT_URL = "/api/v1/ai/chat"
CHAT_BODY = {"messages": [{"role": "user", "content": "Hello"}]}


def fallback_result(model="model-a:free", fallback_used=False):
    return FallbackResult(
        content="Hi there",
        model_used=model,
        fallback_used=fallback_used,
        usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    )


@pytest.fixture
def subscribed():
    with patch(
        "app.services.subscription_service.subscription_service.has_active_subscription",
        new=AsyncMock(return_value=True),
    ):
        yield


@pytest.fixture
def not_subscribed():
    with patch(
        "app.services.subscription_service.subscription_service.has_active_subscription",
        new=AsyncMock(return_value=False),
    ), patch(
        "app.services.subscription_service.subscription_service.build_debug_info",
        new=AsyncMock(return_value=SubscriptionDebugInfo(userEmail="user@example.com")),
    ):
        yield


@pytest.fixture
def model_tier():
    """Patch the model call and usage logging; yields (chat_mock, log_mock)."""
    with patch(
        "app.services.openrouter_client.openrouter_client.chat_with_fallback",
        new=AsyncMock(return_value=fallback_result()),
    ) as chat_mock, patch(
        "app.services.subscription_service.subscription_service.get_customer_by_email",
        new=AsyncMock(return_value={"customer_id": "cus_1", "email": "user@example.com"}),
    ), patch(
        "app.services.usage_service.usage_service.log_usage",
        new=AsyncMock(),
    ) as log_mock:
        yield chat_mock, log_mock


def test_chat_requires_auth():
    response = client.post(CHAT_URL, json=CHAT_BODY)
    assert response.status_code == 401


def test_chat_success(auth_headers, subscribed, model_tier):
    chat_mock, log_mock = model_tier

    response = client.post(CHAT_URL, json=CHAT_BODY, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["content"] == "Hi there"
    assert data["model_used"] == "model-a:free"
    assert data["fallback_used"] is False
    assert data["usage"]["total_tokens"] == 15

    assert response.headers["X-RateLimit-Limit"] == str(settings.ai_daily_limit_paid)
    assert response.headers["X-RateLimit-Remaining"] == str(settings.ai_daily_limit_paid - 1)

    kwargs = chat_mock.call_args.kwargs
    assert kwargs["temperature"] == settings.ai_default_temperature
    assert kwargs["max_tokens"] == settings.ai_default_max_tokens

    log_mock.assert_awaited_once()
    assert log_mock.call_args.kwargs["customer_id"] == "cus_1"
    assert log_mock.call_args.kwargs["input_text"] == "Hello"


def test_chat_logs_skipped_models(auth_headers, subscribed, model_tier, caplog):
    chat_mock, _ = model_tier
    result = fallback_result(model="model-b:free", fallback_used=True)
    result.attempts = [ModelAttempt(model="model-a:free", status_code=503, error="unavailable")]
    chat_mock.return_value = result

    with caplog.at_level("INFO", logger="app.api.v1.ai"):
        response = client.post(CHAT_URL, json=CHAT_BODY, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["fallback_used"] is True
    assert "fell back past model-a:free=503" in caplog.text


def test_chat_passes_request_options(auth_headers, subscribed, model_tier):
    chat_mock, _ = model_tier
    body = {**CHAT_BODY, "model": "model-c", "temperature": 0.2, "maxTokens": 4000}

    response = client.post(CHAT_URL, json=body, headers=auth_headers)

    assert response.status_code == 200
    kwargs = chat_mock.call_args.kwargs
    assert kwargs["preferred_model"] == "model-c"
    assert kwargs["temperature"] == 0.2
    assert kwargs["max_tokens"] == 4000


def test_chat_without_subscription_is_forbidden(auth_headers, not_subscribed, model_tier):
    chat_mock, _ = model_tier

    response = client.post(CHAT_URL, json=CHAT_BODY, headers=auth_headers)

    assert response.status_code == 403
    detail = response.json()["detail"]
    assert detail["error"] == "Subscription required"
    assert detail["debug"]["userEmail"] == "user@example.com"
    chat_mock.assert_not_called()


def test_dev_mode_skips_gate_with_free_limits(auth_headers, not_subscribed, model_tier, monkeypatch):
    monkeypatch.setattr(settings, "environment", "dev")
    chat_mock, _ = model_tier

    response = client.post(CHAT_URL, json={**CHAT_BODY, "maxTokens": 5000}, headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == str(settings.ai_daily_limit_free)
    assert chat_mock.call_args.kwargs["max_tokens"] == settings.ai_default_max_tokens


def test_chat_with_no_messages(auth_headers, subscribed, model_tier):
    response = client.post(CHAT_URL, json={"messages": []}, headers=auth_headers)
    assert response.status_code == 400


def test_chat_with_invalid_role(auth_headers, subscribed, model_tier):
    response = client.post(CHAT_URL, json={"messages": [{"role": "robot", "content": "x"}]}, headers=auth_headers)
    assert response.status_code == 422


def test_chat_without_openrouter_key(auth_headers, subscribed, model_tier, monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", None)

    response = client.post(CHAT_URL, json=CHAT_BODY, headers=auth_headers)
    assert response.status_code == 500


def test_chat_upstream_rate_limited(auth_headers, subscribed, model_tier):
    chat_mock, log_mock = model_tier
    chat_mock.side_effect = ModelRateLimitError("Rate limit exceeded for model model-c")

    response = client.post(CHAT_URL, json=CHAT_BODY, headers=auth_headers)

    assert response.status_code == 429
    log_mock.assert_not_called()


def test_chat_all_models_failed(auth_headers, subscribed, model_tier):
    chat_mock, _ = model_tier
    chat_mock.side_effect = AllModelsFailedError("All models failed")

    response = client.post(CHAT_URL, json=CHAT_BODY, headers=auth_headers)
    assert response.status_code == 502


def test_daily_limit_is_enforced(auth_headers, subscribed, model_tier, monkeypatch):
    monkeypatch.setattr(settings, "ai_daily_limit_paid", 2)
    chat_mock, _ = model_tier

    statuses = [client.post(CHAT_URL, json=CHAT_BODY, headers=auth_headers) for _ in range(3)]

    assert [r.status_code for r in statuses] == [200, 200, 429]
    limited = statuses[-1]
    assert limited.headers["X-RateLimit-Remaining"] == "0"
    assert int(limited.headers["Retry-After"]) > 0
    assert chat_mock.await_count == 2


def test_usage_logging_failure_does_not_fail_chat(auth_headers, subscribed, model_tier):
    with patch(
        "app.services.subscription_service.subscription_service.get_customer_by_email",
        new=AsyncMock(side_effect=Exception("database unavailable")),
    ):
        response = client.post(CHAT_URL, json=CHAT_BODY, headers=auth_headers)

    assert response.status_code == 200
    _, log_mock = model_tier
    assert log_mock.call_args.kwargs["customer_id"] is None


def test_list_models_is_public():
    response = client.get("/api/v1/ai/models")

    assert response.status_code == 200
    data = response.json()
    assert data["models"] == settings.ai_model_priority
    assert data["default_temperature"] == settings.ai_default_temperature
    assert data["default_max_tokens"] == settings.ai_default_max_tokens


def test_stats_for_unknown_customer(auth_headers, fake_supabase):
    response = client.get("/api/v1/ai/stats", headers=auth_headers)
    assert response.status_code == 404


def test_stats(auth_headers, fake_supabase):
    fake_supabase.returns("customers", [{"customer_id": "cus_1", "email": "user@example.com"}])
    ai_logs = fake_supabase.returns("ai_logs", [
        {"model": "model-a:free", "prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        {"model": "model-a:free", "prompt_tokens": 20, "completion_tokens": 10, "total_tokens": 30},
        {"model": "model-c", "prompt_tokens": 1, "completion_tokens": 1, "total_tokens": None},
    ])

    response = client.get("/api/v1/ai/stats", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_requests"] == 3
    assert data["total_tokens"] == 45
    assert data["most_used_model"] == "model-a:free"
    ai_logs.eq.assert_any_call("customer_id", "cus_1")
    assert ai_logs.gte.call_args.args[0] == "created_at"


def test_summarize_usage_without_rows():
    stats = summarize_usage([], [])

    assert stats.total_requests == 0
    assert stats.today_tokens == 0
    assert stats.most_used_model == "N/A"


def test_summarize_usage_splits_today():
    all_time = [
        {"model": "a", "prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 3},
        {"model": "b", "prompt_tokens": 4, "completion_tokens": 5, "total_tokens": 9},
    ]

    stats = summarize_usage(all_time, all_time[1:])

    assert stats.total_prompt_tokens == 5
    assert stats.total_completion_tokens == 7
    assert stats.today_requests == 1
    assert stats.today_tokens == 9


async def test_log_usage_truncates_and_skips_without_customer(fake_supabase):
    await usage_service.log_usage(None, "model-a", None, "hi", "hello")
    assert "ai_logs" not in fake_supabase.queries

    await usage_service.log_usage("cus_1", "model-a", {"total_tokens": 3}, "x" * 5000, "ok")
    row = fake_supabase.queries["ai_logs"].insert.call_args.args[0]
    assert len(row["input_text"]) == MAX_LOGGED_TEXT
    assert row["total_tokens"] == 3
    assert row["prompt_tokens"] is None
