"""
Tests for the OpenRouter client's model fallback.
"""
import json

import httpx
import pytest

from app.schemas.ai import ChatMessage
from app.services.openrouter_client import (
    DEFAULT_SYSTEM_PROMPT,
    EMPTY_RESPONSE,
    AllModelsFailedError,
    ModelRateLimitError,
    OpenRouterClient,
    build_model_order,
    clean_response,
    enhance_messages,
)


MODELS = ["model-a:free", "model-b:free", "model-c"]
MESSAGES = [ChatMessage(role="user", content="Hello")]


def completion(content="Hi there", usage=None):
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": usage or {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


def make_client(responses):
    """
    Client whose transport answers each attempted model from `responses`
    (model -> status code, or an exception to raise). Returns (client, calls).
    """
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append({"model": body["model"], "body": body, "headers": request.headers})

        outcome = responses.get(body["model"], 500)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome == 200:
            return httpx.Response(200, json=completion(f"reply from {body['model']}"))
        return httpx.Response(outcome, json={"error": {"message": "nope"}})

    client = OpenRouterClient(
        api_key="sk-or-test",
        base_url="https://openrouter.test/api/v1",
        model_priority=MODELS,
        transport=httpx.MockTransport(handler),
    )
    return client, calls


async def test_first_model_success():
    client, calls = make_client({"model-a:free": 200})

    result = await client.chat_with_fallback(MESSAGES, temperature=0.7, max_tokens=100)

    assert result.model_used == "model-a:free"
    assert result.fallback_used is False
    assert result.content == "reply from model-a:free"
    assert result.usage["total_tokens"] == 15
    assert [c["model"] for c in calls] == ["model-a:free"]


async def test_falls_back_after_server_error():
    client, calls = make_client({"model-a:free": 500, "model-b:free": 200})

    result = await client.chat_with_fallback(MESSAGES, temperature=0.7, max_tokens=100)

    assert result.model_used == "model-b:free"
    assert result.fallback_used is True
    assert [a.status_code for a in result.attempts] == [500]


async def test_rate_limited_model_falls_through():
    client, calls = make_client({"model-a:free": 429, "model-b:free": 200})

    result = await client.chat_with_fallback(MESSAGES, temperature=0.7, max_tokens=100)

    assert result.model_used == "model-b:free"
    assert [c["model"] for c in calls] == ["model-a:free", "model-b:free"]


async def test_transport_error_falls_through():
    client, _ = make_client({
        "model-a:free": httpx.ConnectError("connection refused"),
        "model-b:free": 200,
    })

    result = await client.chat_with_fallback(MESSAGES, temperature=0.7, max_tokens=100)
    assert result.model_used == "model-b:free"


async def test_all_models_fail():
    client, calls = make_client({})

    with pytest.raises(AllModelsFailedError):
        await client.chat_with_fallback(MESSAGES, temperature=0.7, max_tokens=100)
    assert [c["model"] for c in calls] == MODELS


async def test_last_model_rate_limited():
    client, _ = make_client({"model-a:free": 500, "model-b:free": 500, "model-c": 429})

    with pytest.raises(ModelRateLimitError):
        await client.chat_with_fallback(MESSAGES, temperature=0.7, max_tokens=100)


async def test_preferred_model_is_tried_first():
    client, calls = make_client({"model-c": 200})

    result = await client.chat_with_fallback(
        MESSAGES, temperature=0.7, max_tokens=100, preferred_model="model-c"
    )

    assert result.model_used == "model-c"
    assert result.fallback_used is False
    assert [c["model"] for c in calls] == ["model-c"]


async def test_request_shape():
    client, calls = make_client({"model-a:free": 200})

    await client.chat_with_fallback(MESSAGES, temperature=0.3, max_tokens=42)

    [call] = calls
    assert call["headers"]["authorization"] == "Bearer sk-or-test"
    assert "http-referer" in call["headers"]
    assert "x-title" in call["headers"]
    assert call["body"]["temperature"] == 0.3
    assert call["body"]["max_tokens"] == 42
    assert call["body"]["messages"][0] == {"role": "system", "content": DEFAULT_SYSTEM_PROMPT}
    assert call["body"]["messages"][1] == {"role": "user", "content": "Hello"}


def test_build_model_order():
    assert build_model_order(MODELS) == MODELS
    assert build_model_order(MODELS, "model-b:free") == ["model-b:free", "model-a:free", "model-c"]
    assert build_model_order(MODELS, "other/model") == ["other/model"] + MODELS


def test_enhance_messages_keeps_caller_system_prompt():
    messages = [
        ChatMessage(role="system", content="Be terse"),
        ChatMessage(role="user", content="Hi"),
    ]
    assert enhance_messages(messages) == [
        {"role": "system", "content": "Be terse"},
        {"role": "user", "content": "Hi"},
    ]


@pytest.mark.parametrize("raw,expected", [
    ("Hello world", "Hello world"),
    ("!!, Hello   world...", "Hello world"),
    ("Line one\n\nLine two.", "Line one Line two"),
    ("", EMPTY_RESPONSE),
    (None, EMPTY_RESPONSE),
    ("...", EMPTY_RESPONSE),
])
def test_clean_response(raw, expected):
    assert clean_response(raw) == expected


def test_is_configured():
    assert OpenRouterClient(api_key="sk-or-test").is_configured is True
