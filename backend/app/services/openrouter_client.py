"""
OpenRouter chat client with tiered model fallback.

Models are tried in priority order (free tiers first) until one returns a
successful completion. Any failure, rate limits included, moves on to the
next model.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..core.config import settings
from ..schemas.ai import ChatMessage, ChatResponse, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "Provide clear, complete responses without adding unnecessary punctuation "
    "or symbols at the end. Use proper grammar and complete sentences."
)
EMPTY_RESPONSE = "No response generated"

_LEADING_NOISE = re.compile(r"^[!,.;\s]+")
_TRAILING_NOISE = re.compile(r"[!,.;\s]+$")
_WHITESPACE = re.compile(r"\s+")


class ModelCallError(Exception):
    """Base class for chat completion failures."""


class ModelRateLimitError(ModelCallError):
    """Every model failed and the last one was rate limited."""


class AllModelsFailedError(ModelCallError):
    """Every model in the tier failed."""


@dataclass
class ModelAttempt:
    model: str
    status_code: Optional[int] = None
    error: str = ""


@dataclass
class FallbackResult:
    content: str
    model_used: str
    fallback_used: bool
    usage: Optional[Dict[str, Any]] = None
    attempts: List[ModelAttempt] = field(default_factory=list)

    def to_response(self) -> ChatResponse:
        return ChatResponse(
            content=self.content,
            usage=TokenUsage(**self.usage) if self.usage else None,
            model_used=self.model_used,
            fallback_used=self.fallback_used,
        )


def clean_response(content: Optional[str]) -> str:
    """Strip stray punctuation at both ends and collapse whitespace."""
    if not content:
        return EMPTY_RESPONSE

    cleaned = _LEADING_NOISE.sub("", content)
    cleaned = _TRAILING_NOISE.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned or EMPTY_RESPONSE


def enhance_messages(messages: List[ChatMessage]) -> List[Dict[str, str]]:
    """Prepend the default system prompt unless the caller supplied one."""
    payload = [{"role": m.role, "content": m.content} for m in messages]
    if any(m.role == "system" for m in messages):
        return payload
    return [{"role": "system", "content": DEFAULT_SYSTEM_PROMPT}] + payload


def build_model_order(priority: List[str], preferred_model: Optional[str] = None) -> List[str]:
    """
    Order models for a request.

    A preferred model already in the tier moves to the front; an unknown
    preferred model is prepended to the full tier.
    """
    if not preferred_model:
        return list(priority)
    return [preferred_model] + [m for m in priority if m != preferred_model]


class OpenRouterClient:
    """Client for OpenRouter chat completions with model fallback."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model_priority: Optional[List[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._model_priority = model_priority
        self._transport = transport

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key or settings.openrouter_api_key

    @property
    def base_url(self) -> str:
        return (self._base_url or settings.openrouter_base_url).rstrip("/")

    @property
    def model_priority(self) -> List[str]:
        return self._model_priority or settings.ai_model_priority

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": settings.app_url,
            "X-Title": settings.openrouter_app_title,
        }

    async def chat_with_fallback(
        self,
        messages: List[ChatMessage],
        temperature: float,
        max_tokens: int,
        preferred_model: Optional[str] = None,
    ) -> FallbackResult:
        """
        Try each model in order and return the first successful completion.

        Raises:
            ModelRateLimitError: all models failed, the last with HTTP 429
            AllModelsFailedError: all models failed otherwise
        """
        models = build_model_order(self.model_priority, preferred_model)
        body_messages = enhance_messages(messages)
        attempts: List[ModelAttempt] = []

        logger.info(f"Trying models in order: {' → '.join(models)}")

        async with httpx.AsyncClient(
            timeout=settings.openrouter_timeout_seconds,
            transport=self._transport,
        ) as client:
            for index, model in enumerate(models):
                is_fallback = index > 0
                logger.debug(f"Attempting model {model}{' (fallback)' if is_fallback else ''}")

                try:
                    response = await client.post(
                        f"{self.base_url}/chat/completions",
                        headers=self._headers(),
                        json={
                            "model": model,
                            "messages": body_messages,
                            "max_tokens": max_tokens,
                            "temperature": temperature,
                        },
                    )
                except httpx.HTTPError as e:
                    logger.warning(f"❌ Model {model} transport error: {type(e).__name__}: {e}")
                    attempts.append(ModelAttempt(model=model, error=str(e) or type(e).__name__))
                    continue

                if response.is_success:
                    try:
                        data = response.json()
                    except ValueError as e:
                        logger.warning(f"❌ Model {model} returned a non-JSON body")
                        attempts.append(ModelAttempt(model=model, status_code=response.status_code, error=str(e)))
                        continue

                    choices = data.get("choices") or [{}]
                    raw_content = (choices[0].get("message") or {}).get("content")
                    logger.info(f"✅ Success with model: {model}")

                    return FallbackResult(
                        content=clean_response(raw_content),
                        model_used=model,
                        fallback_used=is_fallback,
                        usage=data.get("usage"),
                        attempts=attempts,
                    )

                logger.warning(f"❌ Model {model} failed: {response.status_code} - {response.text[:500]}")
                attempts.append(ModelAttempt(
                    model=model,
                    status_code=response.status_code,
                    error=response.text[:500],
                ))

        if attempts and attempts[-1].status_code == 429:
            raise ModelRateLimitError(f"Rate limit exceeded for model {attempts[-1].model}")
        summary = ", ".join(f"{a.model}={a.status_code or a.error}" for a in attempts)
        raise AllModelsFailedError(f"All models failed: {summary}")


# Global client instance
openrouter_client = OpenRouterClient()
