"""
AI chat proxy endpoints.

Chat requests are forwarded to OpenRouter with tiered model fallback, gated
on an active subscription and limited per UTC day.
"""
import logging
from typing import Tuple
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ...core.config import settings
from ...core.dependencies import get_current_user
from ...core.tier_limits import TierLimits
from ...dependencies.rate_limit import daily_rate_limiter, add_rate_limit_headers
from ...dependencies.subscription_check import require_chat_access
from ...schemas.ai import ChatRequest, ChatResponse, ModelTierResponse, UsageStats
from ...schemas.auth import UserResponse
from ...services.openrouter_client import (
    AllModelsFailedError,
    ModelRateLimitError,
    openrouter_client,
)
from ...services.subscription_service import subscription_service
from ...services.usage_service import usage_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    request: Request,
    response: Response,
    access: Tuple[UserResponse, str, TierLimits] = Depends(require_chat_access),
):
    """
    Send a conversation to the model tier and return the first successful reply.

    **Auth**: Bearer Supabase access token, active subscription required
    **Rate Limit**: per UTC day, by plan
    """
    user, plan_type, limits = access

    if not body.messages:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No messages provided",
        )

    if not openrouter_client.is_configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server is not configured with an OpenRouter API key.",
        )

    daily_rate_limiter.enforce(request, user.id, limits.chat_requests_per_day)

    max_tokens = body.max_tokens or settings.ai_default_max_tokens
    if limits.max_tokens_cap is not None:
        max_tokens = min(max_tokens, limits.max_tokens_cap)
    temperature = body.temperature if body.temperature is not None else settings.ai_default_temperature

    try:
        result = await openrouter_client.chat_with_fallback(
            body.messages,
            temperature=temperature,
            max_tokens=max_tokens,
            preferred_model=body.model,
        )
    except ModelRateLimitError as e:
        logger.warning(f"Chat for {user.email} rate limited upstream: {e}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please wait a bit before trying again.",
        )
    except AllModelsFailedError as e:
        logger.error(f"Chat for {user.email} failed on every model: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="All models failed to respond",
        )

    try:
        customer = await subscription_service.get_customer_by_email(user.email)
    except Exception as e:
        logger.warning(f"Customer lookup for usage logging failed ({user.email}): {e}")
        customer = None

    await usage_service.log_usage(
        customer_id=customer["customer_id"] if customer else None,
        model=result.model_used,
        usage=result.usage,
        input_text=body.messages[-1].content,
        response_text=result.content,
    )

    if result.attempts:
        skipped = ", ".join(f"{a.model}={a.status_code or a.error}" for a in result.attempts)
        logger.info(f"Chat for {user.email} fell back past {skipped}")
    logger.info(f"Chat served for {user.email} ({plan_type}) by {result.model_used}")
    add_rate_limit_headers(response, request)
    return result.to_response()


@router.get("/stats", response_model=UsageStats)
async def get_usage_stats(user: UserResponse = Depends(get_current_user)):
    """
    Get the caller's AI usage: all-time totals, today's totals and the most used model.
    """
    customer = await subscription_service.get_customer_by_email(user.email)
    if not customer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Customer not found",
        )

    try:
        return await usage_service.get_usage_stats(customer["customer_id"])
    except Exception as e:
        logger.error(f"Stats lookup failed for {user.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )


@router.get("/models", response_model=ModelTierResponse)
async def list_models():
    """
    Public endpoint listing the model tier in fallback order.
    """
    return ModelTierResponse(
        models=openrouter_client.model_priority,
        default_temperature=settings.ai_default_temperature,
        default_max_tokens=settings.ai_default_max_tokens,
    )
