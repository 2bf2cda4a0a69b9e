"""
Payment provider webhook endpoints.

Dodo Payments delivers billing events here. Deliveries are verified,
narrowed by event type and upserted; any storage failure answers 500 so the
provider retries the delivery.
"""
import logging
from fastapi import APIRouter, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from ...core.config import settings
from ...schemas.billing import WebhookResponse
from ...schemas.webhooks import UnhandledEvent, WebhookPayloadError, parse_webhook_event
from ...services.webhook_service import (
    WebhookConfigurationError,
    WebhookVerificationFailed,
    webhook_service,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])

# Per-IP limiter for the public webhook surface
limiter = Limiter(key_func=get_remote_address)


@router.post("/dodo-payments", response_model=WebhookResponse)
@limiter.limit(settings.webhook_rate_limit)
async def dodo_payments_webhook(request: Request):
    """
    Handle Dodo Payments webhook events.

    **Auth**: Standard Webhooks signature (`webhook-id`, `webhook-timestamp`,
    `webhook-signature` headers)
    """
    body = await request.body()

    try:
        payload = webhook_service.verify(body, request.headers)
    except WebhookConfigurationError as e:
        logger.error(f"❌ Webhook received but not configured: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook verification is not configured",
        )
    except WebhookVerificationFailed as e:
        logger.warning(f"Rejected webhook delivery: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature",
        )
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload",
        )

    try:
        event = parse_webhook_event(payload)
    except WebhookPayloadError as e:
        logger.warning(f"Malformed webhook payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    if isinstance(event, UnhandledEvent):
        return WebhookResponse(
            status="ignored",
            message=f"Unhandled event type: {event.type}",
            event_type=event.type,
        )

    try:
        await webhook_service.process_event(event)
    except Exception as e:
        # Return 500 so the provider retries the delivery
        logger.error(f"CRITICAL: Failed to process {event.type} webhook: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process webhook",
        )

    return WebhookResponse(
        status="success",
        message=f"Processed {event.type}",
        event_type=event.type,
    )
