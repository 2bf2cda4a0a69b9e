"""
Billing API endpoints for Dodo Payments integration.
Handles plan changes, customer wallets and subscription status.
"""

import logging
from fastapi import APIRouter, HTTPException, Depends, Query, status

from app.schemas.billing import (
    ChangePlanRequest,
    ChangePlanResponse,
    CustomerWalletsResponse,
    SubscriptionStatusResponse,
)
from app.schemas.auth import UserResponse
from app.core.dependencies import get_current_user
from app.services.dodo_client import DodoPaymentsError, DodoPaymentsNotConfigured, dodo_client
from app.services.subscription_service import subscription_service


logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/change-plan", response_model=ChangePlanResponse)
async def change_plan(
    request: ChangePlanRequest,
    user: UserResponse = Depends(get_current_user),
):
    """
    Move one of the caller's subscriptions to another product.
    """
    if not request.subscription_id or not request.product_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="subscription_id and product_id are required",
        )

    current = await subscription_service.get_subscription_status(user.email)
    if request.subscription_id not in {s.subscription_id for s in current.subscriptions}:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found",
        )

    try:
        return await dodo_client.change_plan(
            subscription_id=request.subscription_id,
            product_id=request.product_id,
            prorate=request.prorate,
        )
    except DodoPaymentsNotConfigured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API key not configured",
        )
    except DodoPaymentsError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        )


@router.get("/customer-wallets", response_model=CustomerWalletsResponse)
async def get_customer_wallets(
    customer_id: str = Query(..., min_length=1),
    user: UserResponse = Depends(get_current_user),
):
    """
    Get wallets for the caller's customer record. Any upstream failure reads
    as no wallets.
    """
    customer = await subscription_service.get_customer_by_email(user.email)
    if not customer or customer["customer_id"] != customer_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customer does not belong to the current user",
        )

    try:
        wallets = await dodo_client.list_customer_wallets(customer_id)
    except DodoPaymentsError as e:
        logger.warning(f"Customer wallets lookup failed for {customer_id}: {e}")
        wallets = []

    return CustomerWalletsResponse(wallets=wallets)


@router.get("/subscription", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    user: UserResponse = Depends(get_current_user),
):
    """
    Get the current user's subscription status.
    """
    try:
        return await subscription_service.get_subscription_status(user.email)
    except Exception as e:
        logger.error(f"Subscription status lookup failed for {user.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load subscription status",
        )
