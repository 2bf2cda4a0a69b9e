"""
Account endpoints.

Sign-up and sign-in happen in the frontend against Supabase Auth; this API
only resolves the resulting access tokens.
"""
from fastapi import APIRouter, Depends

from ...core.config import settings
from ...core.dependencies import get_current_user
from ...schemas.auth import AuthHealthResponse, UserResponse


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/me", response_model=UserResponse)
async def read_current_user(user: UserResponse = Depends(get_current_user)):
    """The user behind the bearer token."""
    return user


@router.get("/health", response_model=AuthHealthResponse)
async def auth_health():
    return AuthHealthResponse(
        status="healthy",
        service="authentication",
        local_token_verification=bool(settings.supabase_jwt_secret),
    )
