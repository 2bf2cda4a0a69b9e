"""
Authentication service for resolving Supabase access tokens to users.
"""
import logging
from typing import Any, Dict

from fastapi import HTTPException, status

from ..core.supabase_client import supabase_client
from ..core.security import verify_supabase_token
from ..schemas.auth import UserResponse

logger = logging.getLogger(__name__)


class AuthService:
    """Service class for authentication operations."""

    @property
    def supabase(self):
        return supabase_client.service_client

    def _user_from_claims(self, claims: Dict[str, Any]) -> UserResponse:
        user_metadata = claims.get("user_metadata") or {}
        return UserResponse(
            id=claims["sub"],
            email=claims["email"],
            full_name=user_metadata.get("full_name"),
        )

    async def get_current_user(self, token: str) -> UserResponse:
        """
        Resolve an access token to a user.

        Tokens are verified locally when the JWT secret is configured,
        otherwise Supabase Auth is asked for the user.
        """
        claims = verify_supabase_token(token)
        if claims and claims.get("sub") and claims.get("email"):
            return self._user_from_claims(claims)

        try:
            response = self.supabase.auth.get_user(token)
        except Exception as e:
            logger.info(f"Supabase rejected access token: {type(e).__name__}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

        user = response.user if response else None
        if not user or not user.email:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user_metadata = user.user_metadata or {}
        return UserResponse(
            id=user.id,
            email=user.email,
            full_name=user_metadata.get("full_name"),
            created_at=str(user.created_at) if user.created_at else None,
            email_confirmed_at=str(user.email_confirmed_at) if user.email_confirmed_at else None,
        )


# Global service instance
auth_service = AuthService()
