"""
Security utilities for authentication.

Access tokens are issued by Supabase Auth. When the project JWT secret is
configured they are verified locally; otherwise callers fall back to asking
Supabase for the user behind the token.
"""
import logging
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from .config import settings

logger = logging.getLogger(__name__)

SUPABASE_AUDIENCE = "authenticated"


def verify_supabase_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a Supabase JWT token directly.

    Returns the decoded claims, or None when the secret is not configured
    or the token does not verify.
    """
    if not settings.supabase_jwt_secret:
        return None

    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=SUPABASE_AUDIENCE,
        )
    except JWTError as e:
        logger.debug(f"Supabase token verification failed: {type(e).__name__}: {e}")
        return None
