"""JWT access token validation.

Customers sign in through the hosted auth product, which issues HS256
tokens signed with the project JWT secret. The backend only verifies them;
``create_access_token`` exists for local tooling and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.exceptions import InvalidTokenError

from hellofixo.lib.settings import settings


# Token expiration time (1 hour, matching the hosted auth default)
TOKEN_EXPIRY_HOURS = 1


def create_access_token(
    user_id: str,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    role: str = "authenticated",
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a token shaped like the ones the hosted auth product issues.

    Args:
        user_id: UUID of the user (stored in 'sub' claim)
        phone: Optional phone claim
        email: Optional email claim
        role: Database role claim
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(hours=TOKEN_EXPIRY_HOURS)

    now = datetime.now(timezone.utc)

    payload = {
        "sub": user_id,
        "aud": settings.jwt_audience,
        "role": role,
        "phone": phone or "",
        "email": email or "",
        "iat": now,
        "exp": now + expires_delta,
    }

    return jwt.encode(
        payload,
        settings.supabase_jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def verify_token(token: str) -> dict:
    """Verify and decode an access token.

    Args:
        token: JWT token string to verify

    Returns:
        Decoded token payload with claims

    Raises:
        InvalidTokenError: If token is invalid, expired, has the wrong
            audience, or the signature doesn't match
    """
    return jwt.decode(
        token,
        settings.supabase_jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
    )


def get_user_from_token(token: str) -> tuple[str, Optional[str], Optional[str]]:
    """Extract (user_id, phone, email) from a token.

    Raises:
        InvalidTokenError: If token is invalid or has no subject
    """
    payload = verify_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Token has no subject")
    return user_id, payload.get("phone") or None, payload.get("email") or None
