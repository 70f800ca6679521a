"""
Access token utilities.

The identity provider (Supabase Auth) issues HS256-signed JWTs whose ``sub``
claim is the user id and whose audience is ``authenticated``. This module
verifies them locally; ``create_access_token`` mints compatible tokens for
local development and tests.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from storage_gateway.config import settings

logger = logging.getLogger(__name__)


def create_access_token(
    subject: str,
    expires_delta: timedelta | None = None,
    email: str | None = None,
    secret: str | None = None,
) -> str:
    """
    Create an access token shaped like the identity provider's.

    Args:
        subject: User ID
        expires_delta: Token lifetime (default: one hour)
        email: Optional email claim
        secret: Signing secret (default: from settings)

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=1))

    claims: dict[str, Any] = {
        "sub": str(subject),
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "iat": now,
        "exp": expire,
    }
    if email:
        claims["email"] = email

    return jwt.encode(
        claims,
        secret or settings.supabase_jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str, secret: str | None = None) -> dict[str, Any]:
    """
    Decode and validate an access token.

    Checks signature, expiry and audience.

    Raises:
        JWTError: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            secret or settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise
