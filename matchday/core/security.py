"""
Security Utilities

Access token handling for tokens minted by the identity provider.

The identity provider signs access tokens with a shared secret; this module
only verifies them; it never issues tokens of its own.
"""

import logging
from typing import Any

import jwt

from matchday.config import get_settings

logger = logging.getLogger(__name__)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate an identity-provider access token.

    Args:
        token: JWT token string

    Returns:
        Decoded payload dict, or None if the token is invalid or expired
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=[settings.identity_jwt_algorithm],
            audience=settings.identity_jwt_audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected access token: {e}")
        return None

    return payload
