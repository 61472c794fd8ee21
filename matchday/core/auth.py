"""
Authentication

Provides FastAPI dependencies for authentication.
Supports bearer access tokens issued by the identity provider, sent either in
the Authorization header or the ``access_token`` cookie.
"""

import logging
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from matchday.core.security import decode_access_token

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class UserPrincipal:
    """
    Authenticated user principal.

    All user info is extracted from JWT claims (no database lookup required).
    """

    user_id: UUID
    email: str


async def get_current_user_optional(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserPrincipal | None:
    """
    Get the current user from the access token (optional).

    Checks for authentication in this order:
    1. Authorization: Bearer header
    2. access_token cookie (for browser clients)

    Returns None if no token is provided or token is invalid.
    """
    token = None

    if credentials:
        token = credentials.credentials
    elif "access_token" in request.cookies:
        token = request.cookies["access_token"]

    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None

    try:
        user_id = UUID(payload["sub"])
    except (KeyError, ValueError):
        return None

    email = payload.get("email")
    if not email:
        logger.warning(f"Token for user {user_id} missing required email claim.")
        return None

    return UserPrincipal(user_id=user_id, email=email)


async def get_current_user(
    user: Annotated[UserPrincipal | None, Depends(get_current_user_optional)],
) -> UserPrincipal:
    """
    Get the current user from the access token (required).

    Raises:
        HTTPException: 401 if not authenticated or token is invalid
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


# Type aliases for dependency injection
CurrentUser = Annotated[UserPrincipal, Depends(get_current_user)]
