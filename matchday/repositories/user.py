"""
User Repository

Provides database operations for User model.
"""

import secrets
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from webauthn.helpers import bytes_to_base64url

from matchday.models.orm.user import User
from matchday.repositories.base import BaseRepository

WEBAUTHN_USER_HANDLE_BYTES = 32


class UserRepository(BaseRepository[User]):
    """Repository for User model operations."""

    model = User

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_by_email(self, email: str) -> User | None:
        """
        Get user by email address (case-insensitive).

        Args:
            email: Email address to search for

        Returns:
            User or None if not found
        """
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def ensure_webauthn_user_handle(self, user_id: UUID) -> str:
        """
        Return the user's WebAuthn user handle, creating it on first use.

        The handle is 32 random bytes, base64url-encoded. Creation uses a
        conditional update so two concurrent first registrations settle on a
        single handle.

        Args:
            user_id: User UUID

        Returns:
            Base64url user handle

        Raises:
            LookupError: If the user does not exist
        """
        result = await self.session.execute(
            select(User.webauthn_user_handle).where(User.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            raise LookupError("User not found")

        handle = row[0]
        if handle:
            return handle

        candidate = bytes_to_base64url(secrets.token_bytes(WEBAUTHN_USER_HANDLE_BYTES))
        await self.session.execute(
            update(User)
            .where(User.id == user_id, User.webauthn_user_handle.is_(None))
            .values(webauthn_user_handle=candidate)
        )
        result = await self.session.execute(
            select(User.webauthn_user_handle).where(User.id == user_id)
        )
        return result.scalar_one()

    async def touch_last_login(self, user_id: UUID) -> None:
        """Record a successful login for the user."""
        await self.session.execute(
            update(User).where(User.id == user_id).values(last_login=datetime.now(UTC))
        )
