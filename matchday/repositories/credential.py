"""
Credential Repository

Provides database operations for WebAuthn credentials. Every lookup used by
the ceremonies is scoped to the owning user.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from matchday.models.orm.credential import WebAuthnCredential
from matchday.repositories.base import BaseRepository


class CredentialRepository(BaseRepository[WebAuthnCredential]):
    """Repository for WebAuthnCredential model operations."""

    model = WebAuthnCredential

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def list_for_user(self, user_id: UUID) -> list[WebAuthnCredential]:
        """
        Get all credentials for a user, newest first.

        Args:
            user_id: Owning user UUID

        Returns:
            List of credentials
        """
        result = await self.session.execute(
            select(WebAuthnCredential)
            .where(WebAuthnCredential.user_id == user_id)
            .order_by(WebAuthnCredential.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_for_user(self, user_id: UUID) -> int:
        """Count the credentials a user has registered."""
        result = await self.session.execute(
            select(func.count(WebAuthnCredential.id)).where(WebAuthnCredential.user_id == user_id)
        )
        return result.scalar() or 0

    async def get_for_user(self, user_id: UUID, id: UUID) -> WebAuthnCredential | None:
        """
        Get a credential by its row ID, only if owned by the user.

        Args:
            user_id: Owning user UUID
            id: Credential row UUID

        Returns:
            Credential or None if not found or not owned
        """
        result = await self.session.execute(
            select(WebAuthnCredential).where(
                WebAuthnCredential.id == id,
                WebAuthnCredential.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_credential_id_for_user(
        self, user_id: UUID, credential_id: str
    ) -> WebAuthnCredential | None:
        """
        Get a credential by its protocol credential ID, scoped to a user.

        A credential owned by another account is reported as absent.

        Args:
            user_id: Owning user UUID
            credential_id: Base64url protocol credential ID

        Returns:
            Credential or None
        """
        result = await self.session.execute(
            select(WebAuthnCredential).where(
                WebAuthnCredential.credential_id == credential_id,
                WebAuthnCredential.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def update_counter(
        self,
        id: UUID,
        expected_counter: int,
        new_counter: int,
    ) -> bool:
        """
        Compare-and-set the signature counter and stamp last use.

        The write only applies when the stored counter still equals
        ``expected_counter`` and never lowers it.

        Args:
            id: Credential row UUID
            expected_counter: Counter value read before verification
            new_counter: Verified counter from the assertion

        Returns:
            True if the row was updated, False if another request won the race
        """
        if new_counter < expected_counter:
            return False

        now = datetime.now(UTC)
        result = await self.session.execute(
            update(WebAuthnCredential)
            .where(
                WebAuthnCredential.id == id,
                WebAuthnCredential.counter == expected_counter,
            )
            .values(counter=new_counter, last_used_at=now, updated_at=now)
            .returning(WebAuthnCredential.id)
        )
        return result.scalar_one_or_none() is not None

    async def rename(self, credential: WebAuthnCredential, name: str) -> WebAuthnCredential:
        """Set the user-facing label of a credential."""
        credential.credential_name = name
        await self.session.flush()
        await self.session.refresh(credential)
        return credential

    async def delete_for_user(self, user_id: UUID, id: UUID) -> bool:
        """
        Delete a single credential owned by the user.

        Returns:
            True if a row was deleted, False if not found or not owned
        """
        result = await self.session.execute(
            delete(WebAuthnCredential)
            .where(
                WebAuthnCredential.id == id,
                WebAuthnCredential.user_id == user_id,
            )
            .returning(WebAuthnCredential.id)
        )
        return result.scalar_one_or_none() is not None
