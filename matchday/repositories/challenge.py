"""
Challenge Repository

Stores WebAuthn ceremony challenges in the database so that the options and
verify steps can be served by different processes.

Consumption is a single DELETE ... RETURNING statement: when two requests race
for the same challenge, exactly one of them gets the row back.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from matchday.models.enums import ChallengeType
from matchday.models.orm.challenge import WebAuthnChallenge
from matchday.repositories.base import BaseRepository


class ChallengeRepository(BaseRepository[WebAuthnChallenge]):
    """Repository for WebAuthnChallenge model operations."""

    model = WebAuthnChallenge

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def replace(
        self,
        user_id: UUID,
        challenge_type: ChallengeType,
        challenge: str,
        expires_at: datetime,
        email: str | None = None,
    ) -> WebAuthnChallenge:
        """
        Store a fresh challenge, discarding unconsumed ones for the same purpose.

        Args:
            user_id: User the challenge is issued for
            challenge_type: Registration or authentication
            challenge: Base64url challenge value
            expires_at: Absolute expiry
            email: Email the authentication challenge was requested with

        Returns:
            Stored challenge
        """
        await self.session.execute(
            delete(WebAuthnChallenge).where(
                WebAuthnChallenge.user_id == user_id,
                WebAuthnChallenge.type == challenge_type,
            )
        )
        entity = WebAuthnChallenge(
            user_id=user_id,
            email=email,
            challenge=challenge,
            type=challenge_type,
            expires_at=expires_at,
        )
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def consume(self, user_id: UUID, challenge_type: ChallengeType) -> str | None:
        """
        Atomically fetch and delete the active challenge for a user.

        Expired rows are never returned. When more than one active row exists
        all of them are removed and the most recent value is returned.

        Args:
            user_id: User the challenge was issued for
            challenge_type: Registration or authentication

        Returns:
            Base64url challenge, or None if none is active
        """
        result = await self.session.execute(
            delete(WebAuthnChallenge)
            .where(
                WebAuthnChallenge.user_id == user_id,
                WebAuthnChallenge.type == challenge_type,
                WebAuthnChallenge.expires_at > datetime.now(UTC),
            )
            .returning(WebAuthnChallenge.challenge, WebAuthnChallenge.created_at)
        )
        rows = result.all()
        if not rows:
            return None
        latest = max(rows, key=lambda row: row.created_at)
        return latest.challenge

    async def delete_expired(self, now: datetime | None = None) -> int:
        """
        Delete every challenge past its expiry.

        Rows already consumed are simply not matched, so repeated or
        concurrent sweeps are harmless.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of rows deleted
        """
        cutoff = now or datetime.now(UTC)
        result = await self.session.execute(
            delete(WebAuthnChallenge)
            .where(WebAuthnChallenge.expires_at <= cutoff)
            .returning(WebAuthnChallenge.id)
        )
        return len(result.all())
