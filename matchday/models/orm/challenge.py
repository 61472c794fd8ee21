"""
WebAuthn challenge ORM model.

Short-lived, single-use challenges issued by the ceremony "options" steps.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

import sqlalchemy
from sqlalchemy import DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from matchday.models.enums import ChallengeType
from matchday.models.orm.base import Base


class WebAuthnChallenge(Base):
    """Pending WebAuthn ceremony challenge."""

    __tablename__ = "webauthn_challenges"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), default=None
    )
    email: Mapped[str | None] = mapped_column(String(320), default=None)
    challenge: Mapped[str] = mapped_column(String(512))
    type: Mapped[ChallengeType] = mapped_column(
        sqlalchemy.Enum(
            ChallengeType,
            name="webauthn_challenge_type",
            values_callable=lambda x: [e.value for e in x],
        )
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=text("NOW()"),
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_webauthn_challenges_user_type", "user_id", "type"),
        Index("ix_webauthn_challenges_expires_at", "expires_at"),
    )
