"""
User ORM model.

Mirrors accounts owned by the identity provider. The primary key equals the
identity provider's user id.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from matchday.models.orm.base import Base

if TYPE_CHECKING:
    from matchday.models.orm.credential import WebAuthnCredential


class User(Base):
    """User database table."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(320))
    name: Mapped[str | None] = mapped_column(String(255), default=None)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=text("NOW()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=text("NOW()"),
        onupdate=lambda: datetime.now(UTC),
    )

    # WebAuthn user handle (base64url, never the email or the id)
    webauthn_user_handle: Mapped[str | None] = mapped_column(String(128), default=None, unique=True)

    # Relationships
    credentials: Mapped[list["WebAuthnCredential"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


# One account per address regardless of case; also serves the email lookup
Index("uq_users_email_lower", func.lower(User.email), unique=True)
