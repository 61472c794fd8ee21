"""
WebAuthn credential ORM model.

Represents passkey credentials registered for passwordless authentication.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from matchday.models.orm.base import Base

if TYPE_CHECKING:
    from matchday.models.orm.user import User


class WebAuthnCredential(Base):
    """WebAuthn passkey credentials for passwordless authentication."""

    __tablename__ = "webauthn_credentials"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))

    # WebAuthn credential data (base64url, immutable)
    credential_id: Mapped[str] = mapped_column(String(1024), unique=True)
    public_key: Mapped[str] = mapped_column(Text)
    counter: Mapped[int] = mapped_column(Integer, default=0)

    # Credential metadata
    device_type: Mapped[str] = mapped_column(String(32))  # singleDevice, multiDevice
    backed_up: Mapped[bool] = mapped_column(Boolean, default=False)
    transports: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), default=list
    )  # usb, nfc, ble, internal, hybrid
    aaguid: Mapped[str | None] = mapped_column(String(64), default=None)

    # User-facing info
    credential_name: Mapped[str | None] = mapped_column(String(100), default=None)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
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

    # Relationships
    user: Mapped["User"] = relationship(back_populates="credentials")

    __table_args__ = (
        Index("ix_webauthn_credentials_user_id", "user_id"),
        CheckConstraint("counter >= 0", name="counter_non_negative"),
    )
