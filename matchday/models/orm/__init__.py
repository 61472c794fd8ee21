"""SQLAlchemy ORM Models for matchday.

Pure database models using SQLAlchemy 2.0 declarative style.
These models define the database schema and relationships.
"""

from matchday.models.orm.base import Base
from matchday.models.orm.challenge import WebAuthnChallenge
from matchday.models.orm.credential import WebAuthnCredential
from matchday.models.orm.user import User

__all__ = [
    # Base
    "Base",
    # Users
    "User",
    # Passkeys
    "WebAuthnCredential",
    "WebAuthnChallenge",
]
