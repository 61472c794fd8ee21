"""Data access repositories."""

from matchday.repositories.challenge import ChallengeRepository
from matchday.repositories.credential import CredentialRepository
from matchday.repositories.user import UserRepository

__all__ = [
    "ChallengeRepository",
    "CredentialRepository",
    "UserRepository",
]
