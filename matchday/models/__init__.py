"""matchday models.

ORM models (database tables):
    from matchday.models import User, WebAuthnCredential
    from matchday.models.orm import User, WebAuthnCredential

Pydantic contracts (API request/response):
    from matchday.models import PasskeySummary
    from matchday.models.contracts import PasskeySummary

Enums:
    from matchday.models import ChallengeType
    from matchday.models.enums import ChallengeType
"""

# Pydantic contracts (API request/response)
from matchday.models.contracts import (
    ErrorResponse,
    HealthResponse,
    PasskeySummary,
)

# Enums
from matchday.models.enums import (
    AuthenticatorTransport,
    ChallengeType,
    CredentialDeviceType,
)

# ORM models (database tables)
from matchday.models.orm import (
    Base,
    User,
    WebAuthnChallenge,
    WebAuthnCredential,
)

__all__ = [
    # Base
    "Base",
    # ORM models
    "User",
    "WebAuthnCredential",
    "WebAuthnChallenge",
    # Enums
    "AuthenticatorTransport",
    "ChallengeType",
    "CredentialDeviceType",
    # Contracts
    "ErrorResponse",
    "HealthResponse",
    "PasskeySummary",
]
