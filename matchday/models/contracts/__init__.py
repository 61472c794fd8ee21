"""Pydantic contracts (API request/response schemas)."""

from matchday.models.contracts.common import ErrorResponse, HealthResponse
from matchday.models.contracts.passkeys import (
    AuthenticationCredential,
    PasskeyAuthenticateOptionsRequest,
    PasskeyAuthenticateVerifyRequest,
    PasskeyAuthenticateVerifyResponse,
    PasskeyDeleteResponse,
    PasskeyListResponse,
    PasskeyRegisterVerifyRequest,
    PasskeyRegisterVerifyResponse,
    PasskeyRenameRequest,
    PasskeyStatusResponse,
    PasskeySummary,
    RegistrationCredential,
    SessionPublic,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    # Passkeys
    "AuthenticationCredential",
    "PasskeyAuthenticateOptionsRequest",
    "PasskeyAuthenticateVerifyRequest",
    "PasskeyAuthenticateVerifyResponse",
    "PasskeyDeleteResponse",
    "PasskeyListResponse",
    "PasskeyRegisterVerifyRequest",
    "PasskeyRegisterVerifyResponse",
    "PasskeyRenameRequest",
    "PasskeyStatusResponse",
    "PasskeySummary",
    "RegistrationCredential",
    "SessionPublic",
]
