"""
Passkey/WebAuthn contract models.

API request and response models for passkey (WebAuthn) operations.

The browser's ``PublicKeyCredential.toJSON()`` payloads are described by
strict per-ceremony models so nothing unchecked reaches verification.
"""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
)

from matchday.models.enums import AuthenticatorTransport, CredentialDeviceType

CREDENTIAL_NAME_MAX_LENGTH = 100

# base64url without padding (padding is tolerated and ignored by the decoder)
Base64Url = Annotated[str, StringConstraints(pattern=r"^[A-Za-z0-9_-]+={0,2}$", min_length=1)]


# =============================================================================
# WebAuthn credential payloads
# =============================================================================


class _CredentialPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Base64Url
    raw_id: Base64Url = Field(alias="rawId")
    type: Literal["public-key"]
    authenticator_attachment: Literal["platform", "cross-platform"] | None = Field(
        default=None, alias="authenticatorAttachment"
    )
    client_extension_results: dict[str, Any] = Field(
        default_factory=dict, alias="clientExtensionResults"
    )

    def to_webauthn_json(self) -> str:
        """Serialize back to the JSON shape py_webauthn parses."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class AttestationResponse(BaseModel):
    """``AuthenticatorAttestationResponse`` fields sent on registration."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    client_data_json: Base64Url = Field(alias="clientDataJSON")
    attestation_object: Base64Url = Field(alias="attestationObject")
    transports: list[AuthenticatorTransport] = Field(default_factory=list)


class RegistrationCredential(_CredentialPayload):
    """Registration ceremony response from navigator.credentials.create()."""

    response: AttestationResponse


class AssertionResponse(BaseModel):
    """``AuthenticatorAssertionResponse`` fields sent on authentication."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    client_data_json: Base64Url = Field(alias="clientDataJSON")
    authenticator_data: Base64Url = Field(alias="authenticatorData")
    signature: Base64Url
    user_handle: str | None = Field(default=None, alias="userHandle")


class AuthenticationCredential(_CredentialPayload):
    """Authentication ceremony response from navigator.credentials.get()."""

    response: AssertionResponse


# =============================================================================
# Registration
# =============================================================================


class PasskeyRegisterVerifyRequest(BaseModel):
    """Request to verify passkey registration."""

    response: RegistrationCredential = Field(
        description="WebAuthn registration credential JSON from navigator.credentials.create()"
    )
    credential_name: str | None = Field(
        default=None,
        description="Optional friendly name for the passkey (e.g., 'MacBook Pro Touch ID')",
    )


class PasskeyRegisterVerifyResponse(BaseModel):
    """Response after successful passkey registration."""

    verified: bool = Field(description="Whether registration was successful")
    passkey_id: UUID = Field(description="ID of the newly created passkey")
    message: str = "Passkey registered successfully"


# =============================================================================
# Authentication
# =============================================================================


class PasskeyAuthenticateOptionsRequest(BaseModel):
    """Request to generate passkey authentication options."""

    email: EmailStr = Field(description="Email of the account signing in")


class PasskeyAuthenticateVerifyRequest(BaseModel):
    """Request to verify passkey authentication."""

    email: EmailStr = Field(description="Email the options were requested for")
    response: AuthenticationCredential = Field(
        description="WebAuthn authentication credential JSON from navigator.credentials.get()"
    )


class SessionPublic(BaseModel):
    """Session minted by the identity provider."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None


class PasskeyAuthenticateVerifyResponse(BaseModel):
    """Response after a successful passkey sign-in."""

    verified: bool
    user_id: UUID
    session: SessionPublic


# =============================================================================
# Passkey Management
# =============================================================================


class PasskeySummary(BaseModel):
    """Public representation of a user's passkey (no key material)."""

    id: UUID = Field(description="Passkey ID")
    credential_id: str = Field(description="Protocol credential ID (base64url)")
    credential_name: str | None = Field(description="User-assigned label")
    device_type: CredentialDeviceType | None = Field(
        description="Device type: 'singleDevice' or 'multiDevice'"
    )
    backed_up: bool = Field(
        description="Whether the passkey is synced to cloud (iCloud Keychain, Google Password Manager, etc.)"
    )
    transports: list[str] = Field(default_factory=list)
    created_at: datetime = Field(description="When the passkey was registered")
    last_used_at: datetime | None = Field(
        description="When the passkey was last used for authentication"
    )

    model_config = {"from_attributes": True}


class PasskeyListResponse(BaseModel):
    """Response with list of user's passkeys."""

    passkeys: list[PasskeySummary] = Field(description="List of user's passkeys")
    count: int = Field(description="Total number of passkeys")


class PasskeyStatusResponse(BaseModel):
    """Whether the user has any passkey (drives the migration prompt)."""

    has_passkeys: bool
    count: int


class PasskeyRenameRequest(BaseModel):
    """Request to rename a passkey. Length is checked after trimming."""

    name: str


class PasskeyDeleteResponse(BaseModel):
    """Response after deleting a passkey."""

    success: bool
    message: str = "Passkey deleted successfully"
