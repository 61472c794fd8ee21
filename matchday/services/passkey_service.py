"""
Passkey Service - WebAuthn/Passkey authentication business logic.

Handles passkey registration, authentication, and credential management
using the py_webauthn library for WebAuthn protocol compliance.

Ceremony state lives only in the ``webauthn_challenges`` table, so the
options and verify steps of one ceremony may be served by different
processes.
"""

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import (
    base64url_to_bytes,
    bytes_to_base64url,
    parse_authentication_credential_json,
    parse_registration_credential_json,
)
from webauthn.helpers.structs import (
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
)

from matchday.config import RelyingPartyConfig
from matchday.models.contracts.passkeys import (
    CREDENTIAL_NAME_MAX_LENGTH,
    AuthenticationCredential,
    RegistrationCredential,
)
from matchday.models.enums import ChallengeType, CredentialDeviceType
from matchday.models.orm.credential import WebAuthnCredential
from matchday.repositories.challenge import ChallengeRepository
from matchday.repositories.credential import CredentialRepository
from matchday.repositories.user import UserRepository

logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================


class PasskeyError(Exception):
    """Base class for passkey ceremony and management failures."""


class PasskeyNotFoundError(PasskeyError):
    """A user, challenge or credential is absent, expired or not owned."""


class UserNotFound(PasskeyNotFoundError):
    pass


class NoCredentialsRegistered(PasskeyNotFoundError):
    pass


class ChallengeNotFound(PasskeyNotFoundError):
    pass


class CredentialNotFound(PasskeyNotFoundError):
    pass


class InvalidName(PasskeyError):
    """Credential label is empty after trimming or too long."""


class VerificationFailed(PasskeyError):
    """Cryptographic or ceremony-policy mismatch. Never detailed to clients."""


class StorageFailed(PasskeyError):
    """The persistence layer rejected a write."""


# =============================================================================
# Results
# =============================================================================


@dataclass
class AuthenticationOptions:
    options: dict
    user_id: UUID


@dataclass
class AuthenticationResult:
    verified: bool
    user_id: UUID
    email: str


def validate_credential_name(name: str) -> str:
    """
    Trim and bound-check a credential label.

    Raises:
        InvalidName: If the trimmed name is empty or longer than 100 characters
    """
    trimmed = name.strip()
    if not trimmed:
        raise InvalidName("Invalid passkey name")
    if len(trimmed) > CREDENTIAL_NAME_MAX_LENGTH:
        raise InvalidName(
            f"Passkey name too long (max {CREDENTIAL_NAME_MAX_LENGTH} characters)"
        )
    return trimmed


def counter_advanced(stored: int, new: int) -> bool:
    """Whether an assertion's counter is acceptable (authenticators without counters report 0)."""
    if stored == 0 and new == 0:
        return True
    return new > stored


def _descriptors(credentials: list[WebAuthnCredential]) -> list[PublicKeyCredentialDescriptor]:
    descriptors = []
    for credential in credentials:
        transports = []
        for value in credential.transports or []:
            try:
                transports.append(AuthenticatorTransport(value))
            except ValueError:
                continue
        descriptors.append(
            PublicKeyCredentialDescriptor(
                id=base64url_to_bytes(credential.credential_id),
                transports=transports or None,
            )
        )
    return descriptors


class PasskeyService:
    """Service for WebAuthn passkey operations."""

    def __init__(self, db: AsyncSession, rp: RelyingPartyConfig):
        self.db = db
        self.rp = rp
        self.users = UserRepository(db)
        self.credentials = CredentialRepository(db)
        self.challenges = ChallengeRepository(db)

    # ========================================================================
    # Registration (for authenticated users adding passkeys)
    # ========================================================================

    async def begin_registration(self, user_id: UUID, user_email: str) -> dict:
        """
        Generate WebAuthn registration options for passkey enrollment.

        Creates a challenge and returns options that the browser uses to
        create a new passkey credential.

        Args:
            user_id: ID of the authenticated user registering a passkey
            user_email: Email used as both user name and display name

        Returns:
            Dictionary with registration options (JSON-serializable)

        Raises:
            UserNotFound: If the user row does not exist
        """
        try:
            user_handle = await self.users.ensure_webauthn_user_handle(user_id)
        except LookupError as e:
            raise UserNotFound("User not found") from e

        # Exclude existing credentials (prevent duplicate registrations)
        existing = await self.credentials.list_for_user(user_id)

        options = generate_registration_options(
            rp_id=self.rp.id,
            rp_name=self.rp.name,
            user_id=base64url_to_bytes(user_handle),
            user_name=user_email,
            user_display_name=user_email,
            timeout=self.rp.timeout_ms,
            attestation=self.rp.attestation,
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=self.rp.resident_key,
                user_verification=self.rp.user_verification,
            ),
            exclude_credentials=_descriptors(existing),
            supported_pub_key_algs=list(self.rp.algorithms),
        )

        await self.challenges.replace(
            user_id=user_id,
            challenge_type=ChallengeType.REGISTRATION,
            challenge=bytes_to_base64url(options.challenge),
            expires_at=datetime.now(UTC) + self.rp.challenge_ttl,
        )

        return json.loads(options_to_json(options))

    async def complete_registration(
        self,
        user_id: UUID,
        credential: RegistrationCredential,
        credential_name: str | None = None,
    ) -> WebAuthnCredential:
        """
        Verify passkey registration and store the credential.

        The challenge is consumed (and the deletion committed) before
        verification, so a failed attempt has to restart from
        begin_registration.

        Args:
            user_id: ID of the user completing registration
            credential: Registration response from the browser
            credential_name: Optional friendly name for the passkey

        Returns:
            Created WebAuthnCredential record

        Raises:
            InvalidName: If a name is given but is empty or too long
            ChallengeNotFound: If no unexpired registration challenge exists
            VerificationFailed: If the attestation does not verify
            StorageFailed: If the credential cannot be persisted
        """
        name = validate_credential_name(credential_name) if credential_name else None

        expected_challenge = await self._consume_challenge(user_id, ChallengeType.REGISTRATION)

        try:
            parsed = parse_registration_credential_json(credential.to_webauthn_json())
            verification = verify_registration_response(
                credential=parsed,
                expected_challenge=expected_challenge,
                expected_origin=self.rp.origin,
                expected_rp_id=self.rp.id,
                require_user_verification=self.rp.require_user_verification,
                supported_pub_key_algs=list(self.rp.algorithms),
            )
        except Exception as e:
            logger.warning(
                f"Registration verification failed for user {user_id}: {e}",
                extra={"user_id": str(user_id)},
            )
            raise VerificationFailed("Registration verification failed") from e

        record = WebAuthnCredential(
            user_id=user_id,
            credential_id=bytes_to_base64url(verification.credential_id),
            public_key=bytes_to_base64url(verification.credential_public_key),
            counter=verification.sign_count,
            device_type=CredentialDeviceType.from_webauthn(
                verification.credential_device_type
            ).value,
            backed_up=verification.credential_backed_up,
            transports=[t.value for t in credential.response.transports],
            aaguid=verification.aaguid or None,
            credential_name=name,
        )

        try:
            return await self.credentials.create(record)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to store credential for user {user_id}: {e}",
                extra={"user_id": str(user_id)},
            )
            raise StorageFailed("Failed to store credential") from e

    # ========================================================================
    # Authentication
    # ========================================================================

    async def begin_authentication(self, email: str) -> AuthenticationOptions:
        """
        Generate WebAuthn authentication options for a user identified by email.

        Any previous unconsumed authentication challenge for the user is
        replaced.

        Args:
            email: Email of the account signing in

        Returns:
            AuthenticationOptions with the options dict and resolved user ID

        Raises:
            UserNotFound: If no user has this email
            NoCredentialsRegistered: If the user has no passkeys
        """
        user = await self.users.get_by_email(email)
        if not user:
            raise UserNotFound("User not found")

        credentials = await self.credentials.list_for_user(user.id)
        if not credentials:
            raise NoCredentialsRegistered("No passkeys registered for this user")

        options = generate_authentication_options(
            rp_id=self.rp.id,
            timeout=self.rp.timeout_ms,
            allow_credentials=_descriptors(credentials),
            user_verification=self.rp.user_verification,
        )

        await self.challenges.replace(
            user_id=user.id,
            challenge_type=ChallengeType.AUTHENTICATION,
            challenge=bytes_to_base64url(options.challenge),
            expires_at=datetime.now(UTC) + self.rp.challenge_ttl,
            email=user.email,
        )

        return AuthenticationOptions(
            options=json.loads(options_to_json(options)),
            user_id=user.id,
        )

    async def complete_authentication(
        self,
        email: str,
        credential: AuthenticationCredential,
    ) -> AuthenticationResult:
        """
        Verify a passkey assertion and advance the credential's counter.

        Args:
            email: Email the options were requested for
            credential: Authentication response from the browser

        Returns:
            AuthenticationResult for the owning user

        Raises:
            UserNotFound: If no user has this email
            ChallengeNotFound: If no unexpired authentication challenge exists
            CredentialNotFound: If the credential is not registered to this user
            VerificationFailed: If the assertion does not verify or the counter
                did not advance
        """
        user = await self.users.get_by_email(email)
        if not user:
            raise UserNotFound("User not found")

        expected_challenge = await self._consume_challenge(
            user.id, ChallengeType.AUTHENTICATION
        )

        # Scope the credential to the resolved user before any cryptography
        stored = await self.credentials.get_by_credential_id_for_user(
            user.id, credential.raw_id.rstrip("=")
        )
        if not stored:
            raise CredentialNotFound("Credential not found")

        try:
            parsed = parse_authentication_credential_json(credential.to_webauthn_json())
            verification = verify_authentication_response(
                credential=parsed,
                expected_challenge=expected_challenge,
                expected_origin=self.rp.origin,
                expected_rp_id=self.rp.id,
                credential_public_key=base64url_to_bytes(stored.public_key),
                credential_current_sign_count=stored.counter,
                require_user_verification=self.rp.require_user_verification,
            )
        except Exception as e:
            logger.warning(
                f"Authentication verification failed for credential {stored.id}: {e}",
                extra={"user_id": str(user.id), "credential_pk": str(stored.id)},
            )
            raise VerificationFailed("Authentication verification failed") from e

        new_counter = verification.new_sign_count
        if not counter_advanced(stored.counter, new_counter):
            logger.warning(
                f"Signature counter did not advance for credential {stored.id} "
                f"(stored={stored.counter}, received={new_counter}); possible cloned authenticator",
                extra={"user_id": str(user.id), "credential_pk": str(stored.id)},
            )
            raise VerificationFailed("Authentication verification failed")

        updated = await self.credentials.update_counter(
            stored.id, expected_counter=stored.counter, new_counter=new_counter
        )
        if not updated:
            logger.warning(
                f"Concurrent counter update lost for credential {stored.id}",
                extra={"user_id": str(user.id), "credential_pk": str(stored.id)},
            )
            raise VerificationFailed("Authentication verification failed")

        return AuthenticationResult(verified=True, user_id=user.id, email=user.email)

    # ========================================================================
    # Passkey Management
    # ========================================================================

    async def list_credentials(self, user_id: UUID) -> list[WebAuthnCredential]:
        """List all passkeys for a user, newest first."""
        return await self.credentials.list_for_user(user_id)

    async def get_status(self, user_id: UUID) -> int:
        """Number of passkeys the user has registered."""
        return await self.credentials.count_for_user(user_id)

    async def rename_credential(
        self, user_id: UUID, credential_pk: UUID, name: str
    ) -> WebAuthnCredential:
        """
        Rename a passkey owned by the user.

        Raises:
            InvalidName: If the trimmed name is empty or longer than 100 characters
            CredentialNotFound: If the passkey does not exist or is not owned
        """
        trimmed = validate_credential_name(name)

        credential = await self.credentials.get_for_user(user_id, credential_pk)
        if not credential:
            raise CredentialNotFound("Passkey not found")

        return await self.credentials.rename(credential, trimmed)

    async def delete_credential(self, user_id: UUID, credential_pk: UUID) -> None:
        """
        Delete a passkey owned by the user.

        Deleting the last remaining passkey is allowed.

        Raises:
            CredentialNotFound: If the passkey does not exist or is not owned
        """
        deleted = await self.credentials.delete_for_user(user_id, credential_pk)
        if not deleted:
            raise CredentialNotFound("Passkey not found")

    # ========================================================================
    # Private Helpers
    # ========================================================================

    async def _consume_challenge(self, user_id: UUID, challenge_type: ChallengeType) -> bytes:
        """Fetch-and-delete the active challenge and commit the deletion."""
        challenge_b64 = await self.challenges.consume(user_id, challenge_type)
        await self.db.commit()
        if not challenge_b64:
            raise ChallengeNotFound(f"{challenge_type.value.capitalize()} challenge not found or expired")
        return base64url_to_bytes(challenge_b64)
