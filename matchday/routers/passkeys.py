"""
Passkey/WebAuthn Router

Provides endpoints for passkey-based passwordless authentication:
- Registration: Generate options and verify credential (signed-in users)
- Authentication: Generate challenge and verify (returns an identity session)
- Management: List, rename and delete passkeys

All ceremony failures are converted to HTTP errors here. Verification
failures are reported with a generic message; details are only logged.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from matchday.config import get_relying_party
from matchday.core.auth import CurrentUser
from matchday.core.database import DbSession
from matchday.models.contracts.passkeys import (
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
    SessionPublic,
)
from matchday.repositories.user import UserRepository
from matchday.services.passkey_service import (
    ChallengeNotFound,
    CredentialNotFound,
    InvalidName,
    NoCredentialsRegistered,
    PasskeyError,
    PasskeyNotFoundError,
    PasskeyService,
    StorageFailed,
    UserNotFound,
    VerificationFailed,
)
from matchday.services.session_bridge import (
    SessionBridge,
    SessionMintFailed,
    get_identity_client,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth/passkey", tags=["passkeys"])

# One body for both "unknown email" and "no passkeys" so the endpoint does not
# reveal which accounts exist.
NO_PASSKEYS_DETAIL = "No passkeys registered for this account"


def _http_error(e: PasskeyError) -> HTTPException:
    """Map a passkey error onto the HTTP error taxonomy."""
    if isinstance(e, (UserNotFound, NoCredentialsRegistered)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_PASSKEYS_DETAIL)
    if isinstance(e, ChallengeNotFound):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Challenge not found or expired",
        )
    if isinstance(e, CredentialNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Passkey not found")
    if isinstance(e, PasskeyNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    if isinstance(e, InvalidName):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, VerificationFailed):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Verification failed")
    if isinstance(e, StorageFailed):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store passkey",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Passkey operation failed",
    )


# =============================================================================
# Registration Endpoints (Authenticated users adding passkeys)
# =============================================================================


@router.post(
    "/register-options",
    summary="Get passkey registration options",
    description="Generate WebAuthn registration options for creating a new passkey. "
    "Returns options that should be passed to navigator.credentials.create().",
)
async def register_options(user: CurrentUser, db: DbSession) -> dict:
    """Generate WebAuthn registration options for the current user."""
    account = await UserRepository(db).get_by_id(user.user_id)
    if not account:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    service = PasskeyService(db, get_relying_party())

    try:
        options = await service.begin_registration(account.id, account.email)
    except UserNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from e

    await db.commit()
    return options


@router.post(
    "/register-verify",
    response_model=PasskeyRegisterVerifyResponse,
    summary="Verify passkey registration",
    description="Verify the passkey registration response from the browser. "
    "This completes the passkey enrollment process.",
)
async def register_verify(
    request: PasskeyRegisterVerifyRequest,
    user: CurrentUser,
    db: DbSession,
) -> PasskeyRegisterVerifyResponse:
    """Verify and complete passkey registration."""
    service = PasskeyService(db, get_relying_party())

    try:
        credential = await service.complete_registration(
            user_id=user.user_id,
            credential=request.response,
            credential_name=request.credential_name,
        )
    except PasskeyError as e:
        raise _http_error(e) from e

    await db.commit()

    logger.info(f"Passkey registered for user {user.user_id}: {credential.id}")

    return PasskeyRegisterVerifyResponse(verified=True, passkey_id=credential.id)


# =============================================================================
# Authentication Endpoints (Passwordless login)
# =============================================================================


@router.post(
    "/authenticate-options",
    summary="Get passkey authentication options",
    description="Generate WebAuthn authentication options for passwordless login. "
    "Returns a challenge that should be passed to navigator.credentials.get().",
)
async def authenticate_options(
    request: PasskeyAuthenticateOptionsRequest,
    db: DbSession,
) -> dict:
    """Generate WebAuthn authentication options (public endpoint)."""
    service = PasskeyService(db, get_relying_party())

    try:
        result = await service.begin_authentication(request.email)
    except (UserNotFound, NoCredentialsRegistered) as e:
        logger.info(f"Passkey sign-in options refused: {type(e).__name__}")
        raise _http_error(e) from e

    await db.commit()
    logger.info(f"Passkey sign-in options issued for user {result.user_id}")
    return result.options


@router.post(
    "/authenticate-verify",
    response_model=PasskeyAuthenticateVerifyResponse,
    summary="Verify passkey authentication",
    description="Verify the passkey authentication response and return an identity "
    "provider session. This is the passwordless login endpoint.",
)
async def authenticate_verify(
    request: PasskeyAuthenticateVerifyRequest,
    db: DbSession,
) -> PasskeyAuthenticateVerifyResponse:
    """Verify passkey authentication and mint a session (public endpoint)."""
    service = PasskeyService(db, get_relying_party())

    try:
        result = await service.complete_authentication(request.email, request.response)
    except PasskeyError as e:
        raise _http_error(e) from e

    # Persist the advanced counter before minting the session
    await db.commit()

    bridge = SessionBridge(db, get_identity_client())
    try:
        session = await bridge.issue_session(result.user_id, result.email)
    except SessionMintFailed as e:
        logger.error(f"Failed to create session for user {result.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create session",
        ) from e

    await db.commit()

    logger.info(f"Passkey authentication successful for user {result.user_id}")

    return PasskeyAuthenticateVerifyResponse(
        verified=True,
        user_id=result.user_id,
        session=SessionPublic(**session.to_dict()),
    )


# =============================================================================
# Management Endpoints (Authenticated users managing their passkeys)
# =============================================================================


@router.get(
    "/status",
    response_model=PasskeyStatusResponse,
    summary="Passkey status",
    description="Whether the current user has any passkey registered.",
)
async def passkey_status(user: CurrentUser, db: DbSession) -> PasskeyStatusResponse:
    service = PasskeyService(db, get_relying_party())
    count = await service.get_status(user.user_id)
    return PasskeyStatusResponse(has_passkeys=count > 0, count=count)


@router.get(
    "/list",
    response_model=PasskeyListResponse,
    summary="List user's passkeys",
    description="Get a list of all passkeys registered for the current user, newest first.",
)
async def list_passkeys(user: CurrentUser, db: DbSession) -> PasskeyListResponse:
    """List all passkeys for the current user."""
    service = PasskeyService(db, get_relying_party())

    credentials = await service.list_credentials(user.user_id)

    return PasskeyListResponse(
        passkeys=[PasskeySummary.model_validate(c) for c in credentials],
        count=len(credentials),
    )


@router.patch(
    "/{passkey_id}/rename",
    response_model=PasskeySummary,
    summary="Rename a passkey",
    description="Change the label of a passkey. Users can only rename their own passkeys.",
)
async def rename_passkey(
    passkey_id: UUID,
    request: PasskeyRenameRequest,
    user: CurrentUser,
    db: DbSession,
) -> PasskeySummary:
    service = PasskeyService(db, get_relying_party())

    try:
        credential = await service.rename_credential(user.user_id, passkey_id, request.name)
    except PasskeyError as e:
        raise _http_error(e) from e

    await db.commit()

    return PasskeySummary.model_validate(credential)


@router.delete(
    "/{passkey_id}",
    response_model=PasskeyDeleteResponse,
    summary="Delete a passkey",
    description="Delete a passkey by ID. Users can only delete their own passkeys.",
)
async def delete_passkey(
    passkey_id: UUID,
    user: CurrentUser,
    db: DbSession,
) -> PasskeyDeleteResponse:
    """Delete a passkey owned by the current user."""
    service = PasskeyService(db, get_relying_party())

    try:
        await service.delete_credential(user.user_id, passkey_id)
    except PasskeyError as e:
        raise _http_error(e) from e

    await db.commit()

    logger.info(f"Passkey {passkey_id} deleted for user {user.user_id}")

    return PasskeyDeleteResponse(success=True)
