"""
Unit tests for passkey authentication.

Repositories are mocked; assertion signatures are produced and verified for
real with the software authenticator.
"""

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from webauthn.helpers import bytes_to_base64url

from matchday.models.contracts.passkeys import AuthenticationCredential
from matchday.models.enums import ChallengeType
from matchday.models.orm.credential import WebAuthnCredential
from matchday.models.orm.user import User
from matchday.services.passkey_service import (
    ChallengeNotFound,
    CredentialNotFound,
    NoCredentialsRegistered,
    UserNotFound,
    VerificationFailed,
    counter_advanced,
)


def _stored(authenticator, user_id, counter=0) -> WebAuthnCredential:
    return WebAuthnCredential(
        id=uuid4(),
        user_id=user_id,
        credential_id=authenticator.credential_id_b64,
        public_key=bytes_to_base64url(authenticator.cose_public_key),
        counter=counter,
        device_type="singleDevice",
        backed_up=False,
        transports=["internal"],
        created_at=datetime.now(UTC),
    )


@pytest.fixture
def user():
    return User(id=uuid4(), email="fan@example.com")


@pytest.fixture
def service(passkey_service, user):
    passkey_service.users.get_by_email.return_value = user
    passkey_service.credentials.update_counter.return_value = True
    return passkey_service


async def _assert(service, user, authenticator, stored, **kwargs) -> AuthenticationCredential:
    service.credentials.list_for_user.return_value = [stored]
    service.credentials.get_by_credential_id_for_user.return_value = stored
    result = await service.begin_authentication(user.email)
    service.challenges.consume.return_value = result.options["challenge"]
    return AuthenticationCredential.model_validate(authenticator.get(result.options, **kwargs))


@pytest.mark.unit
class TestCounterAdvanced:
    """Tests for the signature counter rule."""

    def test_counterless_authenticator_accepted(self):
        assert counter_advanced(0, 0) is True

    def test_increase_accepted(self):
        assert counter_advanced(0, 1) is True
        assert counter_advanced(41, 42) is True

    def test_equal_nonzero_rejected(self):
        assert counter_advanced(5, 5) is False

    def test_decrease_rejected(self):
        assert counter_advanced(5, 3) is False
        assert counter_advanced(5, 0) is False


@pytest.mark.unit
class TestBeginAuthentication:
    """Tests for PasskeyService.begin_authentication."""

    async def test_options_list_allowed_credentials(self, service, user, authenticator):
        stored = _stored(authenticator, user.id)
        service.credentials.list_for_user.return_value = [stored]

        result = await service.begin_authentication(user.email)

        assert result.user_id == user.id
        assert result.options["rpId"] == "localhost"
        assert result.options["timeout"] == 60000
        assert result.options["userVerification"] == "preferred"
        allowed = result.options["allowCredentials"]
        assert [c["id"] for c in allowed] == [authenticator.credential_id_b64]
        assert allowed[0]["transports"] == ["internal"]

    async def test_challenge_replaces_previous_for_user(self, service, user, authenticator):
        service.credentials.list_for_user.return_value = [_stored(authenticator, user.id)]

        result = await service.begin_authentication(user.email)

        service.challenges.replace.assert_awaited_once()
        kwargs = service.challenges.replace.call_args.kwargs
        assert kwargs["user_id"] == user.id
        assert kwargs["challenge_type"] == ChallengeType.AUTHENTICATION
        assert kwargs["challenge"] == result.options["challenge"]
        assert kwargs["email"] == user.email

    async def test_unknown_email_raises_user_not_found(self, service):
        service.users.get_by_email.return_value = None

        with pytest.raises(UserNotFound):
            await service.begin_authentication("nobody@example.com")

        service.challenges.replace.assert_not_awaited()

    async def test_user_without_passkeys_raises(self, service, user):
        service.credentials.list_for_user.return_value = []

        with pytest.raises(NoCredentialsRegistered):
            await service.begin_authentication(user.email)

        service.challenges.replace.assert_not_awaited()


@pytest.mark.unit
class TestCompleteAuthentication:
    """Tests for PasskeyService.complete_authentication."""

    async def test_valid_assertion_advances_counter(self, service, user, authenticator):
        stored = _stored(authenticator, user.id)
        credential = await _assert(service, user, authenticator, stored)

        result = await service.complete_authentication(user.email, credential)

        assert result.verified is True
        assert result.user_id == user.id
        assert result.email == user.email
        service.credentials.update_counter.assert_awaited_once_with(
            stored.id, expected_counter=0, new_counter=1
        )
        service.challenges.consume.assert_awaited_once_with(
            user.id, ChallengeType.AUTHENTICATION
        )

    async def test_credential_lookup_is_scoped_to_user(self, service, user, authenticator):
        stored = _stored(authenticator, user.id)
        credential = await _assert(service, user, authenticator, stored)

        await service.complete_authentication(user.email, credential)

        service.credentials.get_by_credential_id_for_user.assert_awaited_once_with(
            user.id, authenticator.credential_id_b64
        )

    async def test_counterless_authenticator_accepted(
        self, service, user, authenticator_factory
    ):
        counterless = authenticator_factory(counterless=True)
        stored = _stored(counterless, user.id)
        credential = await _assert(service, user, counterless, stored)

        result = await service.complete_authentication(user.email, credential)

        assert result.verified is True
        service.credentials.update_counter.assert_awaited_once_with(
            stored.id, expected_counter=0, new_counter=0
        )

    async def test_counter_regression_rejected(self, service, user, authenticator):
        stored = _stored(authenticator, user.id, counter=5)
        authenticator.sign_count = 2
        credential = await _assert(service, user, authenticator, stored)

        with pytest.raises(VerificationFailed):
            await service.complete_authentication(user.email, credential)

        service.credentials.update_counter.assert_not_awaited()

    async def test_replayed_counter_rejected(self, service, user, authenticator):
        stored = _stored(authenticator, user.id, counter=3)
        authenticator.sign_count = 2  # next assertion reports 3
        credential = await _assert(service, user, authenticator, stored)

        with pytest.raises(VerificationFailed):
            await service.complete_authentication(user.email, credential)

    async def test_missing_challenge_raises(self, service, user, authenticator):
        stored = _stored(authenticator, user.id)
        credential = await _assert(service, user, authenticator, stored)
        service.challenges.consume.return_value = None

        with pytest.raises(ChallengeNotFound):
            await service.complete_authentication(user.email, credential)

        service.credentials.get_by_credential_id_for_user.assert_not_awaited()

    async def test_unknown_email_raises(self, service, user, authenticator):
        stored = _stored(authenticator, user.id)
        credential = await _assert(service, user, authenticator, stored)
        service.users.get_by_email.return_value = None

        with pytest.raises(UserNotFound):
            await service.complete_authentication("nobody@example.com", credential)

        service.challenges.consume.assert_not_awaited()

    async def test_credential_of_other_user_not_found(self, service, user, authenticator):
        stored = _stored(authenticator, user.id)
        credential = await _assert(service, user, authenticator, stored)
        service.credentials.get_by_credential_id_for_user.return_value = None

        with pytest.raises(CredentialNotFound):
            await service.complete_authentication(user.email, credential)

    async def test_wrong_public_key_fails(self, service, user, authenticator, authenticator_factory):
        impostor = authenticator_factory()
        stored = _stored(authenticator, user.id)
        stored.public_key = bytes_to_base64url(impostor.cose_public_key)
        credential = await _assert(service, user, authenticator, stored)

        with pytest.raises(VerificationFailed):
            await service.complete_authentication(user.email, credential)

    async def test_wrong_origin_fails(self, service, user, authenticator):
        stored = _stored(authenticator, user.id)
        credential = await _assert(
            service, user, authenticator, stored, origin="https://evil.example"
        )

        with pytest.raises(VerificationFailed):
            await service.complete_authentication(user.email, credential)

        service.credentials.update_counter.assert_not_awaited()

    async def test_lost_counter_race_fails(self, service, user, authenticator):
        stored = _stored(authenticator, user.id)
        credential = await _assert(service, user, authenticator, stored)
        service.credentials.update_counter.return_value = False

        with pytest.raises(VerificationFailed):
            await service.complete_authentication(user.email, credential)
