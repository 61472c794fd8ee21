"""Unit tests for passkey listing, status, renaming and deletion."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from matchday.models.orm.credential import WebAuthnCredential
from matchday.services.passkey_service import (
    CredentialNotFound,
    InvalidName,
    validate_credential_name,
)


def _credential(user_id, name=None) -> WebAuthnCredential:
    return WebAuthnCredential(
        id=uuid4(),
        user_id=user_id,
        credential_id="Y3JlZA",
        public_key="cGs",
        counter=0,
        device_type="singleDevice",
        backed_up=False,
        transports=[],
        credential_name=name,
        created_at=datetime.now(UTC),
    )


@pytest.mark.unit
class TestValidateCredentialName:
    """Tests for credential label validation."""

    def test_trims_whitespace(self):
        assert validate_credential_name("  Work YubiKey \n") == "Work YubiKey"

    def test_max_length_accepted(self):
        assert validate_credential_name("a" * 100) == "a" * 100

    def test_length_checked_after_trimming(self):
        assert validate_credential_name("  " + "a" * 100 + "  ") == "a" * 100

    def test_empty_after_trim_rejected(self):
        with pytest.raises(InvalidName):
            validate_credential_name(" \t ")

    def test_too_long_rejected(self):
        with pytest.raises(InvalidName):
            validate_credential_name("a" * 101)


@pytest.mark.unit
class TestPasskeyManagement:
    """Tests for management operations on PasskeyService."""

    async def test_list_returns_repository_order(self, passkey_service):
        user_id = uuid4()
        newest, oldest = _credential(user_id), _credential(user_id)
        passkey_service.credentials.list_for_user.return_value = [newest, oldest]

        result = await passkey_service.list_credentials(user_id)

        assert result == [newest, oldest]
        passkey_service.credentials.list_for_user.assert_awaited_once_with(user_id)

    async def test_status_counts_credentials(self, passkey_service):
        passkey_service.credentials.count_for_user.return_value = 2

        assert await passkey_service.get_status(uuid4()) == 2

    async def test_rename_stores_trimmed_name(self, passkey_service):
        user_id = uuid4()
        credential = _credential(user_id, name="Old")
        passkey_service.credentials.get_for_user.return_value = credential
        passkey_service.credentials.rename = AsyncMock(
            side_effect=lambda c, name: setattr(c, "credential_name", name) or c
        )

        result = await passkey_service.rename_credential(user_id, credential.id, "  Phone  ")

        assert result.credential_name == "Phone"
        passkey_service.credentials.get_for_user.assert_awaited_once_with(user_id, credential.id)

    async def test_rename_unowned_raises_not_found(self, passkey_service):
        passkey_service.credentials.get_for_user.return_value = None

        with pytest.raises(CredentialNotFound):
            await passkey_service.rename_credential(uuid4(), uuid4(), "Phone")

        passkey_service.credentials.rename.assert_not_awaited()

    async def test_rename_invalid_name_checked_first(self, passkey_service):
        with pytest.raises(InvalidName):
            await passkey_service.rename_credential(uuid4(), uuid4(), "   ")

        passkey_service.credentials.get_for_user.assert_not_awaited()

    async def test_delete_owned_credential(self, passkey_service):
        user_id, credential_pk = uuid4(), uuid4()
        passkey_service.credentials.delete_for_user.return_value = True

        await passkey_service.delete_credential(user_id, credential_pk)

        passkey_service.credentials.delete_for_user.assert_awaited_once_with(
            user_id, credential_pk
        )

    async def test_delete_unowned_raises_not_found(self, passkey_service):
        passkey_service.credentials.delete_for_user.return_value = False

        with pytest.raises(CredentialNotFound):
            await passkey_service.delete_credential(uuid4(), uuid4())
