"""
Session Bridge - turns a verified passkey assertion into a session.

Sessions are owned by the identity provider, which only mints them through its
own login primitives. After a passkey ceremony succeeds the server asks the
provider's admin API for a one-time magic-link token and redeems it right away,
server-side, with the privileged service key. The token never reaches the
browser.

The provider speaks the GoTrue REST dialect:
- POST /auth/v1/admin/generate_link  {"type": "magiclink", "email": ...}
- POST /auth/v1/verify               {"type": "magiclink", "token_hash": ...}
"""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import httpx
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from matchday.config import Settings, get_settings
from matchday.models.contracts.passkeys import SessionPublic
from matchday.repositories.user import UserRepository

logger = logging.getLogger(__name__)

GENERATE_LINK_PATH = "/auth/v1/admin/generate_link"
VERIFY_PATH = "/auth/v1/verify"

SESSION_TOKEN_FIELDS = ("access_token", "refresh_token", "token_type", "expires_in", "expires_at")


class SessionMintFailed(Exception):
    """The identity provider did not produce a session."""


@dataclass
class IdentitySession:
    """Session tokens issued by the identity provider."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None
    user: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "IdentitySession":
        """
        Build a session from the provider's verify response.

        Raises:
            SessionMintFailed: If the tokens are missing or malformed
        """
        if not payload.get("access_token") or not payload.get("refresh_token"):
            raise SessionMintFailed("Identity provider response did not contain a session")

        user = payload.get("user") or {}
        if not isinstance(user, dict):
            raise SessionMintFailed("Identity provider response contained a malformed user")

        try:
            tokens = SessionPublic.model_validate(
                {k: payload[k] for k in SESSION_TOKEN_FIELDS if payload.get(k) is not None}
            )
        except ValidationError as e:
            raise SessionMintFailed(
                f"Identity provider returned a malformed session ({e.error_count()} invalid fields)"
            ) from e

        return cls(user=user, **tokens.model_dump())

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "expires_at": self.expires_at,
            "user": self.user,
        }


def _json_object(response: httpx.Response, source: str) -> dict[str, Any]:
    """Decode a provider reply that must be a JSON object."""
    try:
        data = response.json()
    except ValueError as e:
        raise SessionMintFailed(f"{source} was not valid JSON") from e
    if not isinstance(data, dict):
        raise SessionMintFailed(f"{source} was {type(data).__name__}, expected an object")
    return data


class IdentityClient:
    """Privileged HTTP client for the identity provider's auth API."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._service_key = service_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityClient":
        return cls(
            base_url=settings.identity_url,
            service_key=settings.identity_service_key,
            timeout=settings.identity_timeout_seconds,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "apikey": self._service_key,
                "Authorization": f"Bearer {self._service_key}",
            },
        )

    async def generate_magic_link(self, email: str) -> str:
        """
        Request a one-time magic-link token for an email.

        Returns:
            The hashed token to redeem with verify_magic_link

        Raises:
            SessionMintFailed: If the provider rejects the request
        """
        async with self._client() as client:
            response = await client.post(
                GENERATE_LINK_PATH,
                json={"type": "magiclink", "email": email},
            )

        if response.status_code != 200:
            raise SessionMintFailed(
                f"Failed to generate sign-in link: HTTP {response.status_code}"
            )

        data = _json_object(response, "Sign-in link response")
        token_hash = data.get("hashed_token")
        properties = data.get("properties")
        if not token_hash and isinstance(properties, dict):
            token_hash = properties.get("hashed_token")
        if not token_hash or not isinstance(token_hash, str):
            raise SessionMintFailed("Sign-in link response did not contain a token")
        return token_hash

    async def verify_magic_link(self, token_hash: str) -> dict[str, Any]:
        """
        Redeem a magic-link token for a session.

        Raises:
            SessionMintFailed: If the provider rejects the token
        """
        async with self._client() as client:
            response = await client.post(
                VERIFY_PATH,
                json={"type": "magiclink", "token_hash": token_hash},
            )

        if response.status_code != 200:
            raise SessionMintFailed(f"Failed to redeem sign-in link: HTTP {response.status_code}")

        return _json_object(response, "Sign-in link redemption")


class SessionBridge:
    """Mints identity-provider sessions for users verified by passkey."""

    def __init__(self, db: AsyncSession, identity: IdentityClient):
        self.db = db
        self.identity = identity
        self.users = UserRepository(db)

    async def issue_session(self, user_id: UUID, email: str) -> IdentitySession:
        """
        Mint a session for a passkey-verified user and record the login.

        Args:
            user_id: Verified user ID
            email: The user's email address

        Returns:
            IdentitySession

        Raises:
            SessionMintFailed: If either provider call fails or the session
                belongs to another user
        """
        try:
            token_hash = await self.identity.generate_magic_link(email)
            payload = await self.identity.verify_magic_link(token_hash)
        except httpx.HTTPError as e:
            logger.error(f"Identity provider unreachable while minting session for {user_id}: {e}")
            raise SessionMintFailed("Identity provider request failed") from e

        session = IdentitySession.from_payload(payload)

        session_user_id = session.user.get("id")
        if session_user_id and session_user_id != str(user_id):
            logger.error(
                f"Identity provider returned a session for {session_user_id}, expected {user_id}"
            )
            raise SessionMintFailed("Session does not belong to the verified user")

        await self.users.touch_last_login(user_id)
        await self.db.flush()

        return session


def get_identity_client() -> IdentityClient:
    """Build the identity provider client from settings."""
    return IdentityClient.from_settings(get_settings())
