"""
Identity provider collaborators.

Each provider exchanges an opaque bearer token for a verified user record or
raises ``InvalidCredentialError``. The gateway never inspects tokens beyond
that exchange.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
import structlog
from jose import JWTError

from storage_gateway.config import Settings
from storage_gateway.core.exceptions import InvalidCredentialError
from storage_gateway.core.security import decode_access_token

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VerifiedUser:
    """User record as confirmed by the identity provider."""

    id: str
    email: str | None = None


class IdentityProvider(ABC):
    """Verify bearer token -> user."""

    @abstractmethod
    async def verify(self, token: str) -> VerifiedUser:
        """Return the user the token belongs to, or raise InvalidCredentialError."""
        ...


class JWTIdentityProvider(IdentityProvider):
    """
    Verify access tokens locally with the provider's signing secret.

    Checks signature, expiry and audience; the ``sub`` claim is the user id.
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret

    async def verify(self, token: str) -> VerifiedUser:
        try:
            payload = decode_access_token(token, secret=self._secret)
        except JWTError as e:
            raise InvalidCredentialError(f"Unauthorized: {e}") from e

        user_id = payload.get("sub")
        if not user_id:
            raise InvalidCredentialError("Unauthorized: Invalid token payload")

        return VerifiedUser(id=str(user_id), email=payload.get("email"))


class SupabaseIdentityProvider(IdentityProvider):
    """
    Ask Supabase Auth who the token belongs to (``GET /auth/v1/user``).

    Use when tokens can be revoked server-side and local verification is
    not enough.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client = client
        self._timeout = timeout

    async def _get_user(self, client: httpx.AsyncClient, token: str) -> httpx.Response:
        return await client.get(
            f"{self._base_url}/auth/v1/user",
            headers={
                "apikey": self._api_key,
                "Authorization": f"Bearer {token}",
            },
        )

    async def verify(self, token: str) -> VerifiedUser:
        try:
            if self._client is not None:
                response = await self._get_user(self._client, token)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._get_user(client, token)
        except httpx.HTTPError as e:
            logger.error("identity_provider_unreachable", error=str(e))
            raise InvalidCredentialError("Unauthorized: Identity provider unavailable") from e

        if response.status_code != 200:
            try:
                body = response.json()
            except ValueError:
                body = {}
            detail = (body.get("msg") or body.get("message")) if isinstance(body, dict) else None
            logger.warning(
                "identity_provider_rejected_token",
                status_code=response.status_code,
                detail=detail,
            )
            raise InvalidCredentialError(f"Unauthorized: {detail or 'Invalid token'}")

        user = response.json()
        if not user.get("id"):
            raise InvalidCredentialError("Unauthorized: Invalid token")

        return VerifiedUser(id=str(user["id"]), email=user.get("email"))


class InMemoryIdentityProvider(IdentityProvider):
    """
    Fixed token -> user table.

    Explicit fake collaborator for local development and tests.
    """

    def __init__(self, users: dict[str, VerifiedUser] | None = None) -> None:
        self._users: dict[str, VerifiedUser] = dict(users or {})

    def register(self, token: str, user_id: str, email: str | None = None) -> VerifiedUser:
        user = VerifiedUser(id=user_id, email=email)
        self._users[token] = user
        return user

    async def verify(self, token: str) -> VerifiedUser:
        user = self._users.get(token)
        if user is None:
            raise InvalidCredentialError("Unauthorized: Invalid token")
        return user


def build_identity_provider(settings: Settings) -> IdentityProvider:
    """Identity provider selected by ``IDENTITY_BACKEND``."""
    if settings.identity_backend == "supabase":
        return SupabaseIdentityProvider(
            base_url=settings.supabase_url,
            api_key=settings.supabase_service_role_key,
        )
    if settings.identity_backend == "memory":
        logger.warning("using_in_memory_identity_provider")
        return InMemoryIdentityProvider()
    return JWTIdentityProvider(secret=settings.supabase_jwt_secret)
