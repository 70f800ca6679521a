"""
Principal resolution: bearer credential -> verified user -> tenant.

This is the authorization boundary for every storage operation. Object
store calls bypass the database's row-level policies entirely, so the
tenant identity established here is what every later ownership check
compares against.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storage_gateway.config import settings
from storage_gateway.core.exceptions import TenantNotFoundError, UnauthenticatedError
from storage_gateway.features.auth.identity import IdentityProvider
from storage_gateway.models.admin import Admin

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Principal:
    """Per-request identity. Never persisted."""

    user_id: str
    tenant_id: str
    tier: str
    company_name: str


class PrincipalResolver:
    """
    Resolve a bearer token into a ``Principal``.

    Steps, each short-circuiting with its own error:
    1. reject a missing or implausibly short token (UnauthenticatedError)
    2. verify it with the identity provider (InvalidCredentialError)
    3. load the admin account owned by the user (TenantNotFoundError)
    4. read the account's tier, falling back to the default tier
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        db: AsyncSession,
        min_token_length: int | None = None,
        default_tier: str | None = None,
    ) -> None:
        self.identity_provider = identity_provider
        self.db = db
        self.min_token_length = min_token_length or settings.min_token_length
        self.default_tier = default_tier or settings.default_tier

    async def resolve(self, token: str | None) -> Principal:
        if not token:
            logger.warning("auth_missing_token")
            raise UnauthenticatedError("Unauthorized: No token provided")

        if len(token) < self.min_token_length:
            logger.warning("auth_token_too_short", credential_length=len(token))
            raise UnauthenticatedError("Unauthorized: Invalid token format")

        user = await self.identity_provider.verify(token)

        admin = await self._load_admin(user.id)

        return Principal(
            user_id=user.id,
            tenant_id=admin.id,
            tier=admin.subscription_tier or self.default_tier,
            company_name=admin.company_name,
        )

    async def _load_admin(self, user_id: str) -> Admin:
        try:
            result = await self.db.execute(
                select(Admin).where(Admin.owner_id == user_id)
            )
            admin = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("admin_lookup_failed", user_id=user_id, error=str(e))
            raise TenantNotFoundError() from e

        if admin is None:
            logger.warning("admin_not_found", user_id=user_id)
            raise TenantNotFoundError()

        return admin
