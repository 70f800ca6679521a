"""
Authentication dependencies for dependency injection.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storage_gateway.core.context import set_request_context
from storage_gateway.core.database import get_db
from storage_gateway.features.auth.identity import IdentityProvider
from storage_gateway.features.auth.principal import Principal, PrincipalResolver

# auto_error=False so a missing header reaches the resolver and is answered
# with the gateway's own error body
bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_provider(request: Request) -> IdentityProvider:
    """Identity provider injected into the application factory."""
    return request.app.state.identity_provider


async def get_current_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
    identity_provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
) -> Principal:
    """
    Resolve the caller's principal.

    Must run before any quota or storage operation.
    """
    resolver = PrincipalResolver(identity_provider, db)
    principal = await resolver.resolve(credentials.credentials if credentials else None)

    request.state.user_id = principal.user_id
    request.state.tenant_id = principal.tenant_id
    set_request_context(user_id=principal.user_id, tenant_id=principal.tenant_id)

    return principal


# Type alias for cleaner route signatures
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
