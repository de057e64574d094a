"""Authentication dependencies.

Credentials are issued and checked by the surrounding auth service; this
module only maps an already-issued bearer token to a tenant id.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from filehost.core.config import settings
from filehost.core.exceptions import AuthenticationError, AuthorizationError
from filehost.infrastructure.logging import bind_context, get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(
    scheme_name="Bearer",
    description="Bearer token issued by the authentication service",
    auto_error=False,
)


class TokenExtractor:
    """Extract tokens from requests"""

    @staticmethod
    async def extract_token(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> Optional[str]:
        """Extract token from the Authorization header or X-Auth-Token"""
        if credentials and credentials.credentials:
            return credentials.credentials

        token = request.headers.get("X-Auth-Token")
        if token:
            return token

        return None


async def get_current_tenant(
    token: Optional[str] = Depends(TokenExtractor.extract_token),
) -> str:
    """Return the authenticated tenant id or reject with 401"""

    if not token:
        logger.warning("auth_missing_token")
        raise AuthenticationError("Missing authentication token")

    tenant_id = settings.api_tokens.get(token)
    if not tenant_id:
        logger.warning("auth_invalid_token")
        raise AuthenticationError("Invalid token")

    bind_context(tenant_id=tenant_id)
    return tenant_id


async def require_tenant_access(
    tenant_id: str,
    current_tenant: str = Depends(get_current_tenant),
) -> str:
    """Allow access to /users/{tenant_id}/... only for that tenant"""

    if tenant_id != current_tenant:
        logger.warning(
            "auth_cross_tenant_access_denied",
            requested_tenant=tenant_id,
            current_tenant=current_tenant,
        )
        raise AuthorizationError("Access to another tenant's files is denied")

    return tenant_id
