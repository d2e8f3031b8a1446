"""Request authentication context and role checks."""

from enum import Enum
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from app.core.errors import AuthRequired
from app.core.security import decode_access_token


class UserRole(str, Enum):
    """Staff roles carried in the access token."""

    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"


# Role hierarchy: owner > manager > staff
ROLE_HIERARCHY = {
    UserRole.OWNER: 3,
    UserRole.MANAGER: 2,
    UserRole.STAFF: 1,
}


class AuthContext:
    """Decoded token data.

    Attributes:
        user_id: The staff member's id (``sub`` claim).
        tenant_id: The primary tenant the token is scoped to.
        role: The staff member's role.
    """

    def __init__(self, user_id: str, tenant_id: Optional[str], role: UserRole):
        self.user_id = user_id
        self.tenant_id = tenant_id
        self.role = role


def _token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            return token
    return request.cookies.get("access_token")


def context_from_payload(payload: Optional[dict]) -> Optional[AuthContext]:
    """Build an AuthContext from a decoded token, or None if it is unusable."""
    if not payload or not payload.get("sub"):
        return None
    try:
        role = UserRole(payload.get("role", UserRole.STAFF.value))
    except ValueError:
        return None
    tenant_id = payload.get("tenant_id")
    return AuthContext(
        user_id=str(payload["sub"]),
        tenant_id=str(tenant_id) if tenant_id else None,
        role=role,
    )


async def get_auth_context(request: Request) -> AuthContext:
    """Resolve the caller from a Bearer token (or the access_token cookie)."""
    token = _token_from_request(request)
    context = context_from_payload(decode_access_token(token)) if token else None
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context


async def get_tenant_context(
    context: Annotated[AuthContext, Depends(get_auth_context)]
) -> AuthContext:
    """Require that the token carries a tenant; every tenant route uses this."""
    if not context.tenant_id:
        raise AuthRequired()
    return context


def require_role(minimum_role: UserRole):
    """Dependency to require a minimum role level."""

    async def role_checker(
        context: Annotated[AuthContext, Depends(get_tenant_context)]
    ) -> AuthContext:
        user_level = ROLE_HIERARCHY.get(context.role, 0)
        required_level = ROLE_HIERARCHY.get(minimum_role, 0)

        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum_role.value} or higher",
            )
        return context

    return role_checker


CurrentTenant = Annotated[AuthContext, Depends(get_tenant_context)]
RequireManager = Annotated[AuthContext, Depends(require_role(UserRole.MANAGER))]
