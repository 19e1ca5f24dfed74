"""FastAPI dependency injection for tenant-scoped services and authentication.

These dependencies are used in endpoint function signatures to inject
the current tenant context, the service workspace, and the authenticated
user or administrator.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from src.legalsaas.admin.schemas import AccountType
from src.legalsaas.auth.schemas import AdminAccount, UserAccount
from src.legalsaas.core.security import verify_token
from src.legalsaas.core.tenant import TenantContext, get_current_tenant
from src.legalsaas.workspace import Workspace


def get_workspace(request: Request) -> Workspace:
    """Get the service workspace stored on the application."""
    workspace = getattr(request.app.state, "workspace", None)
    if workspace is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services not initialized",
        )
    return workspace


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_header[7:]


async def get_tenant() -> TenantContext:
    """Get the current tenant context (set by TenantAuthMiddleware).

    Raises:
        HTTPException(401): If the request carries no tenant-scoped token.
    """
    try:
        return get_current_tenant()
    except RuntimeError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    request: Request,
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
) -> UserAccount:
    """Extract and validate the current tenant user from the bearer JWT.

    Raises:
        HTTPException(401): If the token is invalid or the user no longer exists.
        HTTPException(403): If the token's tenant doesn't match the tenant context.
    """
    payload = verify_token(_bearer_token(request), token_type="access", scope="tenant")

    if payload.get("tenant_id") != tenant.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token tenant does not match request tenant context",
        )

    user = workspace.auth.get_user(payload["sub"])
    if user is None or not user.is_active or user.tenant_id != tenant.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def require_account_type(*allowed: AccountType):
    """Build a dependency that admits only users of the given account types.

    Raises:
        HTTPException(403): If the user's account type is not in ``allowed``.
    """

    async def check(user: UserAccount = Depends(get_current_user)) -> UserAccount:
        if user.account_type not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "Insufficient permissions",
                    "required": [account_type.value for account_type in allowed],
                    "current": user.account_type.value,
                },
            )
        return user

    return check


async def get_current_admin(
    request: Request,
    workspace: Workspace = Depends(get_workspace),
) -> AdminAccount:
    """Extract and validate the back-office administrator from the bearer JWT.

    Raises:
        HTTPException(401): If the token is missing, invalid, not admin-scoped,
            or the administrator no longer exists.
    """
    payload = verify_token(_bearer_token(request), token_type="access", scope="admin")
    admin = workspace.auth.get_admin(payload["sub"])
    if admin is None or not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Administrator not found or inactive",
        )
    return admin


# Aliases for cleaner endpoint signatures
require_auth = Depends(get_current_user)
require_admin = Depends(get_current_admin)
