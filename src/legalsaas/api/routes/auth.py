"""Tenant user authentication endpoints.

Provides registration with a registration key, login, token refresh,
logout, and current user info. Only /me requires a valid access token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from src.legalsaas.api.deps import get_current_user, get_tenant, get_workspace
from src.legalsaas.api.errors import to_http
from src.legalsaas.auth.schemas import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenRefreshRequest,
    TokenResponse,
    UserAccount,
    UserResponse,
)
from src.legalsaas.auth.service import TENANT_SCOPE
from src.legalsaas.core.tenant import TenantContext
from src.legalsaas.workspace import Workspace

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_response(user: UserAccount, tenant_name: str | None) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        account_type=user.account_type,
        tenant_id=user.tenant_id,
        tenant_name=tenant_name,
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, workspace: Workspace = Depends(get_workspace)):
    """Register with a registration key.

    A key bound to a tenant joins that tenant; otherwise a new tenant is
    created and ``is_new_tenant`` is true.
    """
    try:
        user, tenant, is_new_tenant = workspace.auth.register(body)
    except ValueError as exc:
        raise to_http(exc)
    tokens = workspace.auth.issue_tokens(user)
    return RegisterResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        user=_user_response(user, tenant.name),
        is_new_tenant=is_new_tenant,
    )


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, workspace: Workspace = Depends(get_workspace)):
    """Authenticate a user and return JWT tokens scoped to the user's tenant."""
    try:
        user = workspace.auth.authenticate_user(body.email, body.password)
    except ValueError as exc:
        raise to_http(exc)
    return workspace.auth.issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(body: TokenRefreshRequest, workspace: Workspace = Depends(get_workspace)):
    """Exchange a refresh token for a new pair; the old refresh token is revoked."""
    try:
        return workspace.auth.refresh(body.refresh_token, TENANT_SCOPE)
    except ValueError as exc:
        raise to_http(exc)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(body: TokenRefreshRequest, workspace: Workspace = Depends(get_workspace)) -> None:
    """Revoke the refresh token."""
    workspace.auth.logout(body.refresh_token)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
):
    """Return the current user."""
    return _user_response(current_user, tenant.tenant_name)
