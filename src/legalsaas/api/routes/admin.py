"""Admin back-office endpoints.

Tenant lifecycle, registration keys, per-tenant API configurations and
global metrics. These paths skip the tenant middleware; every endpoint
except login, refresh and logout requires an admin-scoped access token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from src.legalsaas.admin.schemas import (
    ApiConfig,
    ApiConfigCreate,
    ApiConfigResponse,
    ApiConfigStatusUpdate,
    ApiConfigUpdate,
    GeneratedKeyResponse,
    GlobalMetrics,
    KeyUsageResponse,
    RegistrationKeyCreate,
    RegistrationKeyResponse,
    Tenant,
    TenantCreate,
    TenantResponse,
    TenantStatusUpdate,
    TenantUpdate,
)
from src.legalsaas.api.deps import get_current_admin, get_workspace
from src.legalsaas.api.errors import to_http
from src.legalsaas.auth.schemas import (
    AdminAccount,
    AdminResponse,
    LoginRequest,
    TokenRefreshRequest,
    TokenResponse,
)
from src.legalsaas.auth.service import ADMIN_SCOPE
from src.legalsaas.workspace import Workspace

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _tenant_response(tenant: Tenant, workspace: Workspace) -> TenantResponse:
    return TenantResponse(
        **tenant.model_dump(),
        stats=workspace.tenant_stats(tenant.id),
    )


def _config_response(workspace: Workspace, config: ApiConfig) -> ApiConfigResponse:
    tenant = workspace.admin.find_tenant(config.tenant_id)
    return ApiConfigResponse.from_config(config, tenant.name if tenant else None)


# ── Admin authentication ─────────────────────────────────────────────────────


@router.post("/auth/login", response_model=TokenResponse)
async def admin_login(body: LoginRequest, workspace: Workspace = Depends(get_workspace)):
    try:
        admin = workspace.auth.authenticate_admin(body.email, body.password)
    except ValueError as exc:
        raise to_http(exc)
    return workspace.auth.issue_tokens(admin)


@router.post("/auth/refresh", response_model=TokenResponse)
async def admin_refresh(body: TokenRefreshRequest, workspace: Workspace = Depends(get_workspace)):
    try:
        return workspace.auth.refresh(body.refresh_token, ADMIN_SCOPE)
    except ValueError as exc:
        raise to_http(exc)


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def admin_logout(body: TokenRefreshRequest, workspace: Workspace = Depends(get_workspace)) -> None:
    workspace.auth.logout(body.refresh_token)


@router.get("/auth/me", response_model=AdminResponse)
async def admin_me(admin: AdminAccount = Depends(get_current_admin)):
    return AdminResponse(id=admin.id, email=admin.email, name=admin.name, role=admin.role)


# ── Tenants ──────────────────────────────────────────────────────────────────


@router.get("/tenants", response_model=list[TenantResponse])
async def list_tenants(
    active: bool | None = Query(default=None),
    search: str = Query(default=""),
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    """All tenants, newest first, with per-module record counts."""
    return [
        _tenant_response(tenant, workspace)
        for tenant in workspace.admin.list_tenants(active=active, search=search)
    ]


@router.post("/tenants", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    body: TenantCreate,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    return _tenant_response(workspace.admin.create_tenant(body), workspace)


@router.get("/tenants/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: str,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return _tenant_response(workspace.admin.get_tenant(tenant_id), workspace)
    except ValueError as exc:
        raise to_http(exc)


@router.patch("/tenants/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: str,
    body: TenantUpdate,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return _tenant_response(workspace.admin.update_tenant(tenant_id, body), workspace)
    except ValueError as exc:
        raise to_http(exc)


@router.patch("/tenants/{tenant_id}/status", response_model=TenantResponse)
async def set_tenant_status(
    tenant_id: str,
    body: TenantStatusUpdate,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    """Activate or deactivate a tenant; inactive tenants' users get 403."""
    try:
        return _tenant_response(workspace.admin.set_tenant_status(tenant_id, body.is_active), workspace)
    except ValueError as exc:
        raise to_http(exc)


@router.delete("/tenants/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(
    tenant_id: str,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
) -> None:
    """Delete a tenant together with its users and records."""
    try:
        workspace.drop_tenant(tenant_id)
    except ValueError as exc:
        raise to_http(exc)


# ── Registration keys ────────────────────────────────────────────────────────


@router.get("/keys", response_model=list[RegistrationKeyResponse])
async def list_keys(
    tenant_id: str | None = Query(default=None),
    include_revoked: bool = Query(default=True),
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    return [
        RegistrationKeyResponse.from_key(key)
        for key in workspace.admin.list_keys(tenant_id, include_revoked=include_revoked)
    ]


@router.post("/keys", response_model=GeneratedKeyResponse, status_code=status.HTTP_201_CREATED)
async def generate_key(
    body: RegistrationKeyCreate,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    """Generate a registration key. The plaintext key is only returned here."""
    try:
        key, raw_key = workspace.admin.generate_key(body, created_by=admin.email)
    except ValueError as exc:
        raise to_http(exc)
    return GeneratedKeyResponse(
        **RegistrationKeyResponse.from_key(key).model_dump(),
        key=raw_key,
    )


@router.post("/keys/{key_id}/revoke", response_model=RegistrationKeyResponse)
async def revoke_key(
    key_id: str,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return RegistrationKeyResponse.from_key(workspace.admin.revoke_key(key_id))
    except ValueError as exc:
        raise to_http(exc)


@router.get("/keys/{key_id}/usage", response_model=KeyUsageResponse)
async def key_usage(
    key_id: str,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        key = workspace.admin.get_key(key_id)
    except ValueError as exc:
        raise to_http(exc)
    return KeyUsageResponse(
        id=key.id,
        key_prefix=key.key_prefix,
        uses_allowed=key.uses_allowed,
        uses_left=key.uses_left,
        used_logs=key.used_logs,
    )


# ── Metrics ──────────────────────────────────────────────────────────────────


@router.get("/metrics", response_model=GlobalMetrics)
async def global_metrics(
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    return workspace.admin.global_metrics(total_users=workspace.auth.count_users())


# ── API configurations ───────────────────────────────────────────────────────


@router.get("/api-configs", response_model=list[ApiConfigResponse])
async def list_api_configs(
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    return [_config_response(workspace, config) for config in workspace.admin.list_api_configs()]


@router.post("/api-configs", response_model=ApiConfigResponse, status_code=status.HTTP_201_CREATED)
async def create_api_config(
    body: ApiConfigCreate,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return _config_response(workspace, workspace.admin.create_api_config(body))
    except ValueError as exc:
        raise to_http(exc)


@router.get("/api-configs/{tenant_id}", response_model=ApiConfigResponse)
async def get_api_config(
    tenant_id: str,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return _config_response(workspace, workspace.admin.get_api_config(tenant_id))
    except ValueError as exc:
        raise to_http(exc)


@router.patch("/api-configs/{tenant_id}", response_model=ApiConfigResponse)
async def update_api_config(
    tenant_id: str,
    body: ApiConfigUpdate,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return _config_response(workspace, workspace.admin.update_api_config(tenant_id, body))
    except ValueError as exc:
        raise to_http(exc)


@router.patch("/api-configs/{tenant_id}/status", response_model=ApiConfigResponse)
async def set_api_config_status(
    tenant_id: str,
    body: ApiConfigStatusUpdate,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return _config_response(workspace, workspace.admin.set_api_config_status(tenant_id, body.is_active))
    except ValueError as exc:
        raise to_http(exc)


@router.delete("/api-configs/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_api_config(
    tenant_id: str,
    admin: AdminAccount = Depends(get_current_admin),
    workspace: Workspace = Depends(get_workspace),
) -> None:
    try:
        workspace.admin.delete_api_config(tenant_id)
    except ValueError as exc:
        raise to_http(exc)
