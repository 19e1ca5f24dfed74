"""Client endpoints with advanced filtering and CSV export / import."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status

from src.legalsaas.api.deps import get_current_user, get_tenant, get_workspace
from src.legalsaas.api.errors import to_http
from src.legalsaas.auth.schemas import UserAccount
from src.legalsaas.core.tenant import TenantContext
from src.legalsaas.crm.schemas import (
    Client,
    ClientCreate,
    ClientImportResult,
    ClientQuery,
    ClientUpdate,
    OrganizationFilter,
)
from src.legalsaas.exports.csv_io import export_filename
from src.legalsaas.workspace import Workspace

router = APIRouter(prefix="/api/clients", tags=["clients"])


def client_query(
    search: str = Query(default=""),
    client_status: str | None = Query(default=None, alias="status"),
    level: list[str] = Query(default=[]),
    location: list[str] = Query(default=[], description='"City - ST"'),
    has_organization: OrganizationFilter | None = Query(default=None),
    tag: list[str] = Query(default=[]),
) -> ClientQuery:
    return ClientQuery(
        search=search,
        status=client_status,
        levels=level,
        locations=location,
        has_organization=has_organization,
        tags=tag,
    )


# ── Collection ───────────────────────────────────────────────────────────────


@router.get("", response_model=list[Client])
async def list_clients(
    query: ClientQuery = Depends(client_query),
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return workspace.clients.list_clients(tenant.tenant_id, query)


@router.post("", response_model=Client, status_code=status.HTTP_201_CREATED)
async def create_client(
    body: ClientCreate,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    data = body.model_dump()
    data["registered_by"] = data.get("registered_by") or user.name
    try:
        return workspace.clients.create_record(tenant.tenant_id, data)
    except ValueError as exc:
        raise to_http(exc)


@router.get("/tags", response_model=list[str])
async def list_tags(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return workspace.clients.existing_tags(tenant.tenant_id)


@router.get("/export")
async def export_clients(
    query: ClientQuery = Depends(client_query),
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
) -> Response:
    """Filtered clients as a CSV download; the same headers are accepted by import."""
    return Response(
        content=workspace.clients.export_csv(tenant.tenant_id, query),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename("clientes")}"'},
    )


@router.post("/import", response_model=ClientImportResult)
async def import_clients(
    file: UploadFile = File(...),
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    """Create clients from an uploaded CSV; invalid lines are reported, not fatal."""
    raw = await file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file must be UTF-8 encoded",
        )
    return workspace.clients.import_csv(tenant.tenant_id, text, registered_by=user.name)


# ── Single client ────────────────────────────────────────────────────────────


@router.get("/{client_id}", response_model=Client)
async def get_client(
    client_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.clients.get_record(tenant.tenant_id, client_id)
    except ValueError as exc:
        raise to_http(exc)


@router.patch("/{client_id}", response_model=Client)
async def update_client(
    client_id: str,
    body: ClientUpdate,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.clients.update_record(tenant.tenant_id, client_id, body)
    except ValueError as exc:
        raise to_http(exc)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
) -> None:
    try:
        workspace.clients.delete_record(tenant.tenant_id, client_id)
    except ValueError as exc:
        raise to_http(exc)
