"""Billing endpoints: estimates and invoices with their status workflow.

Only COMPOSTA and GERENCIAL accounts may use these endpoints; other
accounts get 403.

Status changes go through the workflow endpoints (send, pay, cancel,
status) and are checked against the billing transition table; an illegal
move answers 409.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from src.legalsaas.admin.schemas import AccountType
from src.legalsaas.api.deps import get_current_user, get_tenant, get_workspace, require_account_type
from src.legalsaas.api.errors import to_http
from src.legalsaas.auth.schemas import UserAccount
from src.legalsaas.billing.schemas import (
    BillingDocument,
    BillingStats,
    DocumentCreate,
    DocumentStatus,
    DocumentType,
    DocumentUpdate,
    PaymentRequest,
)
from src.legalsaas.billing.stats import billing_stats
from src.legalsaas.core.tenant import TenantContext
from src.legalsaas.pipeline.stages import Stage
from src.legalsaas.workspace import Workspace

router = APIRouter(
    prefix="/api/invoices",
    tags=["invoices"],
    dependencies=[Depends(require_account_type(AccountType.COMPOSTA, AccountType.GERENCIAL))],
)


class StatusChange(BaseModel):
    status: DocumentStatus


class ConversionResponse(BaseModel):
    estimate: BillingDocument
    invoice: BillingDocument


class StatusColumn(BaseModel):
    id: str
    name: str
    color: str
    count: int
    records: list[BillingDocument]


# ── Collection ───────────────────────────────────────────────────────────────


@router.get("", response_model=list[BillingDocument])
async def list_documents(
    search: str = Query(default=""),
    doc_type: DocumentType | None = Query(default=None, alias="type"),
    doc_status: str | None = Query(default=None, alias="status"),
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    """Documents newest first, filtered by type, status and search."""
    return workspace.billing.list_documents(
        tenant.tenant_id,
        doc_type=doc_type,
        status=doc_status,
        search=search,
    )


@router.post("", response_model=BillingDocument, status_code=status.HTTP_201_CREATED)
async def create_document(
    body: DocumentCreate,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    """Create a DRAFT estimate or invoice; number and totals are assigned here."""
    try:
        return workspace.billing.create_document(tenant.tenant_id, body, created_by=user.name)
    except ValueError as exc:
        raise to_http(exc)


@router.get("/stats", response_model=BillingStats)
async def get_stats(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return billing_stats(workspace.billing.records(tenant.tenant_id))


@router.get("/board", response_model=list[StatusColumn])
async def get_board(
    search: str = Query(default=""),
    doc_type: DocumentType | None = Query(default=None, alias="type"),
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    """Documents grouped by status, in workflow order."""
    flt = workspace.billing.make_filter(search=search, type=doc_type)
    return [
        StatusColumn(
            id=column.stage.id,
            name=column.stage.name,
            color=column.stage.color,
            count=column.count,
            records=column.records,
        )
        for column in workspace.billing.kanban(tenant.tenant_id, flt)
    ]


@router.get("/stages", response_model=list[Stage])
async def list_stages(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return workspace.billing.registry(tenant.tenant_id).stages()


# ── Single document ──────────────────────────────────────────────────────────


@router.get("/{document_id}", response_model=BillingDocument)
async def get_document(
    document_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.billing.get_record(tenant.tenant_id, document_id)
    except ValueError as exc:
        raise to_http(exc)


@router.patch("/{document_id}", response_model=BillingDocument)
async def update_document(
    document_id: str,
    body: DocumentUpdate,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    """Edit a document; totals are recomputed when items or adjustments change."""
    try:
        return workspace.billing.update_document(tenant.tenant_id, document_id, body, modified_by=user.name)
    except ValueError as exc:
        raise to_http(exc)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
) -> None:
    try:
        workspace.billing.delete_record(tenant.tenant_id, document_id)
    except ValueError as exc:
        raise to_http(exc)


# ── Workflow ─────────────────────────────────────────────────────────────────


@router.post("/{document_id}/status", response_model=BillingDocument)
async def change_status(
    document_id: str,
    body: StatusChange,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.billing.move_record(tenant.tenant_id, document_id, body.status.value)
    except ValueError as exc:
        raise to_http(exc)


@router.post("/{document_id}/send", response_model=BillingDocument)
async def send_document(
    document_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.billing.send(tenant.tenant_id, document_id)
    except ValueError as exc:
        raise to_http(exc)


@router.post("/{document_id}/pay", response_model=BillingDocument)
async def pay_invoice(
    document_id: str,
    body: PaymentRequest,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.billing.mark_paid(tenant.tenant_id, document_id, body)
    except ValueError as exc:
        raise to_http(exc)


@router.post("/{document_id}/cancel", response_model=BillingDocument)
async def cancel_document(
    document_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.billing.cancel(tenant.tenant_id, document_id)
    except ValueError as exc:
        raise to_http(exc)


@router.post("/{document_id}/remind", response_model=BillingDocument)
async def send_reminder(
    document_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.billing.record_reminder(tenant.tenant_id, document_id)
    except ValueError as exc:
        raise to_http(exc)


@router.post("/{document_id}/convert", response_model=ConversionResponse, status_code=status.HTTP_201_CREATED)
async def convert_estimate(
    document_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    """Create an invoice from an estimate."""
    try:
        estimate, invoice = workspace.billing.convert_to_invoice(tenant.tenant_id, document_id, created_by=user.name)
    except ValueError as exc:
        raise to_http(exc)
    return ConversionResponse(estimate=estimate, invoice=invoice)
