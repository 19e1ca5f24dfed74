"""Cash-flow endpoints: transactions, monthly stats, category breakdown and CSV export.

Only COMPOSTA and GERENCIAL accounts may use these endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Response, status

from src.legalsaas.admin.schemas import AccountType
from src.legalsaas.api.deps import get_current_user, get_tenant, get_workspace, require_account_type
from src.legalsaas.api.errors import to_http
from src.legalsaas.auth.schemas import UserAccount
from src.legalsaas.cashflow.schemas import (
    CashFlowStats,
    CategoryStats,
    Transaction,
    TransactionCreate,
    TransactionTab,
    TransactionType,
    TransactionUpdate,
)
from src.legalsaas.cashflow.service import cashflow_stats, category_breakdown
from src.legalsaas.core.tenant import TenantContext
from src.legalsaas.exports.csv_io import export_filename
from src.legalsaas.workspace import Workspace

router = APIRouter(
    prefix="/api/transactions",
    tags=["transactions"],
    dependencies=[Depends(require_account_type(AccountType.COMPOSTA, AccountType.GERENCIAL))],
)


def transaction_filters(
    search: str = Query(default=""),
    status_: str | None = Query(default=None, alias="status"),
    tx_type: str | None = Query(default=None, alias="type"),
    tab: TransactionTab = Query(default=TransactionTab.all),
    tag: list[str] = Query(default=[]),
) -> dict[str, Any]:
    """Query-string filters of the transaction list and export."""
    return {
        "search": search,
        "status": status_,
        "tx_type": tx_type,
        "tab": tab,
        "tags": tag,
    }


# ── Collection ───────────────────────────────────────────────────────────────


@router.get("", response_model=list[Transaction])
async def list_transactions(
    filters: dict[str, Any] = Depends(transaction_filters),
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    """Transactions newest first; ``tab=recurring`` keeps recurring ones only."""
    return workspace.cashflow.list_transactions(tenant.tenant_id, **filters)


@router.post("", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    body: TransactionCreate,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    data = body.model_dump()
    data["created_by"] = user.name
    try:
        return workspace.cashflow.create_record(tenant.tenant_id, data)
    except ValueError as exc:
        raise to_http(exc)


@router.get("/stats", response_model=CashFlowStats)
async def get_stats(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    """Confirmed income, expenses and balance for the current month."""
    return cashflow_stats(workspace.cashflow.records(tenant.tenant_id))


@router.get("/categories", response_model=list[CategoryStats])
async def get_categories(
    tx_type: TransactionType = Query(default=TransactionType.expense, alias="type"),
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return category_breakdown(workspace.cashflow.records(tenant.tenant_id), tx_type)


@router.get("/export")
async def export_transactions(
    filters: dict[str, Any] = Depends(transaction_filters),
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
) -> Response:
    """Filtered transactions as a CSV download."""
    content = workspace.cashflow.export_csv(tenant.tenant_id, **filters)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename("fluxo_caixa")}"'},
    )


# ── Single transaction ───────────────────────────────────────────────────────


@router.get("/{transaction_id}", response_model=Transaction)
async def get_transaction(
    transaction_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.cashflow.get_record(tenant.tenant_id, transaction_id)
    except ValueError as exc:
        raise to_http(exc)


@router.patch("/{transaction_id}", response_model=Transaction)
async def update_transaction(
    transaction_id: str,
    body: TransactionUpdate,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    changes = body.model_dump(exclude_unset=True)
    changes["last_modified_by"] = user.name
    try:
        return workspace.cashflow.update_record(tenant.tenant_id, transaction_id, changes)
    except ValueError as exc:
        raise to_http(exc)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
) -> None:
    try:
        workspace.cashflow.delete_record(tenant.tenant_id, transaction_id)
    except ValueError as exc:
        raise to_http(exc)
