"""Dashboard overview endpoints.

Every account type may call them; cash-flow figures are only filled in
for COMPOSTA and GERENCIAL accounts and read as zero otherwise.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.legalsaas.api.deps import get_current_user, get_tenant, get_workspace
from src.legalsaas.auth.schemas import UserAccount
from src.legalsaas.core.tenant import TenantContext
from src.legalsaas.dashboard.schemas import ClientMetrics, FinancialOverview, MetricsResponse, ProjectMetrics
from src.legalsaas.dashboard.stats import (
    client_metrics,
    dashboard_metrics,
    financial_overview,
    project_metrics,
    restricted_financial_overview,
    sees_finance,
)
from src.legalsaas.pipeline.records import utcnow
from src.legalsaas.workspace import Workspace

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    now = utcnow()
    tenant_id = tenant.tenant_id
    metrics = dashboard_metrics(
        user.account_type,
        clients=workspace.clients.records(tenant_id),
        projects=workspace.projects.records(tenant_id),
        tasks=workspace.tasks.records(tenant_id),
        transactions=workspace.cashflow.records(tenant_id),
        now=now,
    )
    return MetricsResponse(metrics=metrics, account_type=user.account_type, timestamp=now)


@router.get("/financeiro", response_model=FinancialOverview)
async def get_financial_overview(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    if not sees_finance(user.account_type):
        return restricted_financial_overview()
    return financial_overview(workspace.cashflow.records(tenant.tenant_id))


@router.get("/clientes", response_model=ClientMetrics)
async def get_client_metrics(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return client_metrics(workspace.clients.records(tenant.tenant_id))


@router.get("/projetos", response_model=ProjectMetrics)
async def get_project_metrics(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return project_metrics(workspace.projects.records(tenant.tenant_id))
