"""Deal pipeline endpoints (CRM board)."""

from __future__ import annotations

from src.legalsaas.api.routes.pipelines import build_pipeline_router
from src.legalsaas.crm.schemas import CRMMetrics, Deal, DealCreate, DealUpdate
from src.legalsaas.crm.stats import crm_metrics
from src.legalsaas.workspace import Workspace


def _deal_metrics(workspace: Workspace, tenant_id: str) -> CRMMetrics:
    return crm_metrics(workspace.clients.records(tenant_id), workspace.deals.records(tenant_id))


router = build_pipeline_router(
    prefix="/api/deals",
    tag="deals",
    service=lambda workspace: workspace.deals,
    record_model=Deal,
    create_model=DealCreate,
    update_model=DealUpdate,
    stats_model=CRMMetrics,
    stats=_deal_metrics,
)
