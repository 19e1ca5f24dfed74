"""Project pipeline endpoints."""

from __future__ import annotations

from src.legalsaas.api.routes.pipelines import build_pipeline_router
from src.legalsaas.projects.schemas import Project, ProjectCreate, ProjectStats, ProjectUpdate
from src.legalsaas.projects.service import project_stats
from src.legalsaas.workspace import Workspace


def _project_stats(workspace: Workspace, tenant_id: str) -> ProjectStats:
    return project_stats(workspace.projects.records(tenant_id))


router = build_pipeline_router(
    prefix="/api/projects",
    tag="projects",
    service=lambda workspace: workspace.projects,
    record_model=Project,
    create_model=ProjectCreate,
    update_model=ProjectUpdate,
    stats_model=ProjectStats,
    stats=_project_stats,
    filter_fields={"priority": "priority", "assignee": "assigned_to"},
)
