"""Task pipeline endpoints, with subtask toggling and assignee suggestions."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.legalsaas.api.deps import get_current_user, get_tenant, get_workspace
from src.legalsaas.api.errors import to_http
from src.legalsaas.api.routes.pipelines import build_pipeline_router
from src.legalsaas.auth.schemas import UserAccount
from src.legalsaas.core.tenant import TenantContext
from src.legalsaas.tasks.schemas import Task, TaskCreate, TaskStats, TaskUpdate
from src.legalsaas.tasks.service import task_stats
from src.legalsaas.workspace import Workspace


def _task_stats(workspace: Workspace, tenant_id: str) -> TaskStats:
    return task_stats(workspace.tasks.records(tenant_id))


def _task_routes(router: APIRouter) -> None:
    @router.get("/assignees", response_model=list[str])
    async def list_assignees(
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        """Distinct assignees, for the assignee filter."""
        return workspace.tasks.assignees(tenant.tenant_id)

    @router.post("/{record_id}/subtasks/{subtask_id}/toggle", response_model=Task)
    async def toggle_subtask(
        record_id: str,
        subtask_id: str,
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        try:
            return workspace.tasks.toggle_subtask(tenant.tenant_id, record_id, subtask_id)
        except ValueError as exc:
            raise to_http(exc)


router = build_pipeline_router(
    prefix="/api/tasks",
    tag="tasks",
    service=lambda workspace: workspace.tasks,
    record_model=Task,
    create_model=TaskCreate,
    update_model=TaskUpdate,
    stats_model=TaskStats,
    stats=_task_stats,
    filter_fields={"priority": "priority", "assignee": "assigned_to"},
    extend=_task_routes,
)
