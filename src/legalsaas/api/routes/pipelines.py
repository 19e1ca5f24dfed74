"""Shared REST surface for stage pipelines (deals, projects, tasks).

build_pipeline_router() produces the list, kanban board, stage, tag, CRUD,
move and stats endpoints for one PipelineService. Request and response
models are passed in per entity, so this module evaluates annotations
eagerly for FastAPI to see the concrete body types.
"""

from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from src.legalsaas.api.deps import get_current_user, get_tenant, get_workspace
from src.legalsaas.api.errors import to_http
from src.legalsaas.auth.schemas import UserAccount
from src.legalsaas.core.tenant import TenantContext
from src.legalsaas.pipeline.filters import RecordFilter
from src.legalsaas.pipeline.service import PipelineService
from src.legalsaas.pipeline.stages import Stage, UnknownStageError
from src.legalsaas.workspace import Workspace

RecordT = TypeVar("RecordT")


# ── Schemas ──────────────────────────────────────────────────────────────────


class BoardColumn(BaseModel, Generic[RecordT]):
    """One kanban column."""

    id: str
    name: str
    color: str
    count: int
    records: list[RecordT] = Field(default_factory=list)


class BoardResponse(BaseModel, Generic[RecordT]):
    columns: list[BoardColumn[RecordT]]
    total: int


class StageRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class StageMove(BaseModel):
    """Request body for moving a record to another stage."""

    stage: str = Field(..., min_length=1)


class PipelineQuery:
    """Query-string filters shared by the list and board endpoints.

    ``stage`` and ``status`` are synonyms for the entity's stage field.
    """

    def __init__(
        self,
        search: str = Query(default="", description="Free-text search"),
        stage: str | None = Query(default=None, description="Stage id, or 'all'"),
        status_: str | None = Query(default=None, alias="status", description="Alias of stage"),
        priority: str | None = Query(default=None),
        assignee: str | None = Query(default=None),
        tag: list[str] = Query(default=[]),
    ):
        self.search = search
        self.stage = stage or status_
        self.priority = priority
        self.assignee = assignee
        self.tags = tag


# ── Factory ──────────────────────────────────────────────────────────────────


def build_pipeline_router(
    *,
    prefix: str,
    tag: str,
    service: Callable[[Workspace], PipelineService],
    record_model: type[BaseModel],
    create_model: type[BaseModel],
    update_model: type[BaseModel],
    stats_model: type[BaseModel],
    stats: Callable[[Workspace, str], BaseModel],
    filter_fields: Mapping[str, str] | None = None,
    extend: Callable[[APIRouter], None] | None = None,
) -> APIRouter:
    """Build the REST router for one pipeline entity.

    Args:
        prefix: Route prefix, e.g. "/api/deals".
        tag: OpenAPI tag.
        service: Picks the PipelineService out of the workspace.
        record_model: Stored record model, used as the response model.
        create_model: Request body for POST.
        update_model: Request body for PATCH (all fields optional).
        stats_model: Response model of GET /stats.
        stats: Computes the stats for (workspace, tenant_id).
        filter_fields: Maps the optional "priority" / "assignee" query
            filters to record attributes; filters not listed are ignored.
        extend: Registers entity-specific static routes before the
            ``/{record_id}`` routes so they are matched first.
    """
    router = APIRouter(prefix=prefix, tags=[tag])
    filter_fields = filter_fields or {}
    board_model = BoardResponse[record_model]

    def make_filter(svc: PipelineService, query: PipelineQuery) -> RecordFilter:
        equals: dict[str, Any] = {svc.stage_field: query.stage}
        for name in ("priority", "assignee"):
            if name in filter_fields:
                equals[filter_fields[name]] = getattr(query, name)
        return svc.make_filter(search=query.search, tags=query.tags, **equals)

    def check_stage(svc: PipelineService, tenant_id: str, stage_id: str | None) -> None:
        if stage_id is not None and not svc.is_known_stage(tenant_id, stage_id):
            raise HTTPException(
                status_code=422,
                detail=f"Unknown stage: {stage_id}",
            )

    # ── Collection and static routes ─────────────────────────────────────

    @router.get("", response_model=list[record_model])
    async def list_records(
        query: PipelineQuery = Depends(),
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        """Flat list of every matching record."""
        svc = service(workspace)
        return svc.list_records(tenant.tenant_id, make_filter(svc, query))

    @router.get("/board", response_model=board_model)
    async def get_board(
        query: PipelineQuery = Depends(),
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        """Kanban board: one column per stage, in stage order."""
        svc = service(workspace)
        columns = svc.kanban(tenant.tenant_id, make_filter(svc, query))
        return board_model(
            columns=[
                BoardColumn[record_model](
                    id=column.stage.id,
                    name=column.stage.name,
                    color=column.stage.color,
                    count=column.count,
                    records=column.records,
                )
                for column in columns
            ],
            total=sum(column.count for column in columns),
        )

    @router.get("/stages", response_model=list[Stage])
    async def list_stages(
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        return service(workspace).registry(tenant.tenant_id).stages()

    @router.patch("/stages/{stage_id}", response_model=Stage)
    async def rename_stage(
        stage_id: str,
        body: StageRename,
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        """Rename a stage; records keep pointing at the same stage id."""
        try:
            return service(workspace).rename_stage(tenant.tenant_id, stage_id, body.name)
        except UnknownStageError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        except ValueError as exc:
            raise to_http(exc)

    @router.get("/tags", response_model=list[str])
    async def list_tags(
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        """Tags already used by the tenant's records, for suggestions."""
        return service(workspace).existing_tags(tenant.tenant_id)

    @router.get("/stats", response_model=stats_model)
    async def get_stats(
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        return stats(workspace, tenant.tenant_id)

    if extend is not None:
        extend(router)

    # ── Record routes ────────────────────────────────────────────────────

    @router.post("", response_model=record_model, status_code=status.HTTP_201_CREATED)
    async def create_record(
        body: create_model,
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        svc = service(workspace)
        data = body.model_dump()
        check_stage(svc, tenant.tenant_id, data.get(svc.stage_field))
        if "created_by" in record_model.model_fields and not data.get("created_by"):
            data["created_by"] = user.name
        try:
            return svc.create_record(tenant.tenant_id, data)
        except ValueError as exc:
            raise to_http(exc)

    @router.get("/{record_id}", response_model=record_model)
    async def get_record(
        record_id: str,
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        try:
            return service(workspace).get_record(tenant.tenant_id, record_id)
        except ValueError as exc:
            raise to_http(exc)

    @router.patch("/{record_id}", response_model=record_model)
    async def update_record(
        record_id: str,
        body: update_model,
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        """Partial update; omitted or null fields are left unchanged."""
        svc = service(workspace)
        check_stage(svc, tenant.tenant_id, getattr(body, svc.stage_field, None))
        try:
            return svc.update_record(tenant.tenant_id, record_id, body)
        except ValueError as exc:
            raise to_http(exc)

    @router.post("/{record_id}/move", response_model=record_model)
    async def move_record(
        record_id: str,
        body: StageMove,
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ):
        """Move a record to another stage (drag and drop on the board)."""
        svc = service(workspace)
        check_stage(svc, tenant.tenant_id, body.stage)
        try:
            return svc.move_record(tenant.tenant_id, record_id, body.stage)
        except ValueError as exc:
            raise to_http(exc)

    @router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_record(
        record_id: str,
        user: UserAccount = Depends(get_current_user),
        tenant: TenantContext = Depends(get_tenant),
        workspace: Workspace = Depends(get_workspace),
    ) -> None:
        try:
            service(workspace).delete_record(tenant.tenant_id, record_id)
        except ValueError as exc:
            raise to_http(exc)

    return router
