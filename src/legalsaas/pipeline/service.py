"""Record services: the mutator and partitioner facade for one entity type.

RecordService covers create / update / delete and filtered listing.
PipelineService adds a per-tenant stage registry, stage moves checked
against a transition policy, and the kanban / partition views.

Services take ``tenant_id`` as the first argument of every operation and
never look at the request context themselves.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Any, Generic, TypeVar

import structlog
from pydantic import BaseModel

from src.legalsaas.core.monitoring import record_stage_move
from src.legalsaas.pipeline.filters import RecordFilter, field_value
from src.legalsaas.pipeline.partition import (
    StageColumn,
    find_orphans,
    kanban_view,
    list_view,
    partition,
)
from src.legalsaas.pipeline.records import PROTECTED_FIELDS, Record, new_record_id, utcnow
from src.legalsaas.pipeline.stages import (
    FREE_TRANSITIONS,
    Stage,
    StageRegistry,
    TransitionPolicy,
)
from src.legalsaas.pipeline.store import InMemoryRecordStore, RecordNotFoundError, RecordStore

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=Record)


def _stage_id(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _as_changes(
    data: BaseModel | Mapping[str, Any],
    *,
    patch: bool,
    nullable: frozenset[str] = frozenset(),
) -> dict[str, Any]:
    """Turn a request model or mapping into a dict of field changes.

    For patches only explicitly-set fields count as changes. An explicit null
    clears a field listed in ``nullable``; on any other field it is ignored.
    """
    if isinstance(data, BaseModel):
        changes = data.model_dump(exclude_unset=patch)
    else:
        changes = dict(data)
    if patch:
        changes = {key: value for key, value in changes.items() if value is not None or key in nullable}
    return {key: value for key, value in changes.items() if key not in PROTECTED_FIELDS}


def nullable_fields(model: type[BaseModel]) -> frozenset[str]:
    """Fields of ``model`` that default to None, i.e. may be cleared by a patch."""
    return frozenset(
        name for name, info in model.model_fields.items()
        if not info.is_required() and info.default is None
    )


class RecordService(Generic[T]):
    """CRUD and filtered listing for one tenant-scoped record type.

    Args:
        entity: Singular entity name used in log events and errors ("deal").
        model: Pydantic record model the store holds.
        store: Repository implementation; in-memory when omitted.
        search_fields: Attributes matched by free-text search.
        order_by: Attribute list views are sorted by (insertion order when None).
        descending: Sort direction for order_by.
    """

    def __init__(
        self,
        *,
        entity: str,
        model: type[T],
        store: RecordStore[T] | None = None,
        search_fields: Sequence[str] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> None:
        self.entity = entity
        self.model = model
        self.nullable = nullable_fields(model)
        self.store: RecordStore[T] = store if store is not None else InMemoryRecordStore(entity)
        self.search_fields = tuple(search_fields)
        self.order_by = order_by
        self.descending = descending

    # ── Hooks ────────────────────────────────────────────────────────────

    def _prepare_create(self, tenant_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return payload

    def _prepare_update(self, current: T, changes: dict[str, Any]) -> dict[str, Any]:
        return changes

    # ── Mutator ──────────────────────────────────────────────────────────

    def create_record(self, tenant_id: str, data: BaseModel | Mapping[str, Any]) -> T:
        """Create a record with a fresh id and UTC timestamps."""
        payload = self._prepare_create(tenant_id, _as_changes(data, patch=False))
        now = utcnow()
        record = self.model.model_validate({
            **payload,
            "id": new_record_id(),
            "tenant_id": tenant_id,
            "created_at": now,
            "updated_at": now,
        })
        self.store.add(tenant_id, record)
        logger.info(f"{self.entity}.created", tenant_id=tenant_id, record_id=record.id)
        return record

    def get_record(self, tenant_id: str, record_id: str) -> T:
        record = self.store.get(tenant_id, record_id)
        if record is None:
            raise RecordNotFoundError(self.entity, record_id)
        return record

    def update_record(
        self,
        tenant_id: str,
        record_id: str,
        patch: BaseModel | Mapping[str, Any],
    ) -> T:
        """Merge patch into the record and bump updated_at.

        A null in the patch clears a nullable field and leaves any other
        field unchanged.

        Raises:
            RecordNotFoundError: If record_id does not exist for the tenant.
        """
        current = self.get_record(tenant_id, record_id)
        changes = self._prepare_update(current, _as_changes(patch, patch=True, nullable=self.nullable))
        updated = self.model.model_validate({
            **current.model_dump(),
            **changes,
            "updated_at": utcnow(),
        })
        self.store.replace(tenant_id, updated)
        logger.info(
            f"{self.entity}.updated",
            tenant_id=tenant_id,
            record_id=record_id,
            fields=sorted(changes),
        )
        return updated

    def delete_record(self, tenant_id: str, record_id: str) -> None:
        self.store.remove(tenant_id, record_id)
        logger.info(f"{self.entity}.deleted", tenant_id=tenant_id, record_id=record_id)

    # ── Queries ──────────────────────────────────────────────────────────

    def records(self, tenant_id: str) -> list[T]:
        """Every record of the tenant in insertion order, unfiltered."""
        return self.store.list_records(tenant_id)

    def make_filter(
        self,
        search: str = "",
        tags: Iterable[str] | None = None,
        **equals: Any,
    ) -> RecordFilter:
        """Build a filter bound to this entity's search fields."""
        return RecordFilter(
            search=search or "",
            search_fields=self.search_fields,
            equals=equals,
            tags=list(tags or ()),
        )

    def list_records(self, tenant_id: str, flt: RecordFilter | None = None) -> list[T]:
        """Flat list view: filtered, in this entity's list order."""
        return list_view(
            self.records(tenant_id),
            flt,
            order_by=self.order_by,
            descending=self.descending,
        )

    def existing_tags(self, tenant_id: str) -> list[str]:
        """Sorted, de-duplicated tags used by any record of the tenant."""
        return sorted({tag for record in self.records(tenant_id) for tag in record.tags})

    def count(self, tenant_id: str) -> int:
        return self.store.count(tenant_id)

    def drop_tenant(self, tenant_id: str) -> int:
        removed = self.store.drop_tenant(tenant_id)
        logger.info(f"{self.entity}.tenant_dropped", tenant_id=tenant_id, removed=removed)
        return removed


class PipelineService(RecordService[T]):
    """RecordService whose records move through an ordered set of stages.

    Args:
        default_stages: Stages every tenant's registry starts with.
        stage_field: Record attribute holding the stage id.
        policy: Transition policy; free assignment when omitted.
    """

    def __init__(
        self,
        *,
        entity: str,
        model: type[T],
        default_stages: Iterable[Stage],
        stage_field: str = "stage",
        policy: TransitionPolicy | None = None,
        store: RecordStore[T] | None = None,
        search_fields: Sequence[str] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> None:
        super().__init__(
            entity=entity,
            model=model,
            store=store,
            search_fields=search_fields,
            order_by=order_by,
            descending=descending,
        )
        self.stage_field = stage_field
        self.policy = policy or FREE_TRANSITIONS
        self._default_registry = StageRegistry(default_stages)
        self._registries: dict[str, StageRegistry] = {}

    # ── Stage registry ───────────────────────────────────────────────────

    def registry(self, tenant_id: str) -> StageRegistry:
        """The tenant's stage registry, seeded from the defaults on first use."""
        registry = self._registries.get(tenant_id)
        if registry is None:
            registry = self._default_registry.copy()
            self._registries[tenant_id] = registry
        return registry

    def rename_stage(self, tenant_id: str, stage_id: str, name: str) -> Stage:
        stage = self.registry(tenant_id).rename(stage_id, name)
        logger.info(f"{self.entity}.stage_renamed", tenant_id=tenant_id, stage_id=stage_id, name=stage.name)
        return stage

    def is_known_stage(self, tenant_id: str, stage_id: str) -> bool:
        return stage_id in self.registry(tenant_id)

    # ── Mutator ──────────────────────────────────────────────────────────

    def stage_of(self, record: T) -> str:
        return field_value(record, self.stage_field)

    def _on_stage_change(self, current: T, new_stage: str, changes: dict[str, Any]) -> dict[str, Any]:
        """Hook for entity-specific side effects of a stage move."""
        return changes

    def _prepare_update(self, current: T, changes: dict[str, Any]) -> dict[str, Any]:
        changes = super()._prepare_update(current, changes)
        if self.stage_field not in changes:
            return changes
        new_stage = _stage_id(changes[self.stage_field])
        changes[self.stage_field] = new_stage
        if new_stage != self.stage_of(current):
            self.policy.validate(self.stage_of(current), new_stage)
            changes = self._on_stage_change(current, new_stage, changes)
        return changes

    def update_record(
        self,
        tenant_id: str,
        record_id: str,
        patch: BaseModel | Mapping[str, Any],
    ) -> T:
        from_stage = self.stage_of(self.get_record(tenant_id, record_id))
        updated = super().update_record(tenant_id, record_id, patch)
        to_stage = self.stage_of(updated)
        if to_stage != from_stage:
            record_stage_move(self.entity, from_stage, to_stage)
            logger.info(
                f"{self.entity}.moved",
                tenant_id=tenant_id,
                record_id=record_id,
                from_stage=from_stage,
                to_stage=to_stage,
            )
        return updated

    def move_record(self, tenant_id: str, record_id: str, new_stage: str) -> T:
        """Move a record to new_stage; same as updating only its stage field.

        Raises:
            RecordNotFoundError: If record_id does not exist for the tenant.
            InvalidStageTransitionError: If the transition policy forbids the move.
        """
        return self.update_record(tenant_id, record_id, {self.stage_field: new_stage})

    # ── Views ────────────────────────────────────────────────────────────

    def partition(self, tenant_id: str, flt: RecordFilter | None = None) -> dict[str, list[T]]:
        return partition(
            self.records(tenant_id),
            self.registry(tenant_id),
            flt,
            stage_field=self.stage_field,
            order_by=self.order_by,
            descending=self.descending,
        )

    def kanban(self, tenant_id: str, flt: RecordFilter | None = None) -> list[StageColumn[T]]:
        return kanban_view(
            self.records(tenant_id),
            self.registry(tenant_id),
            flt,
            stage_field=self.stage_field,
            order_by=self.order_by,
            descending=self.descending,
        )

    def orphans(self, tenant_id: str) -> list[T]:
        """Records whose stage id is no longer registered for the tenant."""
        return find_orphans(self.records(tenant_id), self.registry(tenant_id), stage_field=self.stage_field)

    def drop_tenant(self, tenant_id: str) -> int:
        self._registries.pop(tenant_id, None)
        return super().drop_tenant(tenant_id)
