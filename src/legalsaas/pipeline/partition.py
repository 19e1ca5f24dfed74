"""Partitioner: group filtered records into stage buckets.

Records are filtered once and then placed by their own stage field in a
single pass. Bucket keys follow registry order and every registered stage
gets a bucket, empty or not. Records whose stage is not registered land in
no bucket; find_orphans() lists them so they are not lost silently.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from src.legalsaas.pipeline.filters import RecordFilter, apply_filters, field_value
from src.legalsaas.pipeline.stages import Stage, StageRegistry

T = TypeVar("T")


@dataclass
class StageColumn(Generic[T]):
    """One kanban column: a stage and the records currently in it."""

    stage: Stage
    records: list[T] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.records)


def order_records(
    records: Iterable[T],
    order_by: str | None = None,
    descending: bool = False,
) -> list[T]:
    """Sort by one attribute (stable), or keep input order when order_by is None."""
    items = list(records)
    if order_by is None:
        return items
    return sorted(items, key=lambda record: _sort_key(field_value(record, order_by)), reverse=descending)


def _sort_key(value: Any) -> tuple[bool, Any]:
    # None sorts after everything else in ascending order
    return (value is None, value if value is not None else 0)


def partition(
    records: Iterable[T],
    registry: StageRegistry,
    flt: RecordFilter | None = None,
    *,
    stage_field: str = "stage",
    order_by: str | None = None,
    descending: bool = False,
) -> dict[str, list[T]]:
    """Filter records, then group them by stage in registry order.

    Args:
        records: Records in store (insertion) order.
        registry: Stage registry whose ids become the bucket keys.
        flt: Optional filter applied before grouping.
        stage_field: Record attribute holding the stage id.
        order_by: Optional attribute to sort each bucket by.
        descending: Sort direction when order_by is set.

    Returns:
        Mapping of every registered stage id to its matching records.
    """
    buckets: dict[str, list[T]] = {stage_id: [] for stage_id in registry.ids()}
    for record in order_records(apply_filters(records, flt), order_by, descending):
        bucket = buckets.get(field_value(record, stage_field))
        if bucket is not None:
            bucket.append(record)
    return buckets


def find_orphans(
    records: Iterable[T],
    registry: StageRegistry,
    *,
    stage_field: str = "stage",
) -> list[T]:
    """Records whose stage id is not in the registry and so appear in no bucket."""
    known = set(registry.ids())
    return [record for record in records if field_value(record, stage_field) not in known]


def kanban_view(
    records: Iterable[T],
    registry: StageRegistry,
    flt: RecordFilter | None = None,
    *,
    stage_field: str = "stage",
    order_by: str | None = None,
    descending: bool = False,
) -> list[StageColumn[T]]:
    """Board rendering of partition(): one column per stage, in registry order."""
    buckets = partition(
        records,
        registry,
        flt,
        stage_field=stage_field,
        order_by=order_by,
        descending=descending,
    )
    return [StageColumn(stage=stage, records=buckets[stage.id]) for stage in registry]


def list_view(
    records: Iterable[T],
    flt: RecordFilter | None = None,
    *,
    order_by: str | None = None,
    descending: bool = False,
) -> list[T]:
    """Flat rendering: every matching record, whatever its stage."""
    return order_records(apply_filters(records, flt), order_by, descending)
