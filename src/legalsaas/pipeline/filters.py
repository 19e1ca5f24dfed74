"""Record filtering shared by list views, kanban boards and exports.

A RecordFilter is the logical AND of three predicates:

- text search: case-insensitive substring match against ANY of the search
  fields (an empty search matches everything)
- equality: each entry of ``equals`` must match the record attribute, unless
  the filter value is None or "all"; list-valued attributes match when they
  contain the value
- tags: when given, at least one filter tag must be a case-insensitive
  substring of one of the record's tags

Filtering never reorders records, and filtering an already-filtered list
with the same filter returns it unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

ALL = "all"


class RecordFilter(BaseModel):
    """Active filters for one listing."""

    search: str = ""
    search_fields: tuple[str, ...] = ()
    equals: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    def matches(self, record: Any) -> bool:
        return (
            _matches_search(record, self.search, self.search_fields)
            and _matches_equals(record, self.equals)
            and _matches_tags(record, self.tags)
        )

    @property
    def is_empty(self) -> bool:
        return not self.search.strip() and not _active(self.equals) and not self.tags


def field_value(record: Any, name: str) -> Any:
    """Read an attribute from a model or a plain mapping; missing fields read as None."""
    if isinstance(record, Mapping):
        value = record.get(name)
    else:
        value = getattr(record, name, None)
    if isinstance(value, Enum):
        return value.value
    return value


def _active(equals: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in equals.items() if value is not None and value != ALL}


def _matches_search(record: Any, search: str, fields: Iterable[str]) -> bool:
    needle = search.strip().lower()
    if not needle:
        return True
    for name in fields:
        value = field_value(record, name)
        if value is None:
            continue
        if needle in str(value).lower():
            return True
    return False


def _matches_equals(record: Any, equals: Mapping[str, Any]) -> bool:
    for name, expected in _active(equals).items():
        if isinstance(expected, Enum):
            expected = expected.value
        actual = field_value(record, name)
        if isinstance(actual, (list, tuple, set, frozenset)):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


def _matches_tags(record: Any, tags: Iterable[str]) -> bool:
    wanted = [tag.strip().lower() for tag in tags if tag.strip()]
    if not wanted:
        return True
    record_tags = [tag.lower() for tag in field_value(record, "tags") or ()]
    return any(want in tag for want in wanted for tag in record_tags)


def apply_filters(records: Iterable[T], flt: RecordFilter | None = None) -> list[T]:
    """Return the records matching flt, in input order."""
    if flt is None:
        return list(records)
    return [record for record in records if flt.matches(record)]
