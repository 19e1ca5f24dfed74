"""Base record model and field types shared by every tenant-scoped entity."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, PlainSerializer


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    """Opaque, collision-safe record identifier."""
    return str(uuid.uuid4())


def _as_utc(value: datetime) -> datetime:
    # Naive inputs such as "2025-03-01" are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]

# Exact arithmetic internally, plain JSON numbers on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


class Currency(str, Enum):
    BRL = "BRL"
    USD = "USD"
    EUR = "EUR"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class Record(BaseModel):
    """Fields every stored entity carries."""

    id: str = Field(default_factory=new_record_id)
    tenant_id: str
    tags: list[str] = Field(default_factory=list)
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)


# Keys a create/update payload may never overwrite
PROTECTED_FIELDS = frozenset({"id", "tenant_id", "created_at", "updated_at"})
