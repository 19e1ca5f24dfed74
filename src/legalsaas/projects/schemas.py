"""Pydantic models for projects (legal matters)."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from src.legalsaas.crm.schemas import DEAL_STAGES
from src.legalsaas.pipeline.records import Currency, Money, Priority, Record, UtcDatetime, new_record_id

# Projects run on the same board as deals
PROJECT_STAGES = DEAL_STAGES

CLOSED_STAGES = frozenset({"won", "lost"})


class ProjectContact(BaseModel):
    id: str = Field(default_factory=new_record_id)
    name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = ""
    role: str = ""


class Project(Record):
    """Stored project record. ``status`` is the board stage."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    client_name: str = ""
    client_id: str | None = None
    organization: str | None = None
    contacts: list[ProjectContact] = Field(default_factory=list)
    address: str = ""
    budget: Money = Decimal("0")
    currency: Currency = Currency.BRL
    status: str = "contacted"
    start_date: UtcDatetime | None = None
    due_date: UtcDatetime | None = None
    assigned_to: list[str] = Field(default_factory=list)
    priority: Priority = Priority.medium
    progress: int = Field(default=0, ge=0, le=100)
    created_by: str | None = None
    notes: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status not in CLOSED_STAGES


class ProjectCreate(BaseModel):
    """Request schema for creating a project."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    client_name: str = ""
    client_id: str | None = None
    organization: str | None = None
    contacts: list[ProjectContact] = Field(default_factory=list)
    address: str = ""
    budget: Decimal = Field(default=Decimal("0"), ge=0)
    currency: Currency = Currency.BRL
    status: str = "contacted"
    start_date: UtcDatetime | None = None
    due_date: UtcDatetime | None = None
    tags: list[str] = Field(default_factory=list)
    assigned_to: list[str] = Field(default_factory=list)
    priority: Priority = Priority.medium
    progress: int = Field(default=0, ge=0, le=100)
    created_by: str | None = None
    notes: str | None = None


class ProjectUpdate(BaseModel):
    """Request schema for updating a project (all fields optional)."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    client_name: str | None = None
    client_id: str | None = None
    organization: str | None = None
    contacts: list[ProjectContact] | None = None
    address: str | None = None
    budget: Decimal | None = Field(default=None, ge=0)
    currency: Currency | None = None
    status: str | None = None
    start_date: UtcDatetime | None = None
    due_date: UtcDatetime | None = None
    tags: list[str] | None = None
    assigned_to: list[str] | None = None
    priority: Priority | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    notes: str | None = None


class ProjectStats(BaseModel):
    """Portfolio figures for the projects dashboard."""

    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    active: int = 0
    overdue: int = 0
    total_revenue: Money = Decimal("0")
    average_progress: int = 0
