"""Pydantic models for tasks and subtasks."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.legalsaas.pipeline.records import Priority, Record, UtcDatetime, new_record_id, utcnow
from src.legalsaas.pipeline.stages import Stage

TASK_STAGES: tuple[Stage, ...] = (
    Stage(id="not_started", name="Não Feito", color="red"),
    Stage(id="in_progress", name="Em Progresso", color="yellow"),
    Stage(id="completed", name="Feito", color="green"),
    Stage(id="on_hold", name="Pausado", color="gray"),
    Stage(id="cancelled", name="Cancelado", color="red"),
)

COMPLETED = "completed"
CANCELLED = "cancelled"


class Subtask(BaseModel):
    id: str = Field(default_factory=new_record_id)
    title: str = Field(..., min_length=1, max_length=200)
    completed: bool = False
    created_at: UtcDatetime = Field(default_factory=utcnow)
    completed_at: UtcDatetime | None = None


class SubtaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    completed: bool = False


class Task(Record):
    """Stored task record. ``status`` is the board stage."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    status: str = "not_started"
    priority: Priority = Priority.medium
    assigned_to: str = ""
    project_id: str | None = None
    project_title: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)
    progress: int = Field(default=0, ge=0, le=100)
    completed_at: UtcDatetime | None = None
    notes: str | None = None
    subtasks: list[Subtask] = Field(default_factory=list)


class TaskCreate(BaseModel):
    """Request schema for creating a task."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    status: str = "not_started"
    priority: Priority = Priority.medium
    assigned_to: str = ""
    project_id: str | None = None
    project_title: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    tags: list[str] = Field(default_factory=list)
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)
    progress: int = Field(default=0, ge=0, le=100)
    notes: str | None = None
    subtasks: list[SubtaskCreate] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Request schema for updating a task (all fields optional)."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    status: str | None = None
    priority: Priority | None = None
    assigned_to: str | None = None
    project_id: str | None = None
    project_title: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    tags: list[str] | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)
    progress: int | None = Field(default=None, ge=0, le=100)
    notes: str | None = None


class TaskStats(BaseModel):
    """Task board dashboard figures."""

    total: int = 0
    not_started: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0
    completion_rate: int = 0
    average_completion_days: int = 0
