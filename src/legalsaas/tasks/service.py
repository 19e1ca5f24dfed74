"""Task pipeline with completion side effects, subtasks, and task statistics."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

import structlog

from src.legalsaas.pipeline.records import utcnow
from src.legalsaas.pipeline.service import PipelineService
from src.legalsaas.pipeline.store import RecordNotFoundError
from src.legalsaas.tasks.schemas import CANCELLED, COMPLETED, TASK_STAGES, Task, TaskStats

logger = structlog.get_logger(__name__)

TASK_SEARCH_FIELDS = ("title", "description", "client_name")


class TaskService(PipelineService[Task]):
    """Task board keyed by ``status``.

    Moving a task to ``completed`` stamps ``completed_at`` and sets progress
    to 100; moving it anywhere else clears ``completed_at``.
    """

    def __init__(self) -> None:
        super().__init__(
            entity="task",
            model=Task,
            default_stages=TASK_STAGES,
            stage_field="status",
            search_fields=TASK_SEARCH_FIELDS,
        )

    def _prepare_create(self, tenant_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        if payload.get("status") == COMPLETED:
            payload["completed_at"] = utcnow()
            payload["progress"] = 100
        return payload

    def _on_stage_change(self, current: Task, new_stage: str, changes: dict[str, Any]) -> dict[str, Any]:
        if new_stage == COMPLETED:
            changes["completed_at"] = utcnow()
            changes["progress"] = 100
        else:
            changes["completed_at"] = None
        return changes

    def toggle_subtask(self, tenant_id: str, task_id: str, subtask_id: str) -> Task:
        """Flip one subtask's completion; completed_at follows the new state.

        Raises:
            RecordNotFoundError: If the task or the subtask does not exist.
        """
        task = self.get_record(tenant_id, task_id)
        now = utcnow()
        subtasks = []
        found = False
        for subtask in task.subtasks:
            if subtask.id == subtask_id:
                found = True
                done = not subtask.completed
                subtask = subtask.model_copy(update={
                    "completed": done,
                    "completed_at": now if done else None,
                })
            subtasks.append(subtask.model_dump())
        if not found:
            raise RecordNotFoundError("subtask", subtask_id)
        updated = self.model.model_validate({**task.model_dump(), "subtasks": subtasks, "updated_at": now})
        self.store.replace(tenant_id, updated)
        logger.info("task.subtask_toggled", tenant_id=tenant_id, record_id=task_id, subtask_id=subtask_id)
        return updated

    def assignees(self, tenant_id: str) -> list[str]:
        """Distinct assignees, for the assignee filter."""
        return sorted({task.assigned_to for task in self.records(tenant_id) if task.assigned_to})


def _is_overdue(task: Task, now: datetime) -> bool:
    return (
        task.end_date is not None
        and task.end_date < now
        and task.status not in (COMPLETED, CANCELLED)
    )


def task_stats(tasks: Iterable[Task], now: datetime | None = None) -> TaskStats:
    """Counts per stage, overdue tasks, completion rate and mean days to complete.

    Completion rate is the rounded percentage of completed tasks. Average
    completion days is measured from creation to completed_at over the
    completed tasks that carry a completion timestamp.
    """
    now = now or utcnow()
    tasks = list(tasks)
    total = len(tasks)
    completed = [task for task in tasks if task.status == COMPLETED]
    timed = [task for task in completed if task.completed_at is not None]
    average_days = 0
    if timed:
        seconds = sum((task.completed_at - task.created_at).total_seconds() for task in timed)
        average_days = round(seconds / 86400 / len(timed))
    return TaskStats(
        total=total,
        not_started=sum(1 for task in tasks if task.status == "not_started"),
        in_progress=sum(1 for task in tasks if task.status == "in_progress"),
        completed=len(completed),
        overdue=sum(1 for task in tasks if _is_overdue(task, now)),
        completion_rate=round(len(completed) / total * 100) if total else 0,
        average_completion_days=average_days,
    )
