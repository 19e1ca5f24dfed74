"""Project pipeline factory and portfolio statistics."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from src.legalsaas.pipeline.records import utcnow
from src.legalsaas.pipeline.service import PipelineService
from src.legalsaas.projects.schemas import PROJECT_STAGES, Project, ProjectStats

PROJECT_SEARCH_FIELDS = ("title", "client_name", "description")


def create_project_pipeline() -> PipelineService[Project]:
    """Project board keyed by ``status``; free stage assignment."""
    return PipelineService(
        entity="project",
        model=Project,
        default_stages=PROJECT_STAGES,
        stage_field="status",
        search_fields=PROJECT_SEARCH_FIELDS,
    )


def project_stats(projects: Iterable[Project], now: datetime | None = None) -> ProjectStats:
    """Portfolio figures.

    Args:
        projects: Projects to aggregate.
        now: Reference time for overdue checks (defaults to current UTC time).

    Returns:
        ProjectStats where ``active`` excludes won/lost projects, ``overdue``
        counts active projects past their due date, ``total_revenue`` sums
        won budgets and ``average_progress`` is the rounded mean progress of
        active projects.
    """
    now = now or utcnow()
    projects = list(projects)
    active = [project for project in projects if project.is_active]
    overdue = [
        project for project in active
        if project.due_date is not None and project.due_date < now
    ]
    average = round(sum(project.progress for project in active) / len(active)) if active else 0
    return ProjectStats(
        total=len(projects),
        by_status=dict(Counter(project.status for project in projects)),
        active=len(active),
        overdue=len(overdue),
        total_revenue=sum((project.budget for project in projects if project.status == "won"), Decimal("0")),
        average_progress=average,
    )
