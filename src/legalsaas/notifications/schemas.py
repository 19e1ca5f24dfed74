"""Pydantic models for user notifications."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.legalsaas.pipeline.records import Record


class NotificationType(str, Enum):
    task = "task"
    invoice = "invoice"
    system = "system"
    client = "client"
    project = "project"


class Notification(Record):
    """Stored notification addressed to one user of the tenant."""

    user_id: str
    actor_id: str | None = None
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    link: str | None = None
    read: bool = False
    is_active: bool = True


class NotificationCreate(BaseModel):
    """Request schema for creating a notification; actor_id defaults to the caller."""

    user_id: str
    actor_id: str | None = None
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    link: str | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class NotificationPage(BaseModel):
    notifications: list[Notification]
    pagination: Pagination


class UnreadCount(BaseModel):
    unread_count: int


class MarkAllReadResult(BaseModel):
    updated: int
