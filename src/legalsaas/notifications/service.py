"""Notification service: per-user inbox with read state and pagination."""

from __future__ import annotations

from math import ceil

import structlog

from src.legalsaas.notifications.schemas import (
    Notification,
    NotificationCreate,
    NotificationPage,
    NotificationType,
    Pagination,
)
from src.legalsaas.pipeline.service import RecordService
from src.legalsaas.pipeline.store import RecordNotFoundError

logger = structlog.get_logger(__name__)

NOTIFICATION_SEARCH_FIELDS = ("title", "message")


class NotificationService(RecordService[Notification]):
    """Notifications listed newest first.

    Every user-facing operation takes the recipient's ``user_id``; a
    notification addressed to someone else reads as not found.
    """

    def __init__(self) -> None:
        super().__init__(
            entity="notification",
            model=Notification,
            search_fields=NOTIFICATION_SEARCH_FIELDS,
            order_by="created_at",
            descending=True,
        )

    def notify(self, tenant_id: str, data: NotificationCreate, actor_id: str | None = None) -> Notification:
        payload = data.model_dump()
        payload["actor_id"] = payload.get("actor_id") or actor_id
        return self.create_record(tenant_id, payload)

    def for_user(
        self,
        tenant_id: str,
        user_id: str,
        *,
        unread_only: bool = False,
        notification_type: NotificationType | str | None = None,
    ) -> list[Notification]:
        flt = self.make_filter(
            user_id=user_id,
            type=notification_type,
            read=False if unread_only else None,
        )
        return self.list_records(tenant_id, flt)

    def page(
        self,
        tenant_id: str,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
        notification_type: NotificationType | str | None = None,
    ) -> NotificationPage:
        """One page of the user's notifications, newest first.

        Args:
            page: 1-based page number; pages past the end are empty.
            limit: Page size.
        """
        matching = self.for_user(
            tenant_id, user_id, unread_only=unread_only, notification_type=notification_type
        )
        total = len(matching)
        total_pages = ceil(total / limit)
        offset = (page - 1) * limit
        return NotificationPage(
            notifications=matching[offset:offset + limit],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=total_pages,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    def unread_count(self, tenant_id: str, user_id: str) -> int:
        return len(self.for_user(tenant_id, user_id, unread_only=True))

    def get_for_user(self, tenant_id: str, user_id: str, notification_id: str) -> Notification:
        """Fetch a notification addressed to user_id.

        Raises:
            RecordNotFoundError: If the id is unknown or addressed to another user.
        """
        notification = self.get_record(tenant_id, notification_id)
        if notification.user_id != user_id:
            raise RecordNotFoundError(self.entity, notification_id)
        return notification

    def mark_read(self, tenant_id: str, user_id: str, notification_id: str) -> Notification:
        notification = self.get_for_user(tenant_id, user_id, notification_id)
        if notification.read:
            return notification
        return self.update_record(tenant_id, notification_id, {"read": True})

    def mark_all_read(self, tenant_id: str, user_id: str) -> int:
        """Mark every unread notification of the user read; returns how many changed."""
        unread = self.for_user(tenant_id, user_id, unread_only=True)
        for notification in unread:
            self.update_record(tenant_id, notification.id, {"read": True})
        logger.info("notification.all_read", tenant_id=tenant_id, user_id=user_id, updated=len(unread))
        return len(unread)

    def delete_for_user(self, tenant_id: str, user_id: str, notification_id: str) -> None:
        self.get_for_user(tenant_id, user_id, notification_id)
        self.delete_record(tenant_id, notification_id)
