"""Notification endpoints: the caller's inbox, unread count and read state.

Listing, marking and deleting only ever touch notifications addressed to
the authenticated user; anyone else's read as 404.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from src.legalsaas.api.deps import get_current_user, get_tenant, get_workspace
from src.legalsaas.api.errors import to_http
from src.legalsaas.auth.schemas import UserAccount
from src.legalsaas.core.tenant import TenantContext
from src.legalsaas.notifications.schemas import (
    MarkAllReadResult,
    Notification,
    NotificationCreate,
    NotificationPage,
    NotificationType,
    UnreadCount,
)
from src.legalsaas.pipeline.store import RecordNotFoundError
from src.legalsaas.workspace import Workspace

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=NotificationPage)
async def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False),
    notification_type: NotificationType | None = Query(default=None, alias="type"),
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return workspace.notifications.page(
        tenant.tenant_id,
        user.id,
        page=page,
        limit=limit,
        unread_only=unread_only,
        notification_type=notification_type,
    )


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return UnreadCount(unread_count=workspace.notifications.unread_count(tenant.tenant_id, user.id))


@router.post("", response_model=Notification, status_code=status.HTTP_201_CREATED)
async def create_notification(
    body: NotificationCreate,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    """Notify a user of the same tenant; the caller is the default actor."""
    recipient = workspace.auth.get_user(body.user_id)
    if recipient is None or recipient.tenant_id != tenant.tenant_id:
        raise to_http(RecordNotFoundError("user", body.user_id))
    return workspace.notifications.notify(tenant.tenant_id, body, actor_id=user.id)


@router.patch("/mark-all-read", response_model=MarkAllReadResult)
async def mark_all_read(
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    return MarkAllReadResult(updated=workspace.notifications.mark_all_read(tenant.tenant_id, user.id))


@router.patch("/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        return workspace.notifications.mark_read(tenant.tenant_id, user.id, notification_id)
    except ValueError as exc:
        raise to_http(exc)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    user: UserAccount = Depends(get_current_user),
    tenant: TenantContext = Depends(get_tenant),
    workspace: Workspace = Depends(get_workspace),
) -> None:
    try:
        workspace.notifications.delete_for_user(tenant.tenant_id, user.id, notification_id)
    except ValueError as exc:
        raise to_http(exc)
