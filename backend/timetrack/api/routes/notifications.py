"""
Notification API routes.

Provides endpoints for reading the caller's notifications within an
organization and for approver reminders.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from uuid import UUID

from ...database.connection import get_db
from ...schemas.notification import NotificationResponse, MarkReadRequest, MarkReadResponse
from ...services import notifications
from ...auth.dependencies import get_current_user, CurrentUser

router = APIRouter(prefix="/organizations/{organization_id}/notifications", tags=["Notifications"])


# PUBLIC_INTERFACE
@router.get("", response_model=List[NotificationResponse],
            summary="List notifications",
            description="The caller's notifications in the organization, newest first.")
async def list_notifications(
    organization_id: UUID,
    unread_only: bool = Query(False, description="Only return unread notifications"),
    take: Optional[int] = Query(None, description="Maximum number of notifications (1-100, default 25)"),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    items = notifications.list_notifications(db, current_user.user_id, organization_id, unread_only, take)
    return [notifications.to_notification_response(n) for n in items]


# PUBLIC_INTERFACE
@router.post("/mark-read", response_model=MarkReadResponse,
             summary="Mark notifications read",
             description="Mark the given notifications as read. Already-read ones are left untouched.")
async def mark_read(
    organization_id: UUID,
    request: MarkReadRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    updated = notifications.mark_read(db, current_user.user_id, organization_id, request.ids)
    return MarkReadResponse(updated=updated)


# PUBLIC_INTERFACE
@router.post("/mark-all-read", response_model=MarkReadResponse,
             summary="Mark all notifications read")
async def mark_all_read(
    organization_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    updated = notifications.mark_all_read(db, current_user.user_id, organization_id)
    return MarkReadResponse(updated=updated)


# PUBLIC_INTERFACE
@router.post("/reminder", response_model=Optional[NotificationResponse],
             responses={204: {"description": "No reminder was needed"}},
             summary="Create approval reminder",
             description="Remind an Admin/Manager about timesheets pending approval.")
async def create_reminder(
    organization_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create a reminder for the caller if timesheets are waiting for approval.

    Responds with 204 when the caller is not an approver, nothing is
    pending, or an unread reminder was already sent recently.
    """
    reminder = notifications.create_reminder(db, current_user.user_id, organization_id)
    if reminder is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return notifications.to_notification_response(reminder)
