"""
Notification-related Pydantic schemas.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field
from uuid import UUID


class NotificationResponse(BaseModel):
    """Notification response schema."""
    id: UUID = Field(..., description="Notification ID")
    organization_id: UUID = Field(..., description="Organization ID")
    recipient_user_id: UUID = Field(..., description="Recipient user ID")
    actor_user_id: Optional[UUID] = Field(None, description="User who triggered the notification")
    timesheet_id: Optional[UUID] = Field(None, description="Related timesheet ID")
    type: str = Field(..., description="Notification type")
    title: str = Field(..., description="Title")
    message: str = Field(..., description="Message body")
    created_at: datetime = Field(..., description="Creation timestamp")
    read_at: Optional[datetime] = Field(None, description="Read timestamp")
    is_read: bool = Field(..., description="Whether the notification has been read")


class MarkReadRequest(BaseModel):
    """Mark-read request schema."""
    ids: List[UUID] = Field(default_factory=list, description="Notification IDs to mark as read")


class MarkReadResponse(BaseModel):
    """Number of notifications that changed from unread to read."""
    updated: int = Field(..., description="Count of notifications marked read")
