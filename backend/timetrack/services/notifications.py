"""
Notification dispatcher.

Lifecycle transitions call the ``notify_*`` functions, which stage one
notification row per recipient on the caller's session. They never commit:
the rows land in the same transaction as the status change that caused them.
"""
import logging
import os
from datetime import timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..database.models import (
    Notification, NotificationType, OrganizationMember, Timesheet, TimesheetStatus, User,
    APPROVER_ROLES, NOTIFICATION_TITLE_MAX, NOTIFICATION_MESSAGE_MAX, utcnow
)
from ..schemas.notification import NotificationResponse
from .membership import require_membership, is_approver

logger = logging.getLogger(__name__)

DEFAULT_TAKE = 25
MAX_TAKE = 100
REMINDER_WINDOW_HOURS = int(os.getenv("REMINDER_WINDOW_HOURS", "12"))


def _truncate(value: str, limit: int) -> str:
    return value if len(value) <= limit else value[:limit]


def to_notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        organization_id=notification.organization_id,
        recipient_user_id=notification.recipient_user_id,
        actor_user_id=notification.actor_user_id,
        timesheet_id=notification.timesheet_id,
        type=notification.type.value,
        title=notification.title,
        message=notification.message,
        created_at=notification.created_at,
        read_at=notification.read_at,
        is_read=notification.is_read,
    )


def clamp_take(take: Optional[int]) -> int:
    """Page size for listing: default when unset or non-positive, capped at ``MAX_TAKE``."""
    if take is None or take <= 0:
        return DEFAULT_TAKE
    return min(take, MAX_TAKE)


def dispatch(
    db: Session,
    notification_type: NotificationType,
    organization_id: UUID,
    recipients: Iterable[UUID],
    title: str,
    message: str,
    actor_user_id: Optional[UUID] = None,
    timesheet_id: Optional[UUID] = None,
) -> List[Notification]:
    """Stage one notification per distinct recipient. An empty recipient set is a no-op."""
    now = utcnow()
    title = _truncate(title, NOTIFICATION_TITLE_MAX)
    message = _truncate(message, NOTIFICATION_MESSAGE_MAX)

    created = []
    seen = set()
    for recipient_id in recipients:
        if recipient_id in seen:
            continue
        seen.add(recipient_id)
        notification = Notification(
            organization_id=organization_id,
            recipient_user_id=recipient_id,
            actor_user_id=actor_user_id,
            timesheet_id=timesheet_id,
            type=notification_type,
            title=title,
            message=message,
            created_at=now,
        )
        db.add(notification)
        created.append(notification)

    logger.info(
        "Staged %d %s notification(s) in organization %s",
        len(created), notification_type.value, organization_id
    )
    return created


def approver_recipients(db: Session, organization_id: UUID, exclude_user_id: Optional[UUID] = None) -> List[UUID]:
    """Active Admin/Manager members of the organization, minus ``exclude_user_id``."""
    rows = db.query(OrganizationMember.user_id).filter(
        OrganizationMember.organization_id == organization_id,
        OrganizationMember.active == True,
        OrganizationMember.role.in_(APPROVER_ROLES)
    ).all()
    return [user_id for (user_id,) in rows if user_id != exclude_user_id]


def _actor_name(db: Session, user_id: UUID) -> str:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.display_name:
        return "An employee"
    return user.display_name


def notify_submitted(db: Session, actor_user_id: UUID, timesheet: Timesheet) -> List[Notification]:
    recipients = approver_recipients(db, timesheet.organization_id, exclude_user_id=actor_user_id)
    week = timesheet.week_start_date.isoformat()
    return dispatch(
        db, NotificationType.TIMESHEET_SUBMITTED, timesheet.organization_id, recipients,
        title="Timesheet submitted",
        message=f"{_actor_name(db, actor_user_id)} submitted a timesheet for the week starting {week}.",
        actor_user_id=actor_user_id,
        timesheet_id=timesheet.id,
    )


def notify_approved(db: Session, actor_user_id: UUID, timesheet: Timesheet,
                    comment: Optional[str] = None) -> List[Notification]:
    week = timesheet.week_start_date.isoformat()
    message = f"Your timesheet for the week starting {week} was approved."
    if comment and comment.strip():
        message = f"{message} Comment: {comment.strip()}"
    return dispatch(
        db, NotificationType.TIMESHEET_APPROVED, timesheet.organization_id, [timesheet.user_id],
        title="Timesheet approved",
        message=message,
        actor_user_id=actor_user_id,
        timesheet_id=timesheet.id,
    )


def notify_rejected(db: Session, actor_user_id: UUID, timesheet: Timesheet, reason: str) -> List[Notification]:
    week = timesheet.week_start_date.isoformat()
    cleaned = reason.strip() if reason and reason.strip() else "No reason provided."
    return dispatch(
        db, NotificationType.TIMESHEET_REJECTED, timesheet.organization_id, [timesheet.user_id],
        title="Timesheet rejected",
        message=f"Your timesheet for the week starting {week} was rejected. Reason: {cleaned}",
        actor_user_id=actor_user_id,
        timesheet_id=timesheet.id,
    )


def list_notifications(db: Session, actor_user_id: UUID, organization_id: UUID,
                       unread_only: bool = False, take: Optional[int] = None) -> List[Notification]:
    """List the caller's notifications in an organization, newest first."""
    require_membership(db, actor_user_id, organization_id)

    query = db.query(Notification).filter(
        Notification.organization_id == organization_id,
        Notification.recipient_user_id == actor_user_id
    )
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))

    return query.order_by(Notification.created_at.desc(), Notification.id).limit(clamp_take(take)).all()


def mark_read(db: Session, actor_user_id: UUID, organization_id: UUID, ids: Iterable[UUID]) -> int:
    """
    Mark the caller's notifications as read.

    Already-read notifications keep their original ``read_at``. Ids that
    belong to someone else or to another organization are ignored.

    Returns:
        int: number of notifications that changed from unread to read
    """
    require_membership(db, actor_user_id, organization_id)

    ids = list(set(ids or []))
    if not ids:
        return 0

    items = db.query(Notification).filter(
        Notification.organization_id == organization_id,
        Notification.recipient_user_id == actor_user_id,
        Notification.id.in_(ids),
        Notification.read_at.is_(None)
    ).all()

    now = utcnow()
    for notification in items:
        notification.read_at = now

    if items:
        db.commit()
    return len(items)


def mark_all_read(db: Session, actor_user_id: UUID, organization_id: UUID) -> int:
    """Mark every unread notification of the caller in the organization as read."""
    require_membership(db, actor_user_id, organization_id)

    items = db.query(Notification).filter(
        Notification.organization_id == organization_id,
        Notification.recipient_user_id == actor_user_id,
        Notification.read_at.is_(None)
    ).all()

    now = utcnow()
    for notification in items:
        notification.read_at = now

    if items:
        db.commit()
    return len(items)


def create_reminder(db: Session, actor_user_id: UUID, organization_id: UUID) -> Optional[Notification]:
    """
    Remind an approver about timesheets waiting for approval.

    Returns ``None`` for non-approvers, when nothing is pending, or when an
    unread reminder was already created within the reminder window.
    """
    membership = require_membership(db, actor_user_id, organization_id)
    if not is_approver(membership):
        return None

    pending = db.query(Timesheet).filter(
        Timesheet.organization_id == organization_id,
        Timesheet.status == TimesheetStatus.SUBMITTED
    ).count()
    if pending <= 0:
        return None

    window_start = utcnow() - timedelta(hours=REMINDER_WINDOW_HOURS)
    recent = db.query(Notification).filter(
        Notification.organization_id == organization_id,
        Notification.recipient_user_id == actor_user_id,
        Notification.type == NotificationType.REMINDER,
        Notification.read_at.is_(None),
        Notification.created_at >= window_start
    ).first()
    if recent is not None:
        return None

    (reminder,) = dispatch(
        db, NotificationType.REMINDER, organization_id, [actor_user_id],
        title="Timesheets awaiting approval",
        message=f"You have {pending} timesheet(s) pending approval.",
    )
    db.commit()
    db.refresh(reminder)
    return reminder
