"""
Timesheet lifecycle.

State machine::

    Draft -> Submitted -> Approved
                       -> Rejected -> Submitted

Each transition reads the timesheet row for update, checks its guard, writes
the new status with a conditional UPDATE (so a concurrent transition that
already moved the row makes this one fail with ``InvalidStateError``), stages
the notifications, and commits once.
"""
import logging
import os
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database.models import (
    Timesheet, TimesheetEntry, TimesheetStatus, EDITABLE_STATUSES, REJECTION_REASON_MAX, utcnow
)
from ..schemas.timesheet import TimesheetResponse
from . import notifications
from .entries import entry_totals, minutes_to_hours
from .errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from .membership import require_membership, require_approver, is_approver

logger = logging.getLogger(__name__)

LOCK_ON_SUBMIT = os.getenv("TIMESHEET_LOCK_ON_SUBMIT", "false").lower() == "true"


def normalize_to_week_start(value: date) -> date:
    """Monday of the week containing ``value`` (Sunday belongs to the week before)."""
    return value - timedelta(days=value.weekday())


def week_end_for(week_start: date) -> date:
    return week_start + timedelta(days=6)


def to_response(timesheet: Timesheet, total_minutes: int) -> TimesheetResponse:
    return TimesheetResponse(
        id=timesheet.id,
        organization_id=timesheet.organization_id,
        user_id=timesheet.user_id,
        week_start_date=timesheet.week_start_date,
        week_end_date=timesheet.week_end_date,
        status=timesheet.status.value,
        submitted_at=timesheet.submitted_at,
        submission_comment=timesheet.submission_comment,
        approved_at=timesheet.approved_at,
        approved_by_id=timesheet.approved_by_id,
        rejected_at=timesheet.rejected_at,
        rejected_by_id=timesheet.rejected_by_id,
        rejection_reason=timesheet.rejection_reason,
        locked_at=timesheet.locked_at,
        created_at=timesheet.created_at,
        updated_at=timesheet.updated_at,
        total_minutes=total_minutes,
        total_hours=minutes_to_hours(total_minutes),
    )


def build_response(db: Session, timesheet: Timesheet) -> TimesheetResponse:
    return to_response(timesheet, entry_totals(db, [timesheet.id]).get(timesheet.id, 0))


def _build_list(db: Session, items: List[Timesheet]) -> List[TimesheetResponse]:
    totals = entry_totals(db, [t.id for t in items])
    return [to_response(t, totals.get(t.id, 0)) for t in items]


def _apply_week_range(query, from_week: Optional[date], to_week: Optional[date]):
    if from_week is not None:
        query = query.filter(Timesheet.week_start_date >= normalize_to_week_start(from_week))
    if to_week is not None:
        query = query.filter(Timesheet.week_start_date <= normalize_to_week_start(to_week))
    return query


def _find_week(db: Session, organization_id: UUID, user_id: UUID, week_start: date) -> Optional[Timesheet]:
    return db.query(Timesheet).filter(
        Timesheet.organization_id == organization_id,
        Timesheet.user_id == user_id,
        Timesheet.week_start_date == week_start
    ).first()


def _load_for_update(db: Session, organization_id: UUID, timesheet_id: UUID) -> Timesheet:
    timesheet = db.query(Timesheet).filter(
        Timesheet.id == timesheet_id,
        Timesheet.organization_id == organization_id
    ).with_for_update().first()
    if timesheet is None:
        raise NotFoundError("Timesheet not found.", code="timesheet_not_found")
    return timesheet


def _require_status(timesheet: Timesheet, allowed: Iterable[TimesheetStatus], action: str) -> None:
    allowed = tuple(allowed)
    if timesheet.status not in allowed:
        expected = " or ".join(s.value.capitalize() for s in allowed)
        raise InvalidStateError(
            f"Only {expected} timesheets can be {action}; this one is {timesheet.status.value.capitalize()}."
        )


def _transition(db: Session, timesheet: Timesheet, expected: Iterable[TimesheetStatus], values: Dict) -> None:
    """
    Conditionally write ``values`` while the row is still in an ``expected`` status.

    Raises ``InvalidStateError`` when a concurrent transaction already moved it.
    """
    updated = db.query(Timesheet).filter(
        Timesheet.id == timesheet.id,
        Timesheet.status.in_(tuple(expected))
    ).update(values, synchronize_session="fetch")
    if updated != 1:
        db.rollback()
        raise InvalidStateError("Timesheet is no longer in the expected state.", code="stale_state")


# PUBLIC_INTERFACE
def create_timesheet(db: Session, actor_user_id: UUID, organization_id: UUID,
                     week_start_date: date) -> TimesheetResponse:
    """
    Open the caller's timesheet for the week containing ``week_start_date``.

    Idempotent: an existing timesheet for the same organization, user and
    week is returned unchanged, including when a concurrent request inserted
    it first.
    """
    require_membership(db, actor_user_id, organization_id)

    week_start = normalize_to_week_start(week_start_date)
    existing = _find_week(db, organization_id, actor_user_id, week_start)
    if existing is not None:
        return build_response(db, existing)

    now = utcnow()
    timesheet = Timesheet(
        organization_id=organization_id,
        user_id=actor_user_id,
        week_start_date=week_start,
        week_end_date=week_end_for(week_start),
        status=TimesheetStatus.DRAFT,
        created_at=now,
        updated_at=now,
    )
    db.add(timesheet)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = _find_week(db, organization_id, actor_user_id, week_start)
        if existing is None:
            raise
        logger.info("Concurrent create for week %s resolved to timesheet %s", week_start, existing.id)
        return build_response(db, existing)

    db.refresh(timesheet)
    logger.info("Timesheet %s created for user %s week %s", timesheet.id, actor_user_id, week_start)
    return to_response(timesheet, 0)


# PUBLIC_INTERFACE
def list_mine(db: Session, actor_user_id: UUID, organization_id: UUID,
              from_week: Optional[date] = None, to_week: Optional[date] = None) -> List[TimesheetResponse]:
    require_membership(db, actor_user_id, organization_id)

    query = db.query(Timesheet).filter(
        Timesheet.organization_id == organization_id,
        Timesheet.user_id == actor_user_id
    )
    query = _apply_week_range(query, from_week, to_week)
    return _build_list(db, query.order_by(Timesheet.week_start_date.desc()).all())


# PUBLIC_INTERFACE
def list_org(db: Session, actor_user_id: UUID, organization_id: UUID,
             from_week: Optional[date] = None, to_week: Optional[date] = None) -> List[TimesheetResponse]:
    """All timesheets of the organization (Admin/Manager only)."""
    require_approver(db, actor_user_id, organization_id)

    query = db.query(Timesheet).filter(Timesheet.organization_id == organization_id)
    query = _apply_week_range(query, from_week, to_week)
    items = query.order_by(Timesheet.week_start_date.desc(), Timesheet.user_id).all()
    return _build_list(db, items)


# PUBLIC_INTERFACE
def list_pending_approval(db: Session, actor_user_id: UUID, organization_id: UUID,
                          from_week: Optional[date] = None,
                          to_week: Optional[date] = None) -> List[TimesheetResponse]:
    """Submitted timesheets awaiting a decision, oldest week first (Admin/Manager only)."""
    require_approver(db, actor_user_id, organization_id)

    query = db.query(Timesheet).filter(
        Timesheet.organization_id == organization_id,
        Timesheet.status == TimesheetStatus.SUBMITTED
    )
    query = _apply_week_range(query, from_week, to_week)
    items = query.order_by(Timesheet.week_start_date, Timesheet.submitted_at).all()
    return _build_list(db, items)


# PUBLIC_INTERFACE
def get_timesheet(db: Session, actor_user_id: UUID, organization_id: UUID,
                  timesheet_id: UUID) -> TimesheetResponse:
    """Fetch one timesheet; visible to its owner and to Admin/Manager members."""
    membership = require_membership(db, actor_user_id, organization_id)

    timesheet = db.query(Timesheet).filter(
        Timesheet.id == timesheet_id,
        Timesheet.organization_id == organization_id
    ).first()
    if timesheet is None or (timesheet.user_id != actor_user_id and not is_approver(membership)):
        raise NotFoundError("Timesheet not found.", code="timesheet_not_found")

    return build_response(db, timesheet)


# PUBLIC_INTERFACE
def submit_timesheet(db: Session, actor_user_id: UUID, organization_id: UUID, timesheet_id: UUID,
                     comment: Optional[str] = None, lock_on_submit: Optional[bool] = None) -> TimesheetResponse:
    """
    Submit the caller's own timesheet for approval.

    Allowed from Draft or Rejected with at least one non-deleted entry.
    Approvers other than the submitter are notified.
    """
    if lock_on_submit is None:
        lock_on_submit = LOCK_ON_SUBMIT

    require_membership(db, actor_user_id, organization_id)
    timesheet = _load_for_update(db, organization_id, timesheet_id)

    if timesheet.user_id != actor_user_id:
        raise ForbiddenError("Only the owner can submit this timesheet.", code="not_owner")

    _require_status(timesheet, EDITABLE_STATUSES, "submitted")

    has_entries = db.query(TimesheetEntry.id).filter(
        TimesheetEntry.timesheet_id == timesheet.id,
        TimesheetEntry.is_deleted == False
    ).first() is not None
    if not has_entries:
        raise ValidationError("Cannot submit an empty timesheet.", code="empty_timesheet")

    now = utcnow()
    values = {
        Timesheet.status: TimesheetStatus.SUBMITTED,
        Timesheet.submitted_at: now,
        Timesheet.submission_comment: comment.strip() if comment and comment.strip() else None,
        Timesheet.updated_at: now,
    }
    if lock_on_submit:
        values[Timesheet.locked_at] = now
    _transition(db, timesheet, EDITABLE_STATUSES, values)

    notifications.notify_submitted(db, actor_user_id, timesheet)
    db.commit()
    db.refresh(timesheet)

    logger.info("Timesheet %s submitted by %s", timesheet.id, actor_user_id)
    return build_response(db, timesheet)


# PUBLIC_INTERFACE
def approve_timesheet(db: Session, actor_user_id: UUID, organization_id: UUID, timesheet_id: UUID,
                      comment: Optional[str] = None) -> TimesheetResponse:
    """Approve a Submitted timesheet, lock it, and notify its owner."""
    require_approver(db, actor_user_id, organization_id, "Only Admin or Manager members can approve timesheets.")
    timesheet = _load_for_update(db, organization_id, timesheet_id)
    _require_status(timesheet, [TimesheetStatus.SUBMITTED], "approved")

    now = utcnow()
    _transition(db, timesheet, [TimesheetStatus.SUBMITTED], {
        Timesheet.status: TimesheetStatus.APPROVED,
        Timesheet.approved_at: now,
        Timesheet.approved_by_id: actor_user_id,
        Timesheet.rejected_at: None,
        Timesheet.rejected_by_id: None,
        Timesheet.rejection_reason: None,
        Timesheet.locked_at: now,
        Timesheet.updated_at: now,
    })

    notifications.notify_approved(db, actor_user_id, timesheet, comment)
    db.commit()
    db.refresh(timesheet)

    logger.info("Timesheet %s approved by %s", timesheet.id, actor_user_id)
    return build_response(db, timesheet)


# PUBLIC_INTERFACE
def reject_timesheet(db: Session, actor_user_id: UUID, organization_id: UUID, timesheet_id: UUID,
                     reason: Optional[str]) -> TimesheetResponse:
    """Reject a Submitted timesheet with a reason, unlock it, and notify its owner."""
    require_approver(db, actor_user_id, organization_id, "Only Admin or Manager members can reject timesheets.")

    if reason is None or not reason.strip():
        raise ValidationError.for_field("reason", "Rejection reason is required.", code="reason_required")
    reason = reason.strip()
    if len(reason) > REJECTION_REASON_MAX:
        raise ValidationError.for_field(
            "reason", f"Rejection reason must be at most {REJECTION_REASON_MAX} characters.", code="reason_too_long")

    timesheet = _load_for_update(db, organization_id, timesheet_id)
    _require_status(timesheet, [TimesheetStatus.SUBMITTED], "rejected")

    now = utcnow()
    _transition(db, timesheet, [TimesheetStatus.SUBMITTED], {
        Timesheet.status: TimesheetStatus.REJECTED,
        Timesheet.rejected_at: now,
        Timesheet.rejected_by_id: actor_user_id,
        Timesheet.rejection_reason: reason,
        Timesheet.approved_at: None,
        Timesheet.approved_by_id: None,
        Timesheet.locked_at: None,
        Timesheet.updated_at: now,
    })

    notifications.notify_rejected(db, actor_user_id, timesheet, reason)
    db.commit()
    db.refresh(timesheet)

    logger.info("Timesheet %s rejected by %s", timesheet.id, actor_user_id)
    return build_response(db, timesheet)
