"""
Timesheet entry validation, duration calculation and CRUD.

Entries may only be changed by the timesheet owner while the timesheet is
editable (Draft or Rejected, and not locked). Every mutation stamps the
parent timesheet's ``updated_at`` and commits once.
"""
import logging
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database.models import (
    Project, Timesheet, TimesheetEntry, EDITABLE_STATUSES, utcnow
)
from ..schemas.common import NOT_PROVIDED, patch_value, is_provided
from ..schemas.timesheet import (
    TimesheetEntryCreateRequest, TimesheetEntryUpdateRequest, TimesheetEntryResponse
)
from .errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from .membership import require_membership, is_approver

logger = logging.getLogger(__name__)


def minutes_to_hours(minutes: int) -> float:
    return round(minutes / 60, 2)


def compute_duration_minutes(start: Optional[time], end: Optional[time],
                             duration_minutes: Optional[int]) -> int:
    """
    Resolve an entry's duration.

    An explicit duration wins and must be positive. Otherwise both start and
    end are required and end must be strictly after start on the same day.
    """
    if duration_minutes is not None:
        if duration_minutes <= 0:
            raise ValidationError.for_field(
                "duration_minutes", "Duration must be greater than 0.", code="invalid_duration")
        return duration_minutes

    if start is None or end is None:
        raise ValidationError(
            "Provide either duration_minutes, or both start_time and end_time.",
            {
                "start_time": ["Required when duration_minutes is not provided."],
                "end_time": ["Required when duration_minutes is not provided."],
            },
            code="duration_required",
        )

    for field, value in (("start_time", start), ("end_time", end)):
        if value.tzinfo is not None:
            raise ValidationError.for_field(field, "Time of day must not carry a UTC offset.", code="invalid_time")

    if end <= start:
        raise ValidationError.for_field("end_time", "End time must be after start time.", code="invalid_time_range")

    delta = datetime.combine(date.min, end) - datetime.combine(date.min, start)
    minutes = int(delta.total_seconds() // 60)
    if minutes <= 0:
        raise ValidationError.for_field(
            "end_time", "Calculated duration must be greater than 0.", code="invalid_duration")
    return minutes


def validate_work_date(timesheet: Timesheet, work_date: date) -> None:
    if work_date < timesheet.week_start_date or work_date > timesheet.week_end_date:
        raise ValidationError.for_field(
            "work_date",
            f"Work date must fall within the timesheet week "
            f"({timesheet.week_start_date.isoformat()} to {timesheet.week_end_date.isoformat()}).",
            code="work_date_out_of_range",
        )


def validate_project(db: Session, organization_id: UUID, project_id: UUID) -> None:
    """
    Require an active project of the same organization.

    A project from another organization is reported exactly like an inactive
    one so that callers cannot probe other tenants' project ids.
    """
    exists = db.query(Project.id).filter(
        Project.id == project_id,
        Project.organization_id == organization_id,
        Project.active == True
    ).first()
    if exists is None:
        raise ValidationError.for_field(
            "project_id", "Project does not belong to this organization or is inactive.", code="invalid_project")


def ensure_editable(timesheet: Timesheet) -> None:
    if timesheet.status not in EDITABLE_STATUSES or timesheet.locked_at is not None:
        raise InvalidStateError(
            f"Timesheet is not editable in status '{timesheet.status.value}'.", code="timesheet_not_editable")


def entry_totals(db: Session, timesheet_ids: Iterable[UUID]) -> Dict[UUID, int]:
    """Sum of non-deleted entry minutes per timesheet id."""
    ids = list(timesheet_ids)
    if not ids:
        return {}
    rows = db.query(TimesheetEntry.timesheet_id, func.sum(TimesheetEntry.duration_minutes)).filter(
        TimesheetEntry.timesheet_id.in_(ids),
        TimesheetEntry.is_deleted == False
    ).group_by(TimesheetEntry.timesheet_id).all()
    return {timesheet_id: int(total or 0) for timesheet_id, total in rows}


def to_entry_response(entry: TimesheetEntry) -> TimesheetEntryResponse:
    return TimesheetEntryResponse(
        id=entry.id,
        organization_id=entry.organization_id,
        timesheet_id=entry.timesheet_id,
        project_id=entry.project_id,
        work_date=entry.work_date,
        start_time=entry.start_time,
        end_time=entry.end_time,
        duration_minutes=entry.duration_minutes,
        duration_hours=minutes_to_hours(entry.duration_minutes),
        notes=entry.notes,
        is_deleted=entry.is_deleted,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def _clean_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None or not notes.strip():
        return None
    return notes.strip()


def _load_owned_timesheet(db: Session, actor_user_id: UUID, organization_id: UUID,
                          timesheet_id: UUID) -> Timesheet:
    require_membership(db, actor_user_id, organization_id)

    timesheet = db.query(Timesheet).filter(
        Timesheet.id == timesheet_id,
        Timesheet.organization_id == organization_id
    ).with_for_update().first()
    if timesheet is None:
        raise NotFoundError("Timesheet not found.", code="timesheet_not_found")

    if timesheet.user_id != actor_user_id:
        raise ForbiddenError("Only the owner can edit this timesheet.", code="not_owner")

    ensure_editable(timesheet)
    return timesheet


def _load_entry(db: Session, organization_id: UUID, timesheet_id: UUID, entry_id: UUID) -> TimesheetEntry:
    entry = db.query(TimesheetEntry).filter(
        TimesheetEntry.id == entry_id,
        TimesheetEntry.organization_id == organization_id,
        TimesheetEntry.timesheet_id == timesheet_id,
        TimesheetEntry.is_deleted == False
    ).first()
    if entry is None:
        raise NotFoundError("Timesheet entry not found.", code="entry_not_found")
    return entry


def list_entries(db: Session, actor_user_id: UUID, organization_id: UUID,
                 timesheet_id: UUID) -> List[TimesheetEntryResponse]:
    """Non-deleted entries of a timesheet, visible to its owner and to approvers."""
    membership = require_membership(db, actor_user_id, organization_id)

    timesheet = db.query(Timesheet).filter(
        Timesheet.id == timesheet_id,
        Timesheet.organization_id == organization_id
    ).first()
    if timesheet is None or (timesheet.user_id != actor_user_id and not is_approver(membership)):
        raise NotFoundError("Timesheet not found.", code="timesheet_not_found")

    entries = db.query(TimesheetEntry).filter(
        TimesheetEntry.organization_id == organization_id,
        TimesheetEntry.timesheet_id == timesheet_id,
        TimesheetEntry.is_deleted == False
    ).order_by(TimesheetEntry.work_date, TimesheetEntry.start_time, TimesheetEntry.created_at).all()

    return [to_entry_response(entry) for entry in entries]


def create_entry(db: Session, actor_user_id: UUID, organization_id: UUID, timesheet_id: UUID,
                 request: TimesheetEntryCreateRequest) -> TimesheetEntryResponse:
    timesheet = _load_owned_timesheet(db, actor_user_id, organization_id, timesheet_id)

    validate_work_date(timesheet, request.work_date)
    validate_project(db, organization_id, request.project_id)
    duration = compute_duration_minutes(request.start_time, request.end_time, request.duration_minutes)

    now = utcnow()
    entry = TimesheetEntry(
        organization_id=organization_id,
        timesheet_id=timesheet.id,
        project_id=request.project_id,
        work_date=request.work_date,
        start_time=request.start_time,
        end_time=request.end_time,
        duration_minutes=duration,
        notes=_clean_notes(request.notes),
        is_deleted=False,
        created_at=now,
        updated_at=now,
    )
    db.add(entry)
    timesheet.updated_at = now

    db.commit()
    db.refresh(entry)
    logger.info("Entry %s (%d min) added to timesheet %s", entry.id, duration, timesheet.id)
    return to_entry_response(entry)


def update_entry(db: Session, actor_user_id: UUID, organization_id: UUID, timesheet_id: UUID,
                 entry_id: UUID, request: TimesheetEntryUpdateRequest) -> TimesheetEntryResponse:
    """
    Patch an entry.

    ``is_deleted=true`` soft-deletes the entry and ignores every other field.
    Duration is recomputed when any of start, end or duration is provided.
    """
    timesheet = _load_owned_timesheet(db, actor_user_id, organization_id, timesheet_id)
    entry = _load_entry(db, organization_id, timesheet_id, entry_id)
    now = utcnow()

    if request.is_deleted:
        entry.is_deleted = True
        entry.updated_at = now
        timesheet.updated_at = now
        db.commit()
        db.refresh(entry)
        logger.info("Entry %s soft-deleted from timesheet %s", entry.id, timesheet.id)
        return to_entry_response(entry)

    work_date = patch_value(request, "work_date")
    if is_provided(work_date):
        if work_date is None:
            raise ValidationError.for_field("work_date", "Work date cannot be cleared.", code="work_date_required")
        validate_work_date(timesheet, work_date)
        entry.work_date = work_date

    project_id = patch_value(request, "project_id")
    if is_provided(project_id):
        if project_id is None:
            raise ValidationError.for_field("project_id", "Project cannot be cleared.", code="project_required")
        validate_project(db, organization_id, project_id)
        entry.project_id = project_id

    notes = patch_value(request, "notes")
    if is_provided(notes):
        entry.notes = _clean_notes(notes)

    start_time = patch_value(request, "start_time")
    end_time = patch_value(request, "end_time")
    duration = patch_value(request, "duration_minutes")

    if is_provided(start_time):
        entry.start_time = start_time
    if is_provided(end_time):
        entry.end_time = end_time

    if is_provided(start_time) or is_provided(end_time) or is_provided(duration):
        entry.duration_minutes = compute_duration_minutes(
            entry.start_time, entry.end_time, duration if duration is not NOT_PROVIDED else None
        )

    entry.updated_at = now
    timesheet.updated_at = now

    db.commit()
    db.refresh(entry)
    return to_entry_response(entry)


def delete_entry(db: Session, actor_user_id: UUID, organization_id: UUID, timesheet_id: UUID,
                 entry_id: UUID) -> None:
    """Soft-delete an entry; it stops counting towards totals and listings."""
    timesheet = _load_owned_timesheet(db, actor_user_id, organization_id, timesheet_id)
    entry = _load_entry(db, organization_id, timesheet_id, entry_id)

    now = utcnow()
    entry.is_deleted = True
    entry.updated_at = now
    timesheet.updated_at = now

    db.commit()
    logger.info("Entry %s soft-deleted from timesheet %s", entry.id, timesheet.id)
