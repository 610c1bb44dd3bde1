"""
Timesheet-related Pydantic schemas.

Defines request/response models for weekly timesheets, their entries,
and the submit/approve/reject workflow.
"""
from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from uuid import UUID

from ..database.models import REJECTION_REASON_MAX


def _naive_time(value: Optional[time]) -> Optional[time]:
    if value is not None and value.tzinfo is not None:
        raise ValueError("Time of day must not carry a UTC offset")
    return value


class TimesheetCreateRequest(BaseModel):
    """Timesheet creation request schema."""
    week_start_date: date = Field(..., description="Any date in the week; normalized to Monday")


class TimesheetSubmitRequest(BaseModel):
    """Timesheet submission request schema."""
    comment: Optional[str] = Field(None, max_length=2000, description="Optional note for approvers")


class TimesheetApproveRequest(BaseModel):
    """Timesheet approval request schema."""
    comment: Optional[str] = Field(None, max_length=2000, description="Optional note for the owner")


class TimesheetRejectRequest(BaseModel):
    """Timesheet rejection request schema."""
    reason: Optional[str] = Field(None, max_length=REJECTION_REASON_MAX, description="Rejection reason (required)")


class TimesheetResponse(BaseModel):
    """Timesheet response schema with computed totals."""
    id: UUID = Field(..., description="Timesheet ID")
    organization_id: UUID = Field(..., description="Organization ID")
    user_id: UUID = Field(..., description="Owner user ID")
    week_start_date: date = Field(..., description="Monday of the week")
    week_end_date: date = Field(..., description="Sunday of the week")
    status: str = Field(..., description="Timesheet status")
    submitted_at: Optional[datetime] = Field(None, description="Submission timestamp")
    submission_comment: Optional[str] = Field(None, description="Submission comment")
    approved_at: Optional[datetime] = Field(None, description="Approval timestamp")
    approved_by_id: Optional[UUID] = Field(None, description="Approver user ID")
    rejected_at: Optional[datetime] = Field(None, description="Rejection timestamp")
    rejected_by_id: Optional[UUID] = Field(None, description="Rejecter user ID")
    rejection_reason: Optional[str] = Field(None, description="Rejection reason")
    locked_at: Optional[datetime] = Field(None, description="Lock timestamp")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    total_minutes: int = Field(..., description="Sum of non-deleted entry minutes")
    total_hours: float = Field(..., description="Total minutes / 60, rounded to 2 places")


class TimesheetEntryCreateRequest(BaseModel):
    """Timesheet entry creation request schema."""
    project_id: UUID = Field(..., description="Project ID")
    work_date: date = Field(..., description="Day the work was done")
    start_time: Optional[time] = Field(None, description="Start time of day")
    end_time: Optional[time] = Field(None, description="End time of day")
    duration_minutes: Optional[int] = Field(None, description="Explicit duration; wins over start/end")
    notes: Optional[str] = Field(None, max_length=2000, description="Work notes")

    @field_validator("start_time", "end_time")
    @classmethod
    def times_must_be_naive(cls, value):
        return _naive_time(value)


class TimesheetEntryUpdateRequest(BaseModel):
    """
    Timesheet entry patch schema.

    Omitted fields are left unchanged; ``start_time``, ``end_time`` and
    ``notes`` may be sent as null to clear them.
    """
    project_id: Optional[UUID] = Field(None, description="Project ID")
    work_date: Optional[date] = Field(None, description="Day the work was done")
    start_time: Optional[time] = Field(None, description="Start time of day")
    end_time: Optional[time] = Field(None, description="End time of day")
    duration_minutes: Optional[int] = Field(None, description="Explicit duration")
    notes: Optional[str] = Field(None, max_length=2000, description="Work notes")
    is_deleted: Optional[bool] = Field(None, description="Soft-delete the entry when true")

    @field_validator("start_time", "end_time")
    @classmethod
    def times_must_be_naive(cls, value):
        return _naive_time(value)


class TimesheetEntryResponse(BaseModel):
    """Timesheet entry response schema."""
    id: UUID = Field(..., description="Entry ID")
    organization_id: UUID = Field(..., description="Organization ID")
    timesheet_id: UUID = Field(..., description="Timesheet ID")
    project_id: UUID = Field(..., description="Project ID")
    work_date: date = Field(..., description="Work date")
    start_time: Optional[time] = Field(None, description="Start time")
    end_time: Optional[time] = Field(None, description="End time")
    duration_minutes: int = Field(..., description="Duration in minutes")
    duration_hours: float = Field(..., description="Duration in hours, rounded to 2 places")
    notes: Optional[str] = Field(None, description="Work notes")
    is_deleted: bool = Field(..., description="Soft-delete flag")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
