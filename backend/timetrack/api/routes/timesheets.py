"""
Timesheet API routes.

Provides endpoints for weekly timesheets, their entries, and the
submit/approve/reject workflow within an organization.
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from uuid import UUID

from ...database.connection import get_db
from ...schemas.timesheet import (
    TimesheetCreateRequest, TimesheetSubmitRequest, TimesheetApproveRequest,
    TimesheetRejectRequest, TimesheetResponse,
    TimesheetEntryCreateRequest, TimesheetEntryUpdateRequest, TimesheetEntryResponse
)
from ...services import entries, timesheets
from ...auth.dependencies import get_current_user, CurrentUser

router = APIRouter(prefix="/organizations/{organization_id}/timesheets", tags=["Timesheets"])


# PUBLIC_INTERFACE
@router.post("", response_model=TimesheetResponse, status_code=status.HTTP_201_CREATED,
             summary="Open weekly timesheet",
             description="Create the caller's timesheet for a week, or return it if it already exists.")
async def create_timesheet(
    organization_id: UUID,
    request: TimesheetCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Open the caller's timesheet for the week containing ``week_start_date``.

    Repeating the call for the same week returns the same timesheet.
    """
    return timesheets.create_timesheet(db, current_user.user_id, organization_id, request.week_start_date)


# PUBLIC_INTERFACE
@router.get("", response_model=List[TimesheetResponse],
            summary="List organization timesheets",
            description="All timesheets in the organization (Admin/Manager only).")
async def list_org_timesheets(
    organization_id: UUID,
    from_week: Optional[date] = Query(None, description="First week (any date in it)"),
    to_week: Optional[date] = Query(None, description="Last week (any date in it)"),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return timesheets.list_org(db, current_user.user_id, organization_id, from_week, to_week)


# PUBLIC_INTERFACE
@router.get("/mine", response_model=List[TimesheetResponse],
            summary="List my timesheets",
            description="The caller's own timesheets with totals, newest week first.")
async def list_my_timesheets(
    organization_id: UUID,
    from_week: Optional[date] = Query(None, description="First week (any date in it)"),
    to_week: Optional[date] = Query(None, description="Last week (any date in it)"),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return timesheets.list_mine(db, current_user.user_id, organization_id, from_week, to_week)


# PUBLIC_INTERFACE
@router.get("/pending-approval", response_model=List[TimesheetResponse],
            summary="List timesheets pending approval",
            description="Submitted timesheets awaiting a decision (Admin/Manager only).")
async def list_pending_approval(
    organization_id: UUID,
    from_week: Optional[date] = Query(None, description="First week (any date in it)"),
    to_week: Optional[date] = Query(None, description="Last week (any date in it)"),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return timesheets.list_pending_approval(db, current_user.user_id, organization_id, from_week, to_week)


# PUBLIC_INTERFACE
@router.get("/{timesheet_id}", response_model=TimesheetResponse,
            summary="Get timesheet",
            description="Visible to the owner and to Admin/Manager members.")
async def get_timesheet(
    organization_id: UUID,
    timesheet_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return timesheets.get_timesheet(db, current_user.user_id, organization_id, timesheet_id)


# PUBLIC_INTERFACE
@router.post("/{timesheet_id}/submit", response_model=TimesheetResponse,
             summary="Submit timesheet",
             description="Submit a Draft or Rejected timesheet with at least one entry.")
async def submit_timesheet(
    organization_id: UUID,
    timesheet_id: UUID,
    request: TimesheetSubmitRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return timesheets.submit_timesheet(db, current_user.user_id, organization_id, timesheet_id, request.comment)


# PUBLIC_INTERFACE
@router.post("/{timesheet_id}/approve", response_model=TimesheetResponse,
             summary="Approve timesheet",
             description="Approve and lock a Submitted timesheet (Admin/Manager only).")
async def approve_timesheet(
    organization_id: UUID,
    timesheet_id: UUID,
    request: TimesheetApproveRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return timesheets.approve_timesheet(db, current_user.user_id, organization_id, timesheet_id, request.comment)


# PUBLIC_INTERFACE
@router.post("/{timesheet_id}/reject", response_model=TimesheetResponse,
             summary="Reject timesheet",
             description="Reject a Submitted timesheet with a reason (Admin/Manager only).")
async def reject_timesheet(
    organization_id: UUID,
    timesheet_id: UUID,
    request: TimesheetRejectRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return timesheets.reject_timesheet(db, current_user.user_id, organization_id, timesheet_id, request.reason)


# Timesheet entries
entries_router = APIRouter(prefix="/{timesheet_id}/entries", tags=["Timesheet Entries"])


# PUBLIC_INTERFACE
@entries_router.get("", response_model=List[TimesheetEntryResponse],
                    summary="List entries",
                    description="Non-deleted entries of a timesheet.")
async def list_entries(
    organization_id: UUID,
    timesheet_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return entries.list_entries(db, current_user.user_id, organization_id, timesheet_id)


# PUBLIC_INTERFACE
@entries_router.post("", response_model=TimesheetEntryResponse, status_code=status.HTTP_201_CREATED,
                     summary="Add entry",
                     description="Add work to an editable timesheet owned by the caller.")
async def create_entry(
    organization_id: UUID,
    timesheet_id: UUID,
    request: TimesheetEntryCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return entries.create_entry(db, current_user.user_id, organization_id, timesheet_id, request)


# PUBLIC_INTERFACE
@entries_router.patch("/{entry_id}", response_model=TimesheetEntryResponse,
                      summary="Update entry",
                      description="Patch an entry; omitted fields are unchanged, nulls clear optional fields.")
async def update_entry(
    organization_id: UUID,
    timesheet_id: UUID,
    entry_id: UUID,
    request: TimesheetEntryUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return entries.update_entry(db, current_user.user_id, organization_id, timesheet_id, entry_id, request)


# PUBLIC_INTERFACE
@entries_router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT,
                       summary="Delete entry",
                       description="Soft-delete an entry.")
async def delete_entry(
    organization_id: UUID,
    timesheet_id: UUID,
    entry_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    entries.delete_entry(db, current_user.user_id, organization_id, timesheet_id, entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


router.include_router(entries_router)
