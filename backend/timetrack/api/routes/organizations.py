"""
Organization management API routes.

Provides endpoints for organization administration and membership
management.
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from uuid import UUID

from ...database.connection import get_db
from ...schemas.organization import (
    OrganizationCreateRequest, OrganizationUpdateRequest, OrganizationResponse,
    MemberAddRequest, MemberUpdateRequest, MemberResponse
)
from ...services import organizations
from ...auth.dependencies import get_current_user, CurrentUser

router = APIRouter(prefix="/organizations", tags=["Organizations"])


# PUBLIC_INTERFACE
@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED,
             summary="Create organization",
             description="Create a new organization. The caller becomes its first Admin.")
async def create_organization(
    request: OrganizationCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return organizations.create_organization(db, current_user.user_id, request)


# PUBLIC_INTERFACE
@router.get("", response_model=List[OrganizationResponse],
            summary="List my organizations",
            description="Active organizations in which the caller is an active member.")
async def list_organizations(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return organizations.list_my_organizations(db, current_user.user_id)


# PUBLIC_INTERFACE
@router.get("/{organization_id}", response_model=OrganizationResponse,
            summary="Get organization")
async def get_organization(
    organization_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return organizations.get_organization(db, current_user.user_id, organization_id)


# PUBLIC_INTERFACE
@router.patch("/{organization_id}", response_model=OrganizationResponse,
              summary="Update organization",
              description="Rename or deactivate an organization (Admin only).")
async def update_organization(
    organization_id: UUID,
    request: OrganizationUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return organizations.update_organization(db, current_user.user_id, organization_id, request)


# PUBLIC_INTERFACE
@router.get("/{organization_id}/members", response_model=List[MemberResponse],
            summary="List members",
            description="All memberships of the organization, including deactivated ones.")
async def list_members(
    organization_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return organizations.list_members(db, current_user.user_id, organization_id)


# PUBLIC_INTERFACE
@router.post("/{organization_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED,
             summary="Add member",
             description="Add a user to the organization or re-activate an existing membership (Admin only).")
async def add_member(
    organization_id: UUID,
    request: MemberAddRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return organizations.add_member(db, current_user.user_id, organization_id, request)


# PUBLIC_INTERFACE
@router.patch("/{organization_id}/members/{member_id}", response_model=MemberResponse,
              summary="Update member",
              description="Change a member's role or deactivate the membership (Admin only).")
async def update_member(
    organization_id: UUID,
    member_id: UUID,
    request: MemberUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return organizations.update_member(db, current_user.user_id, organization_id, member_id, request)
