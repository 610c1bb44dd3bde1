"""
Project management API routes.

Provides endpoints for the project catalogue of an organization and for
assigning members to projects.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from uuid import UUID

from ...database.connection import get_db
from ...schemas.organization import (
    ProjectCreateRequest, ProjectUpdateRequest, ProjectResponse,
    ProjectAssignRequest, ProjectAssignmentResponse
)
from ...services import projects
from ...auth.dependencies import get_current_user, CurrentUser

router = APIRouter(prefix="/organizations/{organization_id}/projects", tags=["Projects"])


# PUBLIC_INTERFACE
@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED,
             summary="Create project",
             description="Create a new project in the organization (Admin/Manager only).")
async def create_project(
    organization_id: UUID,
    request: ProjectCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return projects.create_project(db, current_user.user_id, organization_id, request)


# PUBLIC_INTERFACE
@router.get("", response_model=List[ProjectResponse],
            summary="List projects",
            description="Projects of the organization, optionally filtered by active status.")
async def list_projects(
    organization_id: UUID,
    active: Optional[bool] = Query(None, description="Filter by active status"),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return projects.list_projects(db, current_user.user_id, organization_id, active)


# PUBLIC_INTERFACE
@router.get("/{project_id}", response_model=ProjectResponse,
            summary="Get project")
async def get_project(
    organization_id: UUID,
    project_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return projects.get_project(db, current_user.user_id, organization_id, project_id)


# PUBLIC_INTERFACE
@router.patch("/{project_id}", response_model=ProjectResponse,
              summary="Update project",
              description="Update a project (Admin/Manager only). Null clears code or description.")
async def update_project(
    organization_id: UUID,
    project_id: UUID,
    request: ProjectUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return projects.update_project(db, current_user.user_id, organization_id, project_id, request)


# PUBLIC_INTERFACE
@router.get("/{project_id}/assignments", response_model=List[ProjectAssignmentResponse],
            summary="List project assignments",
            description="Members assigned to the project, oldest assignment first.")
async def list_assignments(
    organization_id: UUID,
    project_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return projects.list_assignments(db, current_user.user_id, organization_id, project_id)


# PUBLIC_INTERFACE
@router.post("/{project_id}/assignments", response_model=ProjectAssignmentResponse,
             summary="Assign member to project",
             description="Assign an active member to the project (Admin/Manager only). "
                         "Re-assigning returns the existing assignment.")
async def assign_user(
    organization_id: UUID,
    project_id: UUID,
    request: ProjectAssignRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return projects.assign_user(db, current_user.user_id, organization_id, project_id, request)


# PUBLIC_INTERFACE
@router.delete("/{project_id}/assignments/{user_id}", status_code=status.HTTP_204_NO_CONTENT,
               summary="Unassign member from project")
async def unassign_user(
    organization_id: UUID,
    project_id: UUID,
    user_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    projects.unassign_user(db, current_user.user_id, organization_id, project_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
