"""
Organization-related Pydantic schemas.

Defines request/response models for organization management, membership
administration, the project catalogue and project assignments.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from uuid import UUID

from ..database.models import Role


class OrganizationCreateRequest(BaseModel):
    """Organization creation request schema."""
    name: str = Field(..., max_length=200, description="Organization name")


class OrganizationUpdateRequest(BaseModel):
    """Organization update request schema."""
    name: Optional[str] = Field(None, max_length=200, description="Organization name")
    active: Optional[bool] = Field(None, description="Whether organization is active")


class OrganizationResponse(BaseModel):
    """Organization response schema."""
    id: UUID = Field(..., description="Organization ID")
    name: str = Field(..., description="Organization name")
    active: bool = Field(..., description="Whether organization is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        from_attributes = True


class MemberAddRequest(BaseModel):
    """Add (or re-activate) a member."""
    user_id: UUID = Field(..., description="User to add")
    role: Role = Field(default=Role.EMPLOYEE, description="Role within the organization")


class MemberUpdateRequest(BaseModel):
    """Member update request schema."""
    role: Optional[Role] = Field(None, description="New role")
    active: Optional[bool] = Field(None, description="Whether membership is active")


class MemberResponse(BaseModel):
    """Organization member response schema."""
    id: UUID = Field(..., description="Membership ID")
    organization_id: UUID = Field(..., description="Organization ID")
    user_id: UUID = Field(..., description="User ID")
    first_name: str = Field("", description="User first name")
    last_name: str = Field("", description="User last name")
    role: Role = Field(..., description="Role within the organization")
    active: bool = Field(..., description="Whether membership is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class ProjectCreateRequest(BaseModel):
    """Project creation request schema."""
    name: str = Field(..., max_length=200, description="Project name")
    code: Optional[str] = Field(None, max_length=50, description="Short project code")
    description: Optional[str] = Field(None, description="Project description")


class ProjectUpdateRequest(BaseModel):
    """
    Project patch schema.

    ``code`` and ``description`` may be sent as null to clear them.
    """
    name: Optional[str] = Field(None, max_length=200, description="Project name")
    code: Optional[str] = Field(None, max_length=50, description="Short project code")
    description: Optional[str] = Field(None, description="Project description")
    active: Optional[bool] = Field(None, description="Whether project is active")


class ProjectResponse(BaseModel):
    """Project response schema."""
    id: UUID = Field(..., description="Project ID")
    organization_id: UUID = Field(..., description="Organization ID")
    name: str = Field(..., description="Project name")
    code: Optional[str] = Field(None, description="Project code")
    description: Optional[str] = Field(None, description="Project description")
    active: bool = Field(..., description="Whether project is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        from_attributes = True


class ProjectAssignRequest(BaseModel):
    """Assign a member to a project."""
    user_id: UUID = Field(..., description="Member to assign")


class ProjectAssignmentResponse(BaseModel):
    """Project assignment response schema."""
    id: UUID = Field(..., description="Assignment ID")
    project_id: UUID = Field(..., description="Project ID")
    user_id: UUID = Field(..., description="Assigned user ID")
    assigned_by_id: Optional[UUID] = Field(None, description="User who made the assignment")
    assigned_at: datetime = Field(..., description="Assignment timestamp")

    class Config:
        from_attributes = True
