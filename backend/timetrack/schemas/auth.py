"""
Authentication-related Pydantic schemas.

Defines response models for the current-user profile and session
management.
"""
from typing import List
from pydantic import BaseModel, Field
from uuid import UUID


class OrganizationInfo(BaseModel):
    """An organization the user belongs to."""
    id: UUID = Field(..., description="Organization ID")
    name: str = Field(..., description="Organization name")
    role: str = Field(..., description="User role in this organization")


class UserInfo(BaseModel):
    """User information schema."""
    id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="User email address")
    first_name: str = Field(..., description="User first name")
    last_name: str = Field(..., description="User last name")
    active: bool = Field(..., description="Whether user is active")
    organizations: List[OrganizationInfo] = Field(default_factory=list, description="Active memberships")


class StandardResponse(BaseModel):
    """Standard API response schema."""
    message: str = Field(..., description="Response message")
