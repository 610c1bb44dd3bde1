"""
Project catalogue scoped to an organization, and the members assigned to
each project.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database.models import OrganizationMember, Project, ProjectAssignment, utcnow, APPROVER_ROLES
from ..schemas.common import patch_value, is_provided
from ..schemas.organization import (
    ProjectCreateRequest, ProjectUpdateRequest, ProjectResponse,
    ProjectAssignRequest, ProjectAssignmentResponse
)
from .errors import ConflictError, NotFoundError, ValidationError
from .membership import require_membership, require_role

logger = logging.getLogger(__name__)


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError.for_field("name", "Project name is required.", code="name_required")
    return cleaned


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


def _ensure_unique_name(db: Session, organization_id: UUID, name: str, exclude_id: Optional[UUID] = None) -> None:
    query = db.query(Project.id).filter(
        Project.organization_id == organization_id,
        Project.name == name
    )
    if exclude_id is not None:
        query = query.filter(Project.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Project with this name already exists in this organization.", code="duplicate_project")


def _commit_project(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "Project with this name already exists in this organization.", code="duplicate_project") from exc


def create_project(db: Session, actor_user_id: UUID, organization_id: UUID,
                   request: ProjectCreateRequest) -> ProjectResponse:
    require_role(db, actor_user_id, organization_id, APPROVER_ROLES, "Only Admin or Manager can create projects.")

    name = _clean_name(request.name)
    _ensure_unique_name(db, organization_id, name)

    now = utcnow()
    project = Project(
        organization_id=organization_id,
        name=name,
        code=_clean_optional(request.code),
        description=_clean_optional(request.description),
        active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(project)
    _commit_project(db)
    db.refresh(project)

    logger.info("Project %s created in organization %s", project.id, organization_id)
    return ProjectResponse.model_validate(project)


def list_projects(db: Session, actor_user_id: UUID, organization_id: UUID,
                  active: Optional[bool] = None) -> List[ProjectResponse]:
    require_membership(db, actor_user_id, organization_id)

    query = db.query(Project).filter(Project.organization_id == organization_id)
    if active is not None:
        query = query.filter(Project.active == active)
    return [ProjectResponse.model_validate(p) for p in query.order_by(Project.name).all()]


def get_project(db: Session, actor_user_id: UUID, organization_id: UUID, project_id: UUID) -> ProjectResponse:
    require_membership(db, actor_user_id, organization_id)

    project = db.query(Project).filter(
        Project.id == project_id,
        Project.organization_id == organization_id
    ).first()
    if project is None:
        raise NotFoundError("Project not found.", code="project_not_found")
    return ProjectResponse.model_validate(project)


def update_project(db: Session, actor_user_id: UUID, organization_id: UUID, project_id: UUID,
                   request: ProjectUpdateRequest) -> ProjectResponse:
    require_role(db, actor_user_id, organization_id, APPROVER_ROLES, "Only Admin or Manager can update projects.")

    project = db.query(Project).filter(
        Project.id == project_id,
        Project.organization_id == organization_id
    ).first()
    if project is None:
        raise NotFoundError("Project not found.", code="project_not_found")

    name = patch_value(request, "name")
    if is_provided(name):
        name = _clean_name(name)
        _ensure_unique_name(db, organization_id, name, exclude_id=project.id)
        project.name = name

    code = patch_value(request, "code")
    if is_provided(code):
        project.code = _clean_optional(code)

    description = patch_value(request, "description")
    if is_provided(description):
        project.description = _clean_optional(description)

    if request.active is not None:
        project.active = request.active

    project.updated_at = utcnow()
    _commit_project(db)
    db.refresh(project)
    return ProjectResponse.model_validate(project)


def _require_project(db: Session, organization_id: UUID, project_id: UUID) -> None:
    exists = db.query(Project.id).filter(
        Project.id == project_id,
        Project.organization_id == organization_id
    ).first()
    if exists is None:
        raise NotFoundError("Project not found.", code="project_not_found")


def assign_user(db: Session, actor_user_id: UUID, organization_id: UUID, project_id: UUID,
                request: ProjectAssignRequest) -> ProjectAssignmentResponse:
    """
    Assign an active member of the organization to a project.

    Assigning someone who is already assigned returns the existing row.
    """
    require_role(db, actor_user_id, organization_id, APPROVER_ROLES,
                 "Only Admin or Manager can assign users to projects.")
    _require_project(db, organization_id, project_id)

    is_member = db.query(OrganizationMember.id).filter(
        OrganizationMember.organization_id == organization_id,
        OrganizationMember.user_id == request.user_id,
        OrganizationMember.active == True
    ).first() is not None
    if not is_member:
        raise ValidationError.for_field(
            "user_id", "User must be a member of the organization.", code="not_a_member")

    existing = db.query(ProjectAssignment).filter(
        ProjectAssignment.project_id == project_id,
        ProjectAssignment.user_id == request.user_id
    ).first()
    if existing is not None:
        return ProjectAssignmentResponse.model_validate(existing)

    assignment = ProjectAssignment(
        organization_id=organization_id,
        project_id=project_id,
        user_id=request.user_id,
        assigned_by_id=actor_user_id,
        assigned_at=utcnow(),
    )
    db.add(assignment)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Assignment could not be saved due to a conflict.", code="duplicate_assignment") from exc

    db.refresh(assignment)
    logger.info("User %s assigned to project %s by %s", request.user_id, project_id, actor_user_id)
    return ProjectAssignmentResponse.model_validate(assignment)


def unassign_user(db: Session, actor_user_id: UUID, organization_id: UUID, project_id: UUID,
                  user_id: UUID) -> None:
    require_role(db, actor_user_id, organization_id, APPROVER_ROLES,
                 "Only Admin or Manager can unassign users from projects.")
    _require_project(db, organization_id, project_id)

    assignment = db.query(ProjectAssignment).filter(
        ProjectAssignment.project_id == project_id,
        ProjectAssignment.user_id == user_id
    ).first()
    if assignment is None:
        raise NotFoundError("Assignment not found.", code="assignment_not_found")

    db.delete(assignment)
    db.commit()
    logger.info("User %s unassigned from project %s by %s", user_id, project_id, actor_user_id)


def list_assignments(db: Session, actor_user_id: UUID, organization_id: UUID,
                     project_id: UUID) -> List[ProjectAssignmentResponse]:
    """Assignments of a project, oldest first. Visible to every member."""
    require_membership(db, actor_user_id, organization_id)
    _require_project(db, organization_id, project_id)

    assignments = db.query(ProjectAssignment).filter(
        ProjectAssignment.project_id == project_id
    ).order_by(ProjectAssignment.assigned_at).all()
    return [ProjectAssignmentResponse.model_validate(a) for a in assignments]
