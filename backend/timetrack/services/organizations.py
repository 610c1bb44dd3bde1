"""
Organization and membership administration.
"""
import logging
from typing import List
from uuid import UUID

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database.models import Organization, OrganizationMember, Role, User, utcnow
from ..schemas.organization import (
    OrganizationCreateRequest, OrganizationUpdateRequest, OrganizationResponse,
    MemberAddRequest, MemberUpdateRequest, MemberResponse
)
from .errors import ConflictError, NotFoundError, ValidationError
from .membership import require_membership, require_role

logger = logging.getLogger(__name__)

_ROLE_ORDER = case(
    (OrganizationMember.role == Role.ADMIN, 0),
    (OrganizationMember.role == Role.MANAGER, 1),
    else_=2,
)


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError.for_field("name", "Organization name is required.", code="name_required")
    return cleaned


def to_member_response(member: OrganizationMember) -> MemberResponse:
    user = member.user
    return MemberResponse(
        id=member.id,
        organization_id=member.organization_id,
        user_id=member.user_id,
        first_name=user.first_name if user else "",
        last_name=user.last_name if user else "",
        role=member.role,
        active=member.active,
        created_at=member.created_at,
        updated_at=member.updated_at,
    )


def create_organization(db: Session, actor_user_id: UUID, request: OrganizationCreateRequest) -> OrganizationResponse:
    """Create an organization; the creator becomes its first Admin."""
    name = _clean_name(request.name)

    if db.query(User.id).filter(User.id == actor_user_id).first() is None:
        raise NotFoundError("User not found.", code="user_not_found")

    now = utcnow()
    organization = Organization(name=name, active=True, created_at=now, updated_at=now)
    db.add(organization)
    db.flush()
    db.add(OrganizationMember(
        organization_id=organization.id,
        user_id=actor_user_id,
        role=Role.ADMIN,
        active=True,
        created_at=now,
        updated_at=now,
    ))

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Organization could not be created due to a conflict.") from exc

    db.refresh(organization)
    logger.info("Organization %s created by %s", organization.id, actor_user_id)
    return OrganizationResponse.model_validate(organization)


def list_my_organizations(db: Session, actor_user_id: UUID) -> List[OrganizationResponse]:
    """Active organizations in which the caller has an active membership."""
    organizations = db.query(Organization).join(OrganizationMember).filter(
        OrganizationMember.user_id == actor_user_id,
        OrganizationMember.active == True,
        Organization.active == True
    ).order_by(Organization.name).all()
    return [OrganizationResponse.model_validate(o) for o in organizations]


def get_organization(db: Session, actor_user_id: UUID, organization_id: UUID) -> OrganizationResponse:
    require_membership(db, actor_user_id, organization_id)

    organization = db.query(Organization).filter(Organization.id == organization_id).first()
    if organization is None:
        raise NotFoundError("Organization not found.", code="organization_not_found")
    return OrganizationResponse.model_validate(organization)


def update_organization(db: Session, actor_user_id: UUID, organization_id: UUID,
                        request: OrganizationUpdateRequest) -> OrganizationResponse:
    require_role(db, actor_user_id, organization_id, [Role.ADMIN], "Only Admin can update organization details.")

    organization = db.query(Organization).filter(Organization.id == organization_id).first()
    if organization is None:
        raise NotFoundError("Organization not found.", code="organization_not_found")

    if request.name is not None:
        organization.name = _clean_name(request.name)
    if request.active is not None:
        organization.active = request.active
    organization.updated_at = utcnow()

    db.commit()
    db.refresh(organization)
    return OrganizationResponse.model_validate(organization)


def list_members(db: Session, actor_user_id: UUID, organization_id: UUID) -> List[MemberResponse]:
    """Every membership row of the organization, including deactivated ones."""
    require_membership(db, actor_user_id, organization_id)

    members = db.query(OrganizationMember).filter(
        OrganizationMember.organization_id == organization_id
    ).order_by(_ROLE_ORDER, OrganizationMember.created_at).all()
    return [to_member_response(m) for m in members]


def add_member(db: Session, actor_user_id: UUID, organization_id: UUID, request: MemberAddRequest) -> MemberResponse:
    """
    Add a user to the organization.

    An existing row for the same user is re-activated and given the new
    role instead of creating a duplicate.
    """
    require_role(db, actor_user_id, organization_id, [Role.ADMIN], "Only Admin can add members.")

    if db.query(User.id).filter(User.id == request.user_id).first() is None:
        raise ValidationError.for_field("user_id", "User does not exist.", code="unknown_user")

    now = utcnow()
    member = db.query(OrganizationMember).filter(
        OrganizationMember.organization_id == organization_id,
        OrganizationMember.user_id == request.user_id
    ).first()

    if member is not None:
        member.role = request.role
        member.active = True
        member.updated_at = now
    else:
        member = OrganizationMember(
            organization_id=organization_id,
            user_id=request.user_id,
            role=request.role,
            active=True,
            created_at=now,
            updated_at=now,
        )
        db.add(member)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Member could not be added due to a conflict.") from exc

    db.refresh(member)
    logger.info("User %s is now %s in organization %s", member.user_id, member.role.value, organization_id)
    return to_member_response(member)


def update_member(db: Session, actor_user_id: UUID, organization_id: UUID, member_id: UUID,
                  request: MemberUpdateRequest) -> MemberResponse:
    require_role(db, actor_user_id, organization_id, [Role.ADMIN], "Only Admin can update members.")

    member = db.query(OrganizationMember).filter(
        OrganizationMember.id == member_id,
        OrganizationMember.organization_id == organization_id
    ).first()
    if member is None:
        raise NotFoundError("Organization member not found.", code="member_not_found")

    if request.role is not None:
        member.role = request.role
    if request.active is not None:
        member.active = request.active
    member.updated_at = utcnow()

    db.commit()
    db.refresh(member)
    return to_member_response(member)
