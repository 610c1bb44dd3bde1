"""
Membership directory and authorization gate.

Every tenant-scoped operation resolves the caller's membership here first.
Only active memberships count; a missing or deactivated membership is
treated as "not a member" and fails closed with ``ForbiddenError``.
"""
import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..database.models import OrganizationMember, Role, APPROVER_ROLES
from .errors import ForbiddenError

logger = logging.getLogger(__name__)


def get_membership(db: Session, user_id: UUID, organization_id: UUID) -> Optional[OrganizationMember]:
    """Return the active membership of ``user_id`` in ``organization_id``, if any."""
    return db.query(OrganizationMember).filter(
        OrganizationMember.organization_id == organization_id,
        OrganizationMember.user_id == user_id,
        OrganizationMember.active == True
    ).first()


def has_any_role(db: Session, user_id: UUID, organization_id: UUID, roles: Iterable[Role]) -> bool:
    membership = get_membership(db, user_id, organization_id)
    return membership is not None and membership.role in set(roles)


def is_approver(membership: Optional[OrganizationMember]) -> bool:
    return membership is not None and membership.role in APPROVER_ROLES


def require_membership(db: Session, user_id: UUID, organization_id: UUID) -> OrganizationMember:
    """Resolve the caller's active membership or raise ``ForbiddenError``."""
    membership = get_membership(db, user_id, organization_id)
    if membership is None:
        logger.warning("User %s denied: not a member of organization %s", user_id, organization_id)
        raise ForbiddenError("You are not a member of this organization.", code="not_a_member")
    return membership


def require_role(db: Session, user_id: UUID, organization_id: UUID,
                 roles: Iterable[Role], message: Optional[str] = None) -> OrganizationMember:
    """Resolve the caller's membership and require one of ``roles``."""
    roles = set(roles)
    membership = require_membership(db, user_id, organization_id)
    if membership.role not in roles:
        logger.warning(
            "User %s denied in organization %s: role %s not in %s",
            user_id, organization_id, membership.role.value, sorted(r.value for r in roles)
        )
        raise ForbiddenError(message or "Insufficient role for this operation.", code="insufficient_role")
    return membership


def require_approver(db: Session, user_id: UUID, organization_id: UUID,
                     message: Optional[str] = None) -> OrganizationMember:
    return require_role(db, user_id, organization_id, APPROVER_ROLES,
                        message or "Only Admin or Manager members can do this.")
