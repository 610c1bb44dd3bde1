"""
Authentication API routes.

Tokens are issued upstream; these endpoints expose the verified identity
and let a client revoke its token before it expires.
"""
import logging
from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database.connection import get_db
from ...database.models import Organization, OrganizationMember, User
from ...schemas.auth import OrganizationInfo, StandardResponse, UserInfo
from ...services.errors import NotFoundError
from ...auth.dependencies import get_current_user, get_token_store, CurrentUser
from ...auth.jwt_handler import ACCESS_TOKEN_EXPIRE_MINUTES
from ...auth.token_store import RevokedTokenStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


# PUBLIC_INTERFACE
@router.post("/logout", response_model=StandardResponse,
             summary="User logout",
             description="Revoke the presented access token until it expires.")
async def logout_user(
    current_user: CurrentUser = Depends(get_current_user),
    token_store: RevokedTokenStore = Depends(get_token_store)
):
    """
    Logout current user.

    The token's ``jti`` is remembered as revoked, so later requests with the
    same token are rejected with 401.
    """
    expires_at = current_user.expires_at or (
        datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    token_store.revoke(current_user.jti, expires_at)
    logger.info("Token %s revoked for user %s", current_user.jti, current_user.user_id)
    return StandardResponse(message="Logged out successfully")


# PUBLIC_INTERFACE
@router.get("/me", response_model=UserInfo,
            summary="Get current user",
            description="Get information about the currently authenticated user.")
async def get_current_user_info(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get current authenticated user information.

    Returns the user profile and the organizations the user is an active
    member of.
    """
    user = db.query(User).filter(User.id == current_user.user_id).first()
    if not user:
        raise NotFoundError("User not found.", code="user_not_found")

    rows = db.query(Organization, OrganizationMember.role).join(
        OrganizationMember, OrganizationMember.organization_id == Organization.id
    ).filter(
        OrganizationMember.user_id == user.id,
        OrganizationMember.active == True,
        Organization.active == True
    ).order_by(Organization.name).all()

    return UserInfo(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        active=user.active,
        organizations=[
            OrganizationInfo(id=org.id, name=org.name, role=role.value) for org, role in rows
        ]
    )
