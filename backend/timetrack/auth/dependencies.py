"""
Authentication dependencies for FastAPI endpoints.

Provides dependency functions for extracting the verified actor from the
bearer token and for reaching the application's revoked token store.
"""
from datetime import datetime, timezone
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from uuid import UUID

from .jwt_handler import JWTHandler
from .token_store import RevokedTokenStore

security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Current user information from JWT token."""

    def __init__(self, user_id: UUID, email: Optional[str], jti: Optional[str], expires_at: Optional[datetime]):
        self.user_id = user_id
        self.email = email
        self.jti = jti
        self.expires_at = expires_at


# PUBLIC_INTERFACE
def get_token_store(request: Request) -> RevokedTokenStore:
    """Return the revoked token store created at application startup."""
    return request.app.state.token_store


# PUBLIC_INTERFACE
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_store: RevokedTokenStore = Depends(get_token_store)
) -> CurrentUser:
    """
    Get current authenticated user from JWT token.

    Args:
        credentials: HTTP authorization credentials
        token_store: Revoked token store

    Returns:
        CurrentUser: Current user information

    Raises:
        HTTPException: If the token is missing, invalid, or revoked
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = JWTHandler.verify_token(credentials.credentials)
    if payload is None or payload.get("type", "access") != "access":
        raise credentials_exception

    try:
        user_id = UUID(payload.get("sub"))
    except (TypeError, ValueError):
        raise credentials_exception

    jti = payload.get("jti")
    if jti and token_store.is_revoked(jti):
        raise credentials_exception

    exp = payload.get("exp")
    expires_at = datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None

    return CurrentUser(
        user_id=user_id,
        email=payload.get("email"),
        jti=jti,
        expires_at=expires_at
    )
