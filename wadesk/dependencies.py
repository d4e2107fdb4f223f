"""
dependencies.py
---------------
FastAPI dependency injection functions for authentication and authorisation.

Flow:
  1. OAuth2PasswordBearer extracts the Bearer token from the Authorization header.
  2. decode_access_token validates and parses the JWT (no DB round-trip).
  3. get_current_user fetches the full User record from the DB, verifying the
     token's sub (user_id) and role against persisted data.
  4. get_current_admin / get_current_developer layer a role check on top.

The WebSocket endpoint cannot use the header scheme (browsers cannot set it),
so user_from_token exposes the same checks for a token passed as a query
parameter.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.logging import get_logger
from wadesk.core.security import decode_access_token
from wadesk.db.session import get_db
from wadesk.models.developer import Developer
from wadesk.models.user import User, UserRole
from wadesk.services.developer_service import DeveloperService
from wadesk.services.user_service import UserService

logger = get_logger(__name__)

# tokenUrl must match the login endpoint path
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


async def user_from_token(db: AsyncSession, token: str) -> Optional[User]:
    """Return the user a valid token belongs to, or None."""
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        logger.warning("JWT decode failed", error=str(exc))
        return None

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or not role:
        return None

    # Always re-verify against DB so deleted users are rejected
    user = await UserService.get_by_id(db, user_id)
    if user is None or user.role != role:
        logger.warning("User from valid JWT not found in DB", user_id=user_id)
        return None
    return user


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Decode the JWT, then load and return the full User from the database.
    Raises 401 if the token is invalid or the user no longer exists.
    """
    user = await user_from_token(db, token)
    if user is None:
        raise _CREDENTIALS_EXCEPTION
    return user


async def get_current_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Raises 403 if the authenticated user is not an admin."""
    if current_user.role != UserRole.admin.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


async def get_current_developer(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Developer:
    """
    Resolve the authenticated developer's profile.
    Raises 403 for non-developers and 404 when the profile is missing.
    """
    if current_user.role != UserRole.developer.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Developer privileges required",
        )
    developer = await DeveloperService.get_by_user_id(db, current_user.id)
    if developer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Developer profile not found",
        )
    return developer
