"""
api/routes/auth.py
------------------
Authentication endpoints (mounted under /api/auth).

GET  /registration-status — Whether the first admin may still register.
POST /register            — Create the first (and only self-registered) admin.
POST /login               — Exchange credentials for a JWT access token.
GET  /me                  — Return the authenticated user's profile.
POST /forgot-password     — Email a single-use reset link.
POST /reset-password      — Set a new password with a reset token.
"""

from datetime import timedelta
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.config import settings
from wadesk.core.logging import get_logger
from wadesk.core.security import create_access_token
from wadesk.db.session import get_db
from wadesk.dependencies import get_current_user
from wadesk.models.user import User, UserRole
from wadesk.schemas.common import SuccessResponse
from wadesk.schemas.user import (
    ForgotPasswordRequest,
    RegistrationStatus,
    ResetPasswordRequest,
    TokenResponse,
    UserRead,
    UserRegister,
    UserResponse,
)
from wadesk.services.email_service import email_service
from wadesk.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get(
    "/registration-status",
    response_model=RegistrationStatus,
    summary="Check whether admin registration is still open",
)
async def registration_status(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RegistrationStatus:
    return RegistrationStatus(can_register=await UserService.can_register(db))


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register the first admin account",
)
async def register(
    body: UserRegister,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserResponse:
    """
    Only one admin may self-register. Once it exists every further
    account is a developer created by that admin.
    """
    if not await UserService.can_register(db):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Registration is closed. An admin account already exists",
        )
    try:
        user = await UserService.register_admin(db, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login and receive a JWT access token",
)
async def login(
    # OAuth2PasswordRequestForm sends username + password as form data.
    # The "username" field contains the email address.
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    Authenticate with email + password and receive a signed JWT whose
    role claim decides which guards the caller passes.

    Via curl: send as form data (not JSON):
        -d "username=you@email.com&password=yourpassword"
    """
    user = await UserService.authenticate(db, form_data.username, form_data.password)
    if user is None:
        logger.info("Login failed", email=form_data.username.lower())
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token(subject=user.id, role=user.role, expires_delta=expires)
    logger.info("User logged in", user_id=user.id, role=user.role)

    return TokenResponse(
        access_token=token,
        token_type="bearer",
        expires_in=int(expires.total_seconds()),
        user=UserRead.model_validate(user),
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get the currently authenticated user",
)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.post(
    "/forgot-password",
    response_model=SuccessResponse,
    summary="Send a password reset link",
)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SuccessResponse:
    user = await UserService.get_by_email(db, body.email)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account found with this email address",
        )
    if body.role is not None and user.role != body.role.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"This email is not registered as a {body.role.value}",
        )

    token = await UserService.issue_reset_token(db, user)
    path = "/reset-password" if user.role == UserRole.admin.value else "/developer/reset-password"
    query = urlencode({"token": token, "email": user.email})
    reset_link = f"{settings.APP_URL}{path}?{query}"

    sent = await email_service.send_password_reset(user.email, reset_link, user.name, user.role)
    if not sent:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send reset email. Please try again later",
        )
    return SuccessResponse(message="Password reset link sent to your email")


@router.post(
    "/reset-password",
    response_model=SuccessResponse,
    summary="Reset the password with a reset token",
)
async def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SuccessResponse:
    if not await UserService.reset_password(db, body.email, body.token, body.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token",
        )
    return SuccessResponse(message="Password has been reset successfully")
