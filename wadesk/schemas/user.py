"""
schemas/user.py
---------------
Pydantic models for registration, login, password reset and responses.

Security note:
  - hashed_password and reset_token are NEVER included in a response schema.
  - Passwords require min 8 chars.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from wadesk.models.user import UserRole
from wadesk.schemas.common import CamelModel


class UserRegister(CamelModel):
    """First-admin self registration."""
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class UserRead(CamelModel):
    id: str
    name: str
    email: str
    role: str
    created_at: datetime


class UserResponse(UserRead):
    success: bool = True


class RegistrationStatus(CamelModel):
    success: bool = True
    can_register: bool


# OAuth2 clients read access_token, so this body stays snake_case
class TokenResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserRead


class ForgotPasswordRequest(CamelModel):
    email: EmailStr
    role: Optional[UserRole] = None


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
