"""
schemas/developer.py
--------------------
Pydantic models for developer account management.
"""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from wadesk.schemas.common import CamelModel


class DeveloperCreate(CamelModel):
    """Used by an admin to create a developer account."""
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


class DeveloperUser(CamelModel):
    name: str
    email: str
    role: str


class DeveloperRead(CamelModel):
    id: str
    user_id: str
    organization_id: str
    created_at: datetime
    user: DeveloperUser


class DeveloperResponse(CamelModel):
    success: bool = True
    developer: DeveloperRead


class DeveloperListResponse(CamelModel):
    success: bool = True
    developers: list[DeveloperRead]
