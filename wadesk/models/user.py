"""
models/user.py
--------------
User ORM model with roles.

Role design:
  - 'admin':     Manages developers, WhatsApp sessions and chat assignments.
                 Only the first account may self-register as admin.
  - 'developer': Reads and answers the chats assigned to them.

The hashed_password column stores bcrypt hashes only — plain text is
never stored and never logged.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from wadesk.db.base import Base, TimestampMixin, generate_uuid


class UserRole(str, PyEnum):
    admin = "admin"
    developer = "developer"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.developer.value
    )

    reset_token: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True, index=True
    )
    reset_token_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
