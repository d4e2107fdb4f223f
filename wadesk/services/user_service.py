"""
services/user_service.py
------------------------
Business logic for registration, authentication and password resets.

Only the first account may self-register, and it becomes the admin.
Developer accounts are created by that admin (see developer_service).
"""

from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.logging import get_logger
from wadesk.core.security import (
    generate_reset_token,
    hash_password,
    reset_token_expiry,
    verify_password,
)
from wadesk.models.user import User, UserRole
from wadesk.schemas.user import UserRegister

logger = get_logger(__name__)


class UserService:

    @staticmethod
    async def count_admins(db: AsyncSession) -> int:
        result = await db.execute(
            select(func.count()).select_from(User).where(User.role == UserRole.admin.value)
        )
        return result.scalar_one()

    @staticmethod
    async def can_register(db: AsyncSession) -> bool:
        """Registration stays open only until the first admin exists."""
        return await UserService.count_admins(db) == 0

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def first_admin(db: AsyncSession) -> User | None:
        """The earliest admin owns sessions discovered through webhooks."""
        result = await db.execute(
            select(User)
            .where(User.role == UserRole.admin.value)
            .order_by(User.created_at, User.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_user(
        db: AsyncSession,
        name: str,
        email: str,
        password: str,
        role: UserRole,
    ) -> User:
        """
        Persist a new user with a bcrypt-hashed password.
        Raises ValueError if the email is already in use.
        """
        if await UserService.get_by_email(db, email) is not None:
            raise ValueError("Email already in use")

        user = User(
            name=name,
            email=email.lower(),
            hashed_password=hash_password(password),
            role=role.value,
        )
        db.add(user)
        try:
            await db.flush()
            await db.refresh(user)
        except IntegrityError:
            await db.rollback()
            raise ValueError("Email already in use")
        return user

    @staticmethod
    async def register_admin(db: AsyncSession, data: UserRegister) -> User:
        user = await UserService.create_user(
            db, data.name, data.email, data.password, UserRole.admin
        )
        logger.info("Admin registered", user_id=user.id)
        return user

    @staticmethod
    async def authenticate(
        db: AsyncSession, email: str, password: str
    ) -> User | None:
        """
        Verify credentials and return the User if valid, else None.
        Email lookup is case-insensitive.
        """
        user = await UserService.get_by_email(db, email)
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user

    # ── Password reset ────────────────────────────────────────────────────────

    @staticmethod
    async def issue_reset_token(db: AsyncSession, user: User) -> str:
        """Store a fresh single-use reset token on the user and return it."""
        token = generate_reset_token()
        user.reset_token = token
        user.reset_token_expires = reset_token_expiry()
        await db.flush()
        logger.info("Password reset requested", user_id=user.id)
        return token

    @staticmethod
    async def reset_password(
        db: AsyncSession, email: str, token: str, new_password: str
    ) -> bool:
        """
        Set a new password when (email, token) match an unexpired token.
        Returns False for unknown, wrong or expired tokens.
        """
        result = await db.execute(
            select(User).where(
                User.email == email.lower(),
                User.reset_token == token,
                User.reset_token_expires > datetime.now(timezone.utc),
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            return False

        user.hashed_password = hash_password(new_password)
        user.reset_token = None
        user.reset_token_expires = None
        await db.flush()
        logger.info("Password reset completed", user_id=user.id)
        return True

    @staticmethod
    async def clear_expired_reset_tokens(db: AsyncSession) -> int:
        result = await db.execute(
            update(User)
            .where(User.reset_token_expires < datetime.now(timezone.utc))
            .values(reset_token=None, reset_token_expires=None)
        )
        return result.rowcount or 0
