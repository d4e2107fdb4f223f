"""
services/developer_service.py
-----------------------------
Business logic for developer accounts.

A developer is a User (role 'developer') plus a Developer profile bound to
the admin that created it. Every query is scoped by organization_id so an
admin never sees another organisation's developers.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.logging import get_logger
from wadesk.models.chat_assignment import ChatAssignment
from wadesk.models.developer import Developer
from wadesk.models.user import User, UserRole
from wadesk.schemas.developer import DeveloperCreate
from wadesk.services.user_service import UserService

logger = get_logger(__name__)


class DeveloperService:

    @staticmethod
    async def create_developer(
        db: AsyncSession, data: DeveloperCreate, admin: User
    ) -> Developer:
        """
        Create the developer's user account and profile.
        Raises ValueError on duplicate email.
        """
        user = await UserService.create_user(
            db, data.name, data.email, data.password, UserRole.developer
        )
        developer = Developer(user=user, organization_id=admin.id)
        db.add(developer)
        await db.flush()
        await db.refresh(developer)
        logger.info(
            "Developer created",
            developer_id=developer.id,
            user_id=user.id,
            organization_id=admin.id,
        )
        return developer

    @staticmethod
    async def list_developers(db: AsyncSession, organization_id: str) -> list[Developer]:
        result = await db.execute(
            select(Developer)
            .where(Developer.organization_id == organization_id)
            .order_by(Developer.created_at.desc(), Developer.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_developer(db: AsyncSession, developer_id: str) -> Developer | None:
        result = await db.execute(select(Developer).where(Developer.id == developer_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_user_id(db: AsyncSession, user_id: str) -> Developer | None:
        result = await db.execute(select(Developer).where(Developer.user_id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_developer(db: AsyncSession, developer: Developer) -> int:
        """
        Remove the developer's assignments, profile and user account.
        Returns the number of assignment rows removed.
        """
        result = await db.execute(
            delete(ChatAssignment).where(ChatAssignment.developer_id == developer.id)
        )
        removed = result.rowcount or 0

        user = developer.user
        await db.delete(developer)
        await db.flush()
        await db.delete(user)
        await db.flush()

        logger.info(
            "Developer deleted",
            developer_id=developer.id,
            user_id=user.id,
            assignments_removed=removed,
        )
        return removed
