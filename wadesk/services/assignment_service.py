"""
services/assignment_service.py
------------------------------
The chat assignment ledger.

Rows are keyed by (developer, session, chat). Unassigning is soft by
default (is_active=False) so the same row is reactivated when the chat is
handed back; hard unassigning deletes the row. Lookups used for access
control only ever match active rows.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.logging import get_logger
from wadesk.models.chat_assignment import ChatAssignment
from wadesk.models.developer import Developer

logger = get_logger(__name__)


class AssignmentService:

    @staticmethod
    async def get_pairing(
        db: AsyncSession, developer_id: str, session_id: str, chat_id: str
    ) -> ChatAssignment | None:
        """The ledger row for this pairing, active or not."""
        result = await db.execute(
            select(ChatAssignment).where(
                ChatAssignment.developer_id == developer_id,
                ChatAssignment.session_id == session_id,
                ChatAssignment.chat_id == chat_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def assign(
        db: AsyncSession,
        developer: Developer,
        chat_id: str,
        chat_name: str,
        session_id: str,
    ) -> tuple[ChatAssignment, bool]:
        """
        Give the developer access to the chat.

        Returns (assignment, changed) where changed is False when the chat
        was already actively assigned to this developer.
        """
        existing = await AssignmentService.get_pairing(db, developer.id, session_id, chat_id)
        if existing is not None and existing.is_active:
            return existing, False

        now = datetime.now(timezone.utc)
        if existing is not None:
            existing.is_active = True
            existing.assigned_at = now
            existing.chat_name = chat_name
            assignment = existing
        else:
            assignment = ChatAssignment(
                developer=developer,
                chat_id=chat_id,
                chat_name=chat_name,
                session_id=session_id,
                assigned_at=now,
                is_active=True,
            )
            db.add(assignment)

        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ValueError("Chat is already assigned to this developer")
        await db.refresh(assignment)

        logger.info(
            "Chat assigned",
            assignment_id=assignment.id,
            developer_id=developer.id,
            session_id=session_id,
            chat_id=chat_id,
            reactivated=existing is not None,
        )
        return assignment, True

    @staticmethod
    async def reassign(
        db: AsyncSession,
        developer: Developer,
        chat_id: str,
        chat_name: str,
        session_id: str,
    ) -> tuple[ChatAssignment, list[ChatAssignment]]:
        """
        Hand the chat over to one developer: every other active assignment
        of the chat in this session is soft-deleted.
        """
        others = [
            a
            for a in await AssignmentService.list_assignments(
                db, chat_id=chat_id, session_id=session_id
            )
            if a.developer_id != developer.id
        ]
        for other in others:
            other.is_active = False
        await db.flush()

        assignment, _ = await AssignmentService.assign(
            db, developer, chat_id, chat_name, session_id
        )
        logger.info(
            "Chat reassigned",
            chat_id=chat_id,
            session_id=session_id,
            developer_id=developer.id,
            previous=[o.developer_id for o in others],
        )
        return assignment, others

    @staticmethod
    async def list_assignments(
        db: AsyncSession,
        *,
        chat_id: Optional[str] = None,
        developer_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> list[ChatAssignment]:
        """Active assignments matching every given filter, newest first."""
        query = select(ChatAssignment).where(ChatAssignment.is_active.is_(True))
        if chat_id is not None:
            query = query.where(ChatAssignment.chat_id == chat_id)
        if developer_id is not None:
            query = query.where(ChatAssignment.developer_id == developer_id)
        if session_id is not None:
            query = query.where(ChatAssignment.session_id == session_id)
        result = await db.execute(
            query.order_by(ChatAssignment.assigned_at.desc(), ChatAssignment.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def find_active(
        db: AsyncSession,
        developer_id: str,
        chat_id: str,
        session_id: Optional[str] = None,
    ) -> ChatAssignment | None:
        """The developer's active assignment for a chat (first match)."""
        rows = await AssignmentService.list_assignments(
            db, chat_id=chat_id, developer_id=developer_id, session_id=session_id
        )
        return rows[0] if rows else None

    @staticmethod
    async def find_for_unassign(
        db: AsyncSession,
        *,
        assignment_id: Optional[str] = None,
        chat_id: Optional[str] = None,
        developer_id: Optional[str] = None,
        session_id: Optional[str] = None,
        include_inactive: bool = False,
    ) -> list[ChatAssignment]:
        """
        Resolve an unassign request to ledger rows.

        assignment_id wins over the other filters; otherwise chat_id is
        required and developer_id / session_id narrow the match.
        """
        query = select(ChatAssignment)
        if assignment_id is not None:
            query = query.where(ChatAssignment.id == assignment_id)
        else:
            query = query.where(ChatAssignment.chat_id == chat_id)
            if developer_id is not None:
                query = query.where(ChatAssignment.developer_id == developer_id)
            if session_id is not None:
                query = query.where(ChatAssignment.session_id == session_id)
        if not include_inactive:
            query = query.where(ChatAssignment.is_active.is_(True))
        result = await db.execute(query.order_by(ChatAssignment.assigned_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def unassign(
        db: AsyncSession, assignments: list[ChatAssignment], hard: bool = False
    ) -> int:
        for assignment in assignments:
            if hard:
                await db.delete(assignment)
            else:
                assignment.is_active = False
        await db.flush()
        logger.info(
            "Chats unassigned",
            count=len(assignments),
            hard=hard,
            assignment_ids=[a.id for a in assignments],
        )
        return len(assignments)
