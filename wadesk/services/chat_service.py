"""
services/chat_service.py
------------------------
Shapes gateway chat lists for admins and developers.

Admins see the raw gateway page annotated with who each chat is assigned
to. Developers only ever see chats the ledger grants them; the developer
inbox lists every active assignment even when the gateway cannot confirm
the chat (deleted chat, stopped session, gateway outage), flagged with
isActive=False.
"""

from collections import defaultdict
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.config import settings
from wadesk.core.logging import get_logger
from wadesk.models.chat_assignment import ChatAssignment
from wadesk.models.developer import Developer
from wadesk.schemas.assignment import AssignmentRead
from wadesk.schemas.whatsapp import DeveloperChat, Pagination
from wadesk.services.assignment_service import AssignmentService
from wadesk.services.session_service import SessionService
from wadesk.services.waha_client import WahaClient, WahaError, serialized_chat_id

logger = get_logger(__name__)


class ChatService:

    @staticmethod
    async def admin_page(
        db: AsyncSession,
        waha: WahaClient,
        session_id: str,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], Pagination]:
        chats = await waha.get_chats(session_id, limit, offset)
        assignments = await AssignmentService.list_assignments(db, session_id=session_id)

        by_chat: dict[str, list[ChatAssignment]] = defaultdict(list)
        for assignment in assignments:
            by_chat[assignment.chat_id].append(assignment)

        annotated = []
        for chat in chats:
            rows = by_chat.get(serialized_chat_id(chat), [])
            annotated.append(
                {
                    **chat,
                    "isAssigned": bool(rows),
                    "assignments": [
                        AssignmentRead.from_assignment(a).model_dump(mode="json", by_alias=True)
                        for a in rows
                    ],
                }
            )

        return annotated, Pagination(
            limit=limit, offset=offset, has_more=len(chats) == limit
        )

    @staticmethod
    async def developer_page(
        db: AsyncSession,
        waha: WahaClient,
        developer: Developer,
        session_id: str,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], Pagination]:
        assignments = await AssignmentService.list_assignments(
            db, developer_id=developer.id, session_id=session_id
        )
        assigned_ids = {a.chat_id for a in assignments}

        chats = await waha.get_chats(session_id, limit, offset)
        visible = [c for c in chats if serialized_chat_id(c) in assigned_ids]

        return visible, Pagination(
            limit=limit,
            offset=offset,
            has_more=len(chats) == limit and len(visible) > 0,
        )

    @staticmethod
    async def developer_inbox(
        db: AsyncSession, waha: WahaClient, developer: Developer
    ) -> list[DeveloperChat]:
        """Every active assignment of the developer, enriched from the gateway."""
        assignments = await AssignmentService.list_assignments(db, developer_id=developer.id)

        by_session: dict[str, list[ChatAssignment]] = defaultdict(list)
        for assignment in assignments:
            by_session[assignment.session_id].append(assignment)

        inbox: list[DeveloperChat] = []
        for session_id, session_assignments in by_session.items():
            registry_row = await SessionService.get(db, session_id)
            if registry_row is None or not registry_row.is_active:
                logger.warning("Skipping inactive session", session_id=session_id)
                continue

            try:
                chats = await waha.get_chats(session_id, settings.WAHA_CHAT_SCAN_LIMIT, 0)
            except WahaError as exc:
                logger.error(
                    "Could not fetch chats for developer inbox",
                    session_id=session_id,
                    error=str(exc),
                )
                inbox.extend(
                    _unconfirmed_chat(a, error="WhatsApp API unavailable")
                    for a in session_assignments
                )
                continue

            chat_map = {serialized_chat_id(c): c for c in chats}
            for assignment in session_assignments:
                chat = chat_map.get(assignment.chat_id)
                if chat is None:
                    inbox.append(_unconfirmed_chat(assignment))
                    continue
                inbox.append(
                    DeveloperChat(
                        assignment_id=assignment.id,
                        chat_id=assignment.chat_id,
                        chat_name=assignment.chat_name,
                        session_id=assignment.session_id,
                        assigned_at=assignment.assigned_at,
                        id=chat.get("id"),
                        name=chat.get("name") or assignment.chat_name,
                        is_group=bool(chat.get("isGroup", False)),
                        last_message=chat.get("lastMessage"),
                        session_name=session_id,
                        is_active=True,
                    )
                )
        return inbox


def _unconfirmed_chat(assignment: ChatAssignment, error: str | None = None) -> DeveloperChat:
    return DeveloperChat(
        assignment_id=assignment.id,
        chat_id=assignment.chat_id,
        chat_name=assignment.chat_name,
        session_id=assignment.session_id,
        assigned_at=assignment.assigned_at,
        id=assignment.chat_id,
        name=assignment.chat_name,
        session_name=assignment.session_id,
        is_active=False,
        error=error,
    )
