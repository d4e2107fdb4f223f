"""
api/routes/websocket.py
-----------------------
Realtime notifications (mounted under /api/ws).

Browsers cannot send an Authorization header on a WebSocket handshake, so
the JWT travels as ?token=. Developers join their own room, admins the
shared admin room.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.logging import get_logger
from wadesk.db.session import get_db
from wadesk.dependencies import user_from_token
from wadesk.models.user import UserRole
from wadesk.services.developer_service import DeveloperService
from wadesk.services.notifier import ADMIN_ROOM, developer_room, notifier

logger = get_logger(__name__)

router = APIRouter(prefix="/ws", tags=["Realtime"])


@router.websocket("")
async def ws_endpoint(
    ws: WebSocket,
    db: Annotated[AsyncSession, Depends(get_db)],
    token: Annotated[str, Query()] = "",
) -> None:
    user = await user_from_token(db, token) if token else None
    room = None
    if user is not None and user.role == UserRole.admin.value:
        room = ADMIN_ROOM
    elif user is not None:
        developer = await DeveloperService.get_by_user_id(db, user.id)
        if developer is not None:
            room = developer_room(developer.id)
    # The connection is not needed while the socket stays open
    await db.close()

    if room is None:
        await ws.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await notifier.join(room, ws)
    logger.info("Websocket joined", room=room, user_id=user.id)
    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        notifier.leave(room, ws)
        logger.info("Websocket left", room=room, user_id=user.id)
