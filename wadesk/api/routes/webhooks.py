"""
api/routes/webhooks.py
----------------------
Inbound gateway callbacks (mounted under /api/webhooks).

POST /waha                 — message and session state events.
POST /waha/session-events  — session.status events; upserts the registry.

When WAHA_WEBHOOK_HMAC_KEY is set, bodies must carry a valid X-Webhook-Hmac.
"""

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.config import settings
from wadesk.core.logging import get_logger
from wadesk.core.security import verify_webhook_hmac
from wadesk.db.session import get_db
from wadesk.models.whatsapp_session import SessionStatus
from wadesk.schemas.common import SuccessResponse
from wadesk.services.assignment_service import AssignmentService
from wadesk.services.notifier import ADMIN_ROOM, developer_room, notifier
from wadesk.services.session_service import SessionService, is_active_status
from wadesk.services.user_service import UserService

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


async def read_event(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if settings.WAHA_WEBHOOK_HMAC_KEY:
        received = request.headers.get("X-Webhook-Hmac", "")
        if not verify_webhook_hmac(raw, received, settings.WAHA_WEBHOOK_HMAC_KEY):
            logger.warning("Webhook signature mismatch", path=request.url.path)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")
    try:
        event = json.loads(raw.decode("utf-8"))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")
    if not isinstance(event, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")
    return event


def _event_data(event: dict[str, Any]) -> dict[str, Any]:
    data = event.get("payload") or event.get("data") or {}
    return data if isinstance(data, dict) else {}


async def _handle_message(db: AsyncSession, session_id: str, data: dict[str, Any]) -> None:
    if await SessionService.get(db, session_id) is None:
        logger.warning("Message for unknown session", session_id=session_id)
        return

    chat_id = data.get("from")
    if not chat_id:
        return

    notification = {
        "event": "message:new",
        "sessionId": session_id,
        "chatId": chat_id,
        "messageId": data.get("id"),
        "body": data.get("body"),
        "fromMe": bool(data.get("fromMe", False)),
        "timestamp": data.get("timestamp"),
    }

    assignments = await AssignmentService.list_assignments(
        db, chat_id=chat_id, session_id=session_id
    )
    if not assignments:
        logger.info("Message for unassigned chat", session_id=session_id, chat_id=chat_id)
    for assignment in assignments:
        await notifier.broadcast(developer_room(assignment.developer_id), notification)
    await notifier.broadcast(ADMIN_ROOM, notification)

    logger.info(
        "Message event dispatched",
        session_id=session_id,
        chat_id=chat_id,
        developers=[a.developer_id for a in assignments],
    )


@router.post(
    "/waha",
    response_model=SuccessResponse,
    summary="Gateway event webhook",
)
async def waha_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SuccessResponse:
    event = await read_event(request)
    name = event.get("event")
    session_id = event.get("session")
    data = _event_data(event)

    if not session_id:
        logger.info("Webhook without session ignored", webhook_event=name)
        return SuccessResponse()

    if name == "message":
        await _handle_message(db, session_id, data)
    elif name in ("state_change", "session.status"):
        session_state = (data.get("status") or SessionStatus.unknown.value).upper()
        row = await SessionService.set_status(
            db, session_id, session_state, is_active_status(session_state)
        )
        logger.info(
            "Session state changed",
            session_id=session_id,
            status=session_state,
            known=row is not None,
        )
    else:
        logger.info("Webhook event ignored", webhook_event=name, session_id=session_id)
    return SuccessResponse()


@router.post(
    "/waha/session-events",
    response_model=SuccessResponse,
    summary="Gateway session status webhook",
)
async def waha_session_events(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SuccessResponse:
    """
    Sessions discovered here are registered to the earliest admin, since
    the gateway does not know which admin started them.
    """
    event = await read_event(request)
    name = event.get("event")
    if name != "session.status":
        logger.warning("Unhandled webhook event", webhook_event=name)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unhandled event: {name}"
        )

    session_id = event.get("session")
    if not session_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing session")

    session_state = (_event_data(event).get("status") or SessionStatus.unknown.value).upper()
    admin = await UserService.first_admin(db)
    if admin is None:
        logger.warning("No admin user found for session", session_id=session_id)
        return SuccessResponse()

    await SessionService.upsert(db, session_id, admin.id, session_state)
    return SuccessResponse()
