"""
api/routes/whatsapp.py
----------------------
Gateway proxy endpoints (mounted under /api/whatsapp).

GET    /sessions       — Admin: live gateway sessions.
POST   /sync-sessions  — Admin: reconcile the session registry with the gateway.
POST   /session        — Admin: create (if needed) and start a session.
GET    /session        — Session status, with a QR code while pairing.
DELETE /session        — Admin: stop a session.
POST   /session/restart — Admin: restart a registered session.
GET    /chats          — Admin: annotated chat page. Developer: assigned chats only.
GET    /messages       — Messages of one chat.
POST   /messages       — Send a text message to one chat.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.logging import get_logger
from wadesk.db.session import get_db
from wadesk.dependencies import get_current_admin, get_current_user
from wadesk.models.user import User, UserRole
from wadesk.models.whatsapp_session import SessionStatus, WhatsAppSession
from wadesk.schemas.common import SuccessResponse
from wadesk.schemas.whatsapp import (
    ChatListResponse,
    GatewaySession,
    MessageListResponse,
    Pagination,
    SendMessageRequest,
    SendMessageResponse,
    SessionListResponse,
    SessionStartRequest,
    SessionStartResponse,
    SessionStatusResponse,
    SyncSessionsResponse,
)
from wadesk.services.assignment_service import AssignmentService
from wadesk.services.chat_service import ChatService
from wadesk.services.developer_service import DeveloperService
from wadesk.services.session_service import SessionService
from wadesk.services.waha_client import WahaClient, WahaError, get_waha_client

logger = get_logger(__name__)

router = APIRouter(prefix="/whatsapp", tags=["WhatsApp"])

SessionIdQuery = Annotated[str, Query(alias="sessionId", min_length=1)]
LimitQuery = Annotated[int, Query(ge=1, le=500)]
OffsetQuery = Annotated[int, Query(ge=0)]


async def resolve_session(
    db: AsyncSession, waha: WahaClient, session_id: str, user: User
) -> WhatsAppSession:
    """Registry row for the session; admins may only use their own sessions."""
    row = await SessionService.resolve_for_user(db, waha, session_id, user)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    if user.role == UserRole.admin.value and row.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return row


async def ensure_chat_access(
    db: AsyncSession, waha: WahaClient, user: User, session_id: str, chat_id: str
) -> None:
    """Admins need the session; developers need an active assignment of the chat."""
    await resolve_session(db, waha, session_id, user)
    if user.role == UserRole.admin.value:
        return

    developer = await DeveloperService.get_by_user_id(db, user.id)
    if developer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Developer not found")
    if await AssignmentService.find_active(db, developer.id, chat_id, session_id) is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Chat not assigned to you")


# ── Sessions ──────────────────────────────────────────────────────────────────

@router.get(
    "/sessions",
    response_model=SessionListResponse,
    summary="Admin: list live gateway sessions",
)
async def list_sessions(
    admin: Annotated[User, Depends(get_current_admin)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
) -> SessionListResponse:
    sessions = await SessionService.live_gateway_sessions(waha)
    return SessionListResponse(
        sessions=[
            GatewaySession(
                id=s["name"],
                name=s["name"],
                status=s.get("status") or SessionStatus.unknown.value,
                config=s.get("config"),
                me=s.get("me"),
            )
            for s in sessions
        ]
    )


@router.post(
    "/sync-sessions",
    response_model=SyncSessionsResponse,
    summary="Admin: sync the session registry with the gateway",
)
async def sync_sessions(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
) -> SyncSessionsResponse:
    result = await SessionService.sync(db, waha, admin)
    return SyncSessionsResponse(
        synced_sessions=result.created,
        updated_sessions=result.updated,
        total_sessions=result.total,
        message=(
            f"Synced {result.created} new sessions and updated {result.updated} "
            "existing sessions"
        ),
    )


@router.post(
    "/session",
    response_model=SessionStartResponse,
    summary="Admin: start a WhatsApp session",
)
async def start_session(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
    body: Optional[SessionStartRequest] = None,
) -> SessionStartResponse:
    session_id = (body or SessionStartRequest()).session_id
    try:
        await waha.get_session(session_id)
    except WahaError as exc:
        if exc.status_code != status.HTTP_404_NOT_FOUND:
            raise
        logger.info("Creating gateway session", session_id=session_id)
        await waha.create_session(session_id)

    await waha.start_session(session_id)
    # Becomes active once the gateway reports the session as connected
    await SessionService.upsert(
        db, session_id, admin.id, SessionStatus.starting.value, is_active=False
    )
    return SessionStartResponse(session_id=session_id)


@router.get(
    "/session",
    response_model=SessionStatusResponse,
    summary="Get the status (and pairing QR code) of a session",
)
async def session_status(
    current_user: Annotated[User, Depends(get_current_user)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
    session_id: SessionIdQuery = "default",
) -> SessionStatusResponse:
    try:
        info = await waha.get_session(session_id)
    except WahaError as exc:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return SessionStatusResponse(status=SessionStatus.stopped.value)
        raise

    session_state = (info or {}).get("status") or SessionStatus.unknown.value
    qr_code = None
    if session_state == SessionStatus.scan_qr_code.value:
        try:
            qr_code = await waha.get_qr(session_id)
        except WahaError as exc:
            logger.warning("Could not fetch QR code", session_id=session_id, error=str(exc))
    return SessionStatusResponse(status=session_state, qr_code=qr_code)


@router.delete(
    "/session",
    response_model=SuccessResponse,
    summary="Admin: stop a WhatsApp session",
)
async def stop_session(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
    session_id: SessionIdQuery = "default",
) -> SuccessResponse:
    try:
        await waha.stop_session(session_id)
    except WahaError as exc:
        if exc.status_code != status.HTTP_404_NOT_FOUND:
            raise
    await SessionService.set_status(db, session_id, SessionStatus.stopped.value, False)
    return SuccessResponse(message="Session stopped")


@router.post(
    "/session/restart",
    response_model=SessionStartResponse,
    summary="Admin: restart a WhatsApp session",
)
async def restart_session(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
    body: Optional[SessionStartRequest] = None,
) -> SessionStartResponse:
    session_id = (body or SessionStartRequest()).session_id
    await resolve_session(db, waha, session_id, admin)
    await waha.restart_session(session_id)
    await SessionService.set_status(db, session_id, SessionStatus.starting.value, False)
    return SessionStartResponse(session_id=session_id)


# ── Chats & messages ──────────────────────────────────────────────────────────

@router.get(
    "/chats",
    response_model=ChatListResponse,
    summary="List chats of a session",
)
async def list_chats(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
    session_id: SessionIdQuery = "default",
    limit: LimitQuery = 20,
    offset: OffsetQuery = 0,
) -> ChatListResponse:
    await resolve_session(db, waha, session_id, current_user)

    if current_user.role == UserRole.admin.value:
        chats, pagination = await ChatService.admin_page(db, waha, session_id, limit, offset)
        return ChatListResponse(chats=chats, pagination=pagination)

    developer = await DeveloperService.get_by_user_id(db, current_user.id)
    if developer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Developer not found")
    chats, pagination = await ChatService.developer_page(
        db, waha, developer, session_id, limit, offset
    )
    return ChatListResponse(chats=chats, pagination=pagination)


@router.get(
    "/messages",
    response_model=MessageListResponse,
    summary="List messages of a chat",
)
async def list_messages(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
    chat_id: Annotated[Optional[str], Query(alias="chatId")] = None,
    session_id: SessionIdQuery = "default",
    limit: LimitQuery = 20,
    offset: OffsetQuery = 0,
) -> MessageListResponse:
    if not chat_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Chat ID is required")

    await ensure_chat_access(db, waha, current_user, session_id, chat_id)
    messages = await waha.get_messages(session_id, chat_id, limit, offset)
    return MessageListResponse(
        messages=messages,
        pagination=Pagination(limit=limit, offset=offset, has_more=len(messages) == limit),
    )


@router.post(
    "/messages",
    response_model=SendMessageResponse,
    summary="Send a text message",
)
async def send_message(
    body: SendMessageRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
) -> SendMessageResponse:
    await ensure_chat_access(db, waha, current_user, body.session_id, body.chat_id)
    result = await waha.send_text(body.session_id, body.chat_id, body.text)
    logger.info(
        "Message sent",
        user_id=current_user.id,
        session_id=body.session_id,
        chat_id=body.chat_id,
    )
    return SendMessageResponse(message=result)
