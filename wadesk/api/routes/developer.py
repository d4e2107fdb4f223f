"""
api/routes/developer.py
-----------------------
Developer inbox (mounted under /api/developer).

GET /chats — every active assignment of the caller, enriched with gateway details.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.db.session import get_db
from wadesk.dependencies import get_current_developer
from wadesk.models.developer import Developer
from wadesk.schemas.whatsapp import DeveloperChatListResponse
from wadesk.services.chat_service import ChatService
from wadesk.services.waha_client import WahaClient, get_waha_client

router = APIRouter(prefix="/developer", tags=["Developer"])


@router.get(
    "/chats",
    response_model=DeveloperChatListResponse,
    summary="Developer: list assigned chats",
)
async def list_assigned_chats(
    db: Annotated[AsyncSession, Depends(get_db)],
    developer: Annotated[Developer, Depends(get_current_developer)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
) -> DeveloperChatListResponse:
    chats = await ChatService.developer_inbox(db, waha, developer)
    return DeveloperChatListResponse(chats=chats)
