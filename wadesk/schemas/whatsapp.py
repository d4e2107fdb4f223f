"""
schemas/whatsapp.py
-------------------
Pydantic models for the gateway proxy endpoints.

Chat and message objects are passed through from the gateway as plain
dicts (their shape belongs to WAHA); only the envelopes are typed here.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from wadesk.schemas.common import CamelModel


class SessionStartRequest(CamelModel):
    session_id: str = Field(default="default", min_length=1, max_length=128)


class SessionStartResponse(CamelModel):
    success: bool = True
    session_id: str


class SessionStatusResponse(CamelModel):
    success: bool = True
    status: str
    qr_code: Optional[str] = None


class GatewaySession(CamelModel):
    id: str
    name: str
    status: str
    config: Optional[dict[str, Any]] = None
    me: Optional[dict[str, Any]] = None


class SessionListResponse(CamelModel):
    success: bool = True
    sessions: list[GatewaySession]


class SyncSessionsResponse(CamelModel):
    success: bool = True
    synced_sessions: int
    updated_sessions: int
    total_sessions: int
    message: str


class Pagination(CamelModel):
    limit: int
    offset: int
    has_more: bool


class ChatListResponse(CamelModel):
    success: bool = True
    chats: list[dict[str, Any]]
    pagination: Pagination


class DeveloperChat(CamelModel):
    assignment_id: str
    chat_id: str
    chat_name: str
    session_id: str
    assigned_at: datetime
    id: Any
    name: str
    is_group: bool = False
    last_message: Optional[Any] = None
    session_name: str
    is_active: bool
    unread_count: int = 0
    error: Optional[str] = None


class DeveloperChatListResponse(CamelModel):
    success: bool = True
    chats: list[DeveloperChat]


class MessageListResponse(CamelModel):
    success: bool = True
    messages: list[dict[str, Any]]
    pagination: Pagination


class SendMessageRequest(CamelModel):
    chat_id: str = Field(..., min_length=1, max_length=128)
    text: str = Field(..., min_length=1, max_length=65536)
    session_id: str = Field(default="default", min_length=1, max_length=128)


class SendMessageResponse(CamelModel):
    success: bool = True
    message: Any


class GatewayStatusResponse(CamelModel):
    waha_api_url: str
    has_api_key: bool
    is_running: bool
    error_message: Optional[str] = None
    check_time: datetime
