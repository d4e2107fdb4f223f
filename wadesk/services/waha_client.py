"""
services/waha_client.py
-----------------------
Async client for the WAHA WhatsApp gateway.

The gateway exposes REST endpoints under {WAHA_URL}/api; every call carries
the optional X-Api-Key header. Non-2xx answers and transport failures are
raised as WahaError so routes can map them onto a 502 (or inspect
status_code, e.g. to treat 404 as "session does not exist").

Chats are addressed by WhatsApp JIDs; the suffix decides which gateway
endpoint handles messages for it (see determine_chat_type).
"""

from enum import Enum
from typing import Any, Optional

import httpx

from wadesk.core.config import settings
from wadesk.core.logging import get_logger

logger = get_logger(__name__)


class ChatType(str, Enum):
    PERSONAL = "personal"
    GROUP = "group"
    BROADCAST = "broadcast"
    CHANNEL = "channel"
    UNKNOWN = "unknown"


def determine_chat_type(chat_id: str) -> ChatType:
    if chat_id.endswith("@g.us"):
        return ChatType.GROUP
    if chat_id.endswith("@broadcast"):
        return ChatType.BROADCAST
    if chat_id.endswith("@newsletter"):
        return ChatType.CHANNEL
    if chat_id.endswith("@c.us"):
        return ChatType.PERSONAL
    return ChatType.UNKNOWN


def serialized_chat_id(chat: dict) -> str:
    """WAHA engines return chat ids either as a string or as {_serialized: ...}."""
    chat_id = chat.get("id")
    if isinstance(chat_id, dict):
        return chat_id.get("_serialized") or ""
    return chat_id or ""


class WahaError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class WahaClient:

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else settings.WAHA_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.WAHA_API_KEY

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key

        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/api",
            headers=headers,
            timeout=timeout or settings.WAHA_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.warning(
                "Gateway returned an error",
                method=method,
                path=path,
                status_code=status_code,
            )
            raise WahaError(
                f"{method} {path} returned {status_code}", status_code=status_code
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Gateway unreachable", method=method, path=path, error=str(exc))
            raise WahaError(f"{method} {path} failed: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # ── Sessions ──────────────────────────────────────────────────────────────

    async def list_sessions(self) -> list[dict]:
        return await self._request("GET", "/sessions", params={"all": "true"}) or []

    async def get_session(self, session_id: str) -> dict:
        return await self._request("GET", f"/sessions/{session_id}")

    async def create_session(self, session_id: str, config: Optional[dict] = None) -> dict:
        body: dict[str, Any] = {"name": session_id}
        if config:
            body["config"] = config
        return await self._request("POST", "/sessions", json=body)

    async def start_session(self, session_id: str) -> dict:
        return await self._request("POST", f"/sessions/{session_id}/start")

    async def stop_session(self, session_id: str) -> dict:
        return await self._request("POST", f"/sessions/{session_id}/stop")

    async def restart_session(self, session_id: str) -> dict:
        return await self._request("POST", f"/sessions/{session_id}/restart")

    async def get_qr(self, session_id: str) -> Optional[str]:
        data = await self._request(
            "GET", f"/{session_id}/auth/qr", params={"format": "raw"}
        )
        if isinstance(data, dict):
            return data.get("value") or data.get("qr")
        return data

    # ── Chats & messages ──────────────────────────────────────────────────────

    async def get_chats(self, session_id: str, limit: int = 20, offset: int = 0) -> list[dict]:
        return await self._request(
            "GET",
            f"/{session_id}/chats",
            params={"limit": limit, "offset": offset},
        ) or []

    async def get_messages(
        self, session_id: str, chat_id: str, limit: int = 20, offset: int = 0
    ) -> list[dict]:
        chat_type = determine_chat_type(chat_id)
        if chat_type == ChatType.BROADCAST:
            path = f"/{session_id}/broadcasts/{chat_id}/messages"
        elif chat_type == ChatType.CHANNEL:
            path = f"/{session_id}/channels/{chat_id}/messages"
        else:
            path = f"/{session_id}/chats/{chat_id}/messages"
        return await self._request(
            "GET", path, params={"limit": limit, "offset": offset}
        ) or []

    async def send_text(self, session_id: str, chat_id: str, text: str) -> Any:
        if determine_chat_type(chat_id) == ChatType.CHANNEL:
            return await self._request(
                "POST", f"/{session_id}/channels/{chat_id}/posts", json={"text": text}
            )
        return await self._request(
            "POST",
            "/sendText",
            json={"session": session_id, "chatId": chat_id, "text": text},
        )

    # ── Health ────────────────────────────────────────────────────────────────

    async def ping(self) -> tuple[bool, Optional[str]]:
        """Hit the gateway root; returns (is_running, error_message)."""
        try:
            response = await self._client.get(f"{self.base_url}/")
        except httpx.HTTPError as exc:
            return False, str(exc) or "Could not connect to WAHA API"
        if response.status_code == 200:
            return True, None
        return False, f"Gateway answered {response.status_code}"


# Singleton — shares one connection pool across all requests
waha_client = WahaClient()


def get_waha_client() -> WahaClient:
    """FastAPI dependency; overridden in tests with a mock-transport client."""
    return waha_client
