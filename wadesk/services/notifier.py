"""
services/notifier.py
--------------------
In-process WebSocket rooms used to push gateway events to connected users.

Rooms:
  developer:{developer_id}  — one per developer, receives their chats' events
  admins                    — every connected admin
"""

from typing import Dict, Set

from fastapi import WebSocket

from wadesk.core.logging import get_logger

logger = get_logger(__name__)

ADMIN_ROOM = "admins"


def developer_room(developer_id: str) -> str:
    return f"developer:{developer_id}"


class Notifier:
    def __init__(self) -> None:
        self.rooms: Dict[str, Set[WebSocket]] = {}

    async def join(self, room: str, ws: WebSocket) -> None:
        await ws.accept()
        self.rooms.setdefault(room, set()).add(ws)

    def leave(self, room: str, ws: WebSocket) -> None:
        if room in self.rooms:
            self.rooms[room].discard(ws)
            if not self.rooms[room]:
                self.rooms.pop(room, None)

    async def broadcast(self, room: str, payload: dict) -> int:
        """Send payload to every socket of the room; returns how many got it."""
        delivered = 0
        for ws in list(self.rooms.get(room, [])):
            try:
                await ws.send_json(payload)
                delivered += 1
            except Exception as exc:
                # A dead socket must not stop delivery to the rest of the room
                logger.info("Dropping dead websocket", room=room, error=str(exc))
                self.leave(room, ws)
        return delivered


notifier = Notifier()
