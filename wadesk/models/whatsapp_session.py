"""
models/whatsapp_session.py
--------------------------
Registry mirror of the gateway's WhatsApp sessions.

The gateway is the source of truth for session state; this table records
which sessions are known, which admin owns them, and the last status seen
through webhooks, start/stop calls or an explicit sync.
"""

from enum import Enum as PyEnum

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from wadesk.db.base import Base, TimestampMixin, generate_uuid


class SessionStatus(str, PyEnum):
    stopped = "STOPPED"
    starting = "STARTING"
    scan_qr_code = "SCAN_QR_CODE"
    working = "WORKING"
    failed = "FAILED"
    unknown = "UNKNOWN"


# Statuses under which the session can send and receive messages.
ACTIVE_STATUSES = frozenset({"WORKING", "CONNECTED"})
# Statuses listed to the admin as usable or about to be.
LIVE_STATUSES = ACTIVE_STATUSES | {"STARTING"}


class WhatsAppSession(Base, TimestampMixin):
    __tablename__ = "whatsapp_sessions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    session_id: Mapped[str] = mapped_column(
        String(128), unique=True, nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), default=SessionStatus.unknown.value, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<WhatsAppSession session_id={self.session_id} "
            f"status={self.status} active={self.is_active}>"
        )
