"""
models/chat_assignment.py
-------------------------
Ledger row granting a developer access to one chat of one WhatsApp session.

A chat may be assigned to several developers at once. Unassigning flips
is_active to False so the row can be reactivated on a later reassign; a
hard delete removes it. Read paths only consider active rows.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wadesk.db.base import Base, TimestampMixin, generate_uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatAssignment(Base, TimestampMixin):
    __tablename__ = "chat_assignments"
    __table_args__ = (
        UniqueConstraint(
            "developer_id", "session_id", "chat_id", name="uq_developer_session_chat"
        ),
        Index("ix_chat_assignments_session_chat", "session_id", "chat_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    developer_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("developers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chat_id: Mapped[str] = mapped_column(String(128), nullable=False)
    chat_name: Mapped[str] = mapped_column(String(255), nullable=False)
    session_id: Mapped[str] = mapped_column(String(128), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    developer: Mapped["Developer"] = relationship(  # noqa: F821
        "Developer", lazy="joined"
    )

    def __repr__(self) -> str:
        return (
            f"<ChatAssignment id={self.id} developer_id={self.developer_id} "
            f"chat_id={self.chat_id} active={self.is_active}>"
        )
