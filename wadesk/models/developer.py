"""
models/developer.py
-------------------
Developer profile, one-to-one with a User of role 'developer'.

organization_id points at the admin user who created the developer; an
admin only sees and manages the developers of their own organisation.
"""


from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wadesk.db.base import Base, TimestampMixin, generate_uuid


class Developer(Base, TimestampMixin):
    __tablename__ = "developers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    user: Mapped["User"] = relationship(  # noqa: F821
        "User", foreign_keys=[user_id], lazy="joined"
    )

    def __repr__(self) -> str:
        return f"<Developer id={self.id} user_id={self.user_id}>"
