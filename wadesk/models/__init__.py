"""
models/__init__.py
------------------
Re-export all models so scripts can import Base and discover
all tables via a single import:

    from wadesk.models import Base
"""

from wadesk.db.base import Base
from wadesk.models.user import User, UserRole
from wadesk.models.developer import Developer
from wadesk.models.chat_assignment import ChatAssignment
from wadesk.models.whatsapp_session import WhatsAppSession

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Developer",
    "ChatAssignment",
    "WhatsAppSession",
]
