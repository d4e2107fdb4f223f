"""
services/session_service.py
---------------------------
Registry of WhatsApp sessions known to the application.

The gateway owns the real session state. Rows here are created or updated
when an admin starts/stops a session, when a sync is requested, when the
gateway pushes a status webhook, and lazily when an admin opens a session
the gateway reports as working but the registry has not seen yet.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.core.logging import get_logger
from wadesk.models.user import User, UserRole
from wadesk.models.whatsapp_session import (
    ACTIVE_STATUSES,
    LIVE_STATUSES,
    SessionStatus,
    WhatsAppSession,
)
from wadesk.services.waha_client import WahaClient, WahaError

logger = get_logger(__name__)


def is_active_status(status: Optional[str]) -> bool:
    return (status or "").upper() in ACTIVE_STATUSES


@dataclass
class SyncResult:
    created: int
    updated: int
    total: int


class SessionService:

    @staticmethod
    async def get(db: AsyncSession, session_id: str) -> WhatsAppSession | None:
        result = await db.execute(
            select(WhatsAppSession).where(WhatsAppSession.session_id == session_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert(
        db: AsyncSession,
        session_id: str,
        owner_id: str,
        status: str,
        is_active: Optional[bool] = None,
    ) -> WhatsAppSession:
        """Create or update the registry row; is_active defaults from status."""
        active = is_active_status(status) if is_active is None else is_active
        row = await SessionService.get(db, session_id)
        if row is None:
            row = WhatsAppSession(
                session_id=session_id, user_id=owner_id, status=status, is_active=active
            )
            db.add(row)
        else:
            row.user_id = owner_id
            row.status = status
            row.is_active = active
        await db.flush()
        logger.info(
            "Session registry updated",
            session_id=session_id,
            status=status,
            is_active=active,
        )
        return row

    @staticmethod
    async def set_status(
        db: AsyncSession, session_id: str, status: str, is_active: bool
    ) -> WhatsAppSession | None:
        """Update a known session; unknown sessions are left alone."""
        row = await SessionService.get(db, session_id)
        if row is None:
            return None
        row.status = status
        row.is_active = is_active
        await db.flush()
        return row

    @staticmethod
    async def resolve_for_user(
        db: AsyncSession, waha: WahaClient, session_id: str, user: User
    ) -> WhatsAppSession | None:
        """
        Find the registry row for session_id.

        Admins may reach sessions the registry has not seen yet: when the
        gateway reports them as working they are registered to the admin.
        """
        row = await SessionService.get(db, session_id)
        if row is not None or user.role != UserRole.admin.value:
            return row

        try:
            info = await waha.get_session(session_id)
        except WahaError as exc:
            logger.info("Session unknown to gateway", session_id=session_id, error=str(exc))
            return None

        status = (info or {}).get("status")
        if not is_active_status(status):
            return None
        return await SessionService.upsert(db, session_id, user.id, status, True)

    @staticmethod
    async def live_gateway_sessions(waha: WahaClient) -> list[dict]:
        sessions = await waha.list_sessions()
        return [s for s in sessions if (s.get("status") or "").upper() in LIVE_STATUSES]

    @staticmethod
    async def sync(db: AsyncSession, waha: WahaClient, admin: User) -> SyncResult:
        """
        Reconcile the registry with the gateway:
          - live gateway sessions missing from the registry are registered
            to this admin,
          - the admin's known sessions get the gateway's current status,
          - the admin's sessions the gateway no longer has become inactive.
        """
        gateway_sessions = await waha.list_sessions()
        by_name = {s.get("name"): s for s in gateway_sessions if s.get("name")}

        result = await db.execute(select(WhatsAppSession))
        rows = list(result.scalars().all())
        known = {row.session_id for row in rows}

        created = 0
        for name, info in by_name.items():
            status = (info.get("status") or "").upper()
            if name in known or status not in LIVE_STATUSES:
                continue
            db.add(
                WhatsAppSession(
                    session_id=name,
                    user_id=admin.id,
                    status=status,
                    is_active=is_active_status(status),
                )
            )
            created += 1

        updated = 0
        for row in rows:
            if row.user_id != admin.id:
                continue
            info = by_name.get(row.session_id)
            if info is None:
                status, active = SessionStatus.stopped.value, False
            else:
                status = (info.get("status") or SessionStatus.unknown.value).upper()
                active = is_active_status(status)
            if row.is_active != active or (info is not None and row.status != status):
                row.is_active = active
                row.status = status
                updated += 1

        await db.flush()
        logger.info(
            "Sessions synced",
            admin_id=admin.id,
            created=created,
            updated=updated,
            total=len(gateway_sessions),
        )
        return SyncResult(created=created, updated=updated, total=len(gateway_sessions))
