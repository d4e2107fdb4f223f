"""
api/routes/system.py
--------------------
Operational endpoints (mounted under /api/system).

GET /waha-status — Admin: is the WhatsApp gateway reachable?
"""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends

from wadesk.dependencies import get_current_admin
from wadesk.models.user import User
from wadesk.schemas.whatsapp import GatewayStatusResponse
from wadesk.services.waha_client import WahaClient, get_waha_client

router = APIRouter(prefix="/system", tags=["System"])


@router.get(
    "/waha-status",
    response_model=GatewayStatusResponse,
    summary="Admin: check the WhatsApp gateway",
)
async def waha_status(
    admin: Annotated[User, Depends(get_current_admin)],
    waha: Annotated[WahaClient, Depends(get_waha_client)],
) -> GatewayStatusResponse:
    is_running, error_message = await waha.ping()
    return GatewayStatusResponse(
        waha_api_url=waha.base_url,
        has_api_key=waha.has_api_key,
        is_running=is_running,
        error_message=error_message,
        check_time=datetime.now(timezone.utc),
    )
