"""
api/routes/developers.py
------------------------
Admin-only endpoints for developer accounts (mounted under /api/developers).

POST   /                — Create a developer in the admin's organisation.
GET    /                — List the organisation's developers, newest first.
DELETE /{developer_id}  — Remove a developer, its user and its assignments.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.db.session import get_db
from wadesk.dependencies import get_current_admin
from wadesk.models.user import User
from wadesk.schemas.common import SuccessResponse
from wadesk.schemas.developer import (
    DeveloperCreate,
    DeveloperListResponse,
    DeveloperRead,
    DeveloperResponse,
)
from wadesk.services.developer_service import DeveloperService

router = APIRouter(prefix="/developers", tags=["Developers"])


@router.post(
    "",
    response_model=DeveloperResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Admin: create a developer account",
)
async def create_developer(
    body: DeveloperCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
) -> DeveloperResponse:
    """
    The organisation is sourced from the admin's JWT; admins cannot
    create developers for someone else.
    """
    try:
        developer = await DeveloperService.create_developer(db, body, admin)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return DeveloperResponse(developer=DeveloperRead.model_validate(developer))


@router.get(
    "",
    response_model=DeveloperListResponse,
    summary="Admin: list developers of the organisation",
)
async def list_developers(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
) -> DeveloperListResponse:
    developers = await DeveloperService.list_developers(db, admin.id)
    return DeveloperListResponse(
        developers=[DeveloperRead.model_validate(d) for d in developers]
    )


@router.delete(
    "/{developer_id}",
    response_model=SuccessResponse,
    summary="Admin: delete a developer account",
)
async def delete_developer(
    developer_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
) -> SuccessResponse:
    developer = await DeveloperService.get_developer(db, developer_id)
    if developer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Developer not found")
    if developer.organization_id != admin.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Developer belongs to another organisation",
        )

    await DeveloperService.delete_developer(db, developer)
    return SuccessResponse(message="Developer deleted successfully")
