"""
api/routes/assignments.py
-------------------------
The chat assignment ledger (mounted under /api/assignments).

POST   /          — Admin: assign a chat to a developer.
POST   /reassign  — Admin: hand a chat over to exactly one developer.
GET    /          — Admin: filtered ledger. Developer: own assignments.
DELETE /          — Admin: unassign by id, by pairing, or every developer of a chat.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from wadesk.db.session import get_db
from wadesk.dependencies import get_current_admin, get_current_user
from wadesk.models.developer import Developer
from wadesk.models.user import User, UserRole
from wadesk.schemas.assignment import (
    AssignedDeveloper,
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentRead,
    AssignmentResponse,
    ChatDetails,
    ReassignResponse,
    SingleAssignmentResponse,
    UnassignResponse,
)
from wadesk.services.assignment_service import AssignmentService
from wadesk.services.developer_service import DeveloperService

router = APIRouter(prefix="/assignments", tags=["Assignments"])


async def _developer_or_404(db: AsyncSession, developer_id: str) -> Developer:
    developer = await DeveloperService.get_developer(db, developer_id)
    if developer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Developer not found")
    return developer


@router.post(
    "",
    response_model=AssignmentResponse,
    summary="Admin: assign a chat to a developer",
)
async def assign_chat(
    body: AssignmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
) -> AssignmentResponse:
    developer = await _developer_or_404(db, body.developer_id)
    try:
        assignment, changed = await AssignmentService.assign(
            db, developer, body.chat_id, body.chat_name, body.session_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    message = (
        "Chat assigned successfully" if changed else "Chat is already assigned to this developer"
    )
    return AssignmentResponse(
        message=message, assignment=AssignmentRead.from_assignment(assignment)
    )


@router.post(
    "/reassign",
    response_model=ReassignResponse,
    summary="Admin: move a chat to a single developer",
)
async def reassign_chat(
    body: AssignmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
) -> ReassignResponse:
    developer = await _developer_or_404(db, body.developer_id)
    try:
        assignment, others = await AssignmentService.reassign(
            db, developer, body.chat_id, body.chat_name, body.session_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    return ReassignResponse(
        message="Chat reassigned successfully",
        assignment=AssignmentRead.from_assignment(assignment),
        unassigned=[AssignmentRead.from_assignment(o) for o in others],
    )


@router.get(
    "",
    response_model=AssignmentListResponse | SingleAssignmentResponse,
    response_model_exclude_none=True,
    summary="List chat assignments",
)
async def list_assignments(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    chat_id: Annotated[Optional[str], Query(alias="chatId")] = None,
    developer_id: Annotated[Optional[str], Query(alias="developerId")] = None,
    session_id: Annotated[Optional[str], Query(alias="sessionId")] = None,
):
    """
    Admins may filter by chat, developer and session; a chat filter also
    reports whether the chat is assigned at all. Developers only ever see
    their own assignments, and asking for a chat they do not hold is a 403.
    """
    if current_user.role == UserRole.admin.value:
        rows = await AssignmentService.list_assignments(
            db, chat_id=chat_id, developer_id=developer_id, session_id=session_id
        )
        return AssignmentListResponse(
            assignments=[AssignmentRead.from_assignment(a) for a in rows],
            is_assigned=bool(rows) if chat_id is not None else None,
        )

    developer = await DeveloperService.get_by_user_id(db, current_user.id)
    if developer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Developer profile not found"
        )

    if chat_id is not None:
        assignment = await AssignmentService.find_active(db, developer.id, chat_id, session_id)
        if assignment is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Chat not assigned to you"
            )
        return SingleAssignmentResponse(assignment=AssignmentRead.from_assignment(assignment))

    rows = await AssignmentService.list_assignments(
        db, developer_id=developer.id, session_id=session_id
    )
    return AssignmentListResponse(assignments=[AssignmentRead.from_assignment(a) for a in rows])


@router.delete(
    "",
    response_model=UnassignResponse,
    response_model_exclude_none=True,
    summary="Admin: unassign a chat",
)
async def unassign_chat(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin)],
    assignment_id: Annotated[Optional[str], Query(alias="id")] = None,
    chat_id: Annotated[Optional[str], Query(alias="chatId")] = None,
    developer_id: Annotated[Optional[str], Query(alias="developerId")] = None,
    session_id: Annotated[Optional[str], Query(alias="sessionId")] = None,
    hard: bool = False,
) -> UnassignResponse:
    """
    Soft by default: rows are deactivated and come back to life when the
    chat is assigned again. hard=true removes the rows (inactive ones too).
    """
    if assignment_id is None and chat_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either assignment id or chatId is required",
        )

    rows = await AssignmentService.find_for_unassign(
        db,
        assignment_id=assignment_id,
        chat_id=chat_id,
        developer_id=developer_id,
        session_id=session_id,
        include_inactive=hard,
    )
    if not rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")

    first = rows[0]
    chat_details = ChatDetails(id=first.chat_id, name=first.chat_name)
    developer_details = None
    if len({a.developer_id for a in rows}) == 1 and first.developer is not None:
        developer_details = AssignedDeveloper(
            id=first.developer.id,
            name=first.developer.user.name,
            email=first.developer.user.email,
        )

    count = await AssignmentService.unassign(db, rows, hard=hard)

    if developer_details is not None:
        message = f"Chat '{first.chat_name}' unassigned from {developer_details.name}"
    else:
        message = f"Chat '{first.chat_name}' unassigned from {count} developers"

    return UnassignResponse(
        unassigned_chat=first.chat_id,
        unassigned_count=count,
        chat_details=chat_details,
        developer_details=developer_details,
        message=message,
    )
