"""
schemas/assignment.py
---------------------
Pydantic models for the chat assignment ledger.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from wadesk.schemas.common import CamelModel


class AssignmentCreate(CamelModel):
    developer_id: str = Field(..., min_length=1)
    chat_id: str = Field(..., min_length=1, max_length=128)
    chat_name: str = Field(..., min_length=1, max_length=255)
    session_id: str = Field(default="default", min_length=1, max_length=128)


class AssignedDeveloper(CamelModel):
    id: str
    name: str
    email: str


class AssignmentRead(CamelModel):
    id: str
    developer_id: str
    chat_id: str
    chat_name: str
    session_id: str
    assigned_at: datetime
    is_active: bool
    developer: Optional[AssignedDeveloper] = None

    @classmethod
    def from_assignment(cls, assignment) -> "AssignmentRead":
        """Flatten the joined Developer → User rows into the response shape."""
        developer = None
        if assignment.developer is not None and assignment.developer.user is not None:
            developer = AssignedDeveloper(
                id=assignment.developer.id,
                name=assignment.developer.user.name,
                email=assignment.developer.user.email,
            )
        return cls(
            id=assignment.id,
            developer_id=assignment.developer_id,
            chat_id=assignment.chat_id,
            chat_name=assignment.chat_name,
            session_id=assignment.session_id,
            assigned_at=assignment.assigned_at,
            is_active=assignment.is_active,
            developer=developer,
        )


class AssignmentResponse(CamelModel):
    success: bool = True
    message: str
    assignment: AssignmentRead


class ReassignResponse(CamelModel):
    success: bool = True
    message: str
    assignment: AssignmentRead
    unassigned: list[AssignmentRead]


class AssignmentListResponse(CamelModel):
    success: bool = True
    assignments: list[AssignmentRead]
    is_assigned: Optional[bool] = None


class SingleAssignmentResponse(CamelModel):
    success: bool = True
    assignment: AssignmentRead


class ChatDetails(CamelModel):
    id: str
    name: str


class UnassignResponse(CamelModel):
    success: bool = True
    unassigned_chat: str
    unassigned_count: int
    chat_details: Optional[ChatDetails] = None
    developer_details: Optional[AssignedDeveloper] = None
    message: str
