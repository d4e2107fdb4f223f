"""
schemas/common.py
-----------------
Shared pydantic base classes.

The HTTP API speaks camelCase (chatId, sessionId, ...) while Python code
stays snake_case; CamelModel bridges the two. Every success body carries
success=True, every error body is {"success": false, "error": "..."}.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(CamelModel):
    success: bool = True
    message: str | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
