"""Response envelope models.

Success responses use {"data": ...}; errors use {"error": {...}}.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    Usage:
        @router.get("/users/me")
        async def get_me(...) -> DataResponse[ProfileView]:
            profile = await service.get_profile(user_id)
            return DataResponse(data=profile)
    """

    data: T


class MessageData(BaseModel):
    """Plain confirmation payload."""

    message: str


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
        stack: Stack trace, only populated in development.
    """

    code: str
    message: str
    details: list[dict] | None = None
    stack: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorDetail
