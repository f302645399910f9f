"""Response envelope shared by every endpoint.

    {"code": 0, "message": "success", "data": {...},
     "timestamp": "...", "request_id": "req_..."}

code is 0 on success and the AppError code otherwise; data is null on error.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=_new_request_id)


class Page(BaseModel):
    """Cursor page: next_cursor is the last key returned when has_more."""

    items: list[Any]
    next_cursor: str | None = None
    has_more: bool = False


def success_response(data: Any = None, message: str = "success") -> ApiResponse:
    return ApiResponse(code=0, message=message, data=data)


def page_response(items: list[Any], next_cursor: str | None, has_more: bool) -> ApiResponse:
    page = Page(items=items, next_cursor=next_cursor, has_more=has_more)
    return success_response(page.model_dump(mode="json"))


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)
