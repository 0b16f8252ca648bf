"""Error payload schema shared by every API route."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel


class ErrorResponse(SQLModel):
    """Body returned for any non-2xx response."""

    detail: str | dict[str, object] | list[object] = Field(
        description="Human-readable message, or validation error list for 422s.",
        examples=["Access to these records is not permitted."],
    )
    request_id: str | None = Field(
        default=None,
        description="Echo of the `X-Request-Id` response header.",
    )
