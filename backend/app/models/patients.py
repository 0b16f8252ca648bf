"""Patient directory entries consulted for existence checks."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Patient(QueryModel, table=True):
    """Minimal patient record; profile data lives in the external directory."""

    __tablename__ = "patients"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    full_name: str = Field(default="")
    patient_tag_id: str | None = Field(default=None, unique=True)
    is_blocked: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
