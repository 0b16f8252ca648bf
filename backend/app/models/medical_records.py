"""Medical record metadata served through the access gate."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class MedicalRecord(QueryModel, table=True):
    """Metadata for one stored record file; bytes are held by the file store."""

    __tablename__ = "medical_records"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    title: str = Field(default="")
    file_name: str
    content_type: str = Field(default="application/octet-stream")
    uploaded_at: datetime = Field(default_factory=utcnow)
