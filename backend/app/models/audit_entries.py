"""Append-only audit log for grant transitions and record reads."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class AuditEntry(QueryModel, table=True):
    """Append-only audit log entry; feeds the patient's record-access log."""

    __tablename__ = "audit_entries"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    actor_id: UUID = Field(index=True)
    actor_role: str = Field(index=True)  # doctor | patient | system
    action: str = Field(index=True)
    doctor_id: UUID | None = Field(default=None, index=True)
    patient_id: UUID | None = Field(default=None, index=True)
    target_type: str = Field(default="")
    target_id: UUID | None = None
    payload: dict[str, object] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, index=True)
