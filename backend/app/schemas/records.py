"""Schemas for medical record metadata returned behind the access gate."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class MedicalRecordRead(SQLModel):
    """Record metadata; file contents are served by the storage service."""

    id: UUID
    patient_id: UUID
    title: str
    file_name: str
    content_type: str
    uploaded_at: datetime
