"""Schemas for access request submit/respond/revoke and list payloads."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class AccessRequestCreate(SQLModel):
    """Payload a doctor sends to ask for a patient's records."""

    patient_id: UUID
    notes: str | None = Field(
        default=None,
        description="Optional reason shown to the patient.",
        examples=["Follow-up on last week's lab results."],
    )


class AccessRequestRespond(SQLModel):
    """Patient decision on a pending request."""

    decision: str = Field(
        description="Either `approve` or `reject`.",
        examples=["approve"],
    )
    duration_minutes: int | None = Field(
        default=None,
        description="Grant length in minutes; required when approving.",
        examples=[60],
    )


class AccessRequestStatusRead(SQLModel):
    """Minimal outcome returned by the write endpoints."""

    id: UUID
    status: str
    expires_at: datetime | None = None


class ActiveAccessRequestRead(SQLModel):
    """One pending or live request as seen by the caller."""

    id: UUID
    counterparty_id: UUID
    notes: str | None = None
    status: str
    requested_at: datetime
    expires_at: datetime | None = None
