"""Doctor-to-patient access requests and the grants they become."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint
from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


def active_key_for(doctor_id: UUID, patient_id: UUID) -> str:
    """Return the uniqueness key held by a pair's single active request."""
    return f"{doctor_id}:{patient_id}"


class AccessGrantRequest(QueryModel, table=True):
    """A doctor's request for a patient's records and its consent outcome.

    Rows are never deleted. `expires_at` is non-null exactly while the stored
    status is `approved`; expiry is computed at read time and never written
    back into `status`.
    """

    __tablename__ = "access_grant_requests"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'revoked')",
            name="ck_access_grant_requests_status",
        ),
        CheckConstraint(
            "(status = 'approved') = (expires_at IS NOT NULL)",
            name="ck_access_grant_requests_expiry_iff_approved",
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    patient_id: UUID = Field(foreign_key="patients.id", index=True)
    status: str = Field(default="pending", index=True)  # pending | approved | rejected | revoked
    notes: str | None = None
    requested_at: datetime = Field(default_factory=utcnow)
    responded_at: datetime | None = None
    expires_at: datetime | None = Field(default=None, index=True)
    # Non-null while the row may still be active; unique per (doctor, patient).
    active_key: str | None = Field(default=None, unique=True)
