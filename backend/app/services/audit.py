"""Audit trail writes and the patient-facing access log query."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import col, or_

from app.core.time import utcnow
from app.models.audit_entries import AuditEntry

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

RECORD_READ_ACTIONS = ("record.list", "record.read")
_ACCESS_LOG_DEFAULT_LIMIT = 200


def build_audit_entry(
    *,
    actor_id: UUID,
    actor_role: str,
    action: str,
    doctor_id: UUID | None = None,
    patient_id: UUID | None = None,
    target_type: str = "",
    target_id: UUID | None = None,
    payload: dict[str, object] | None = None,
    created_at: datetime | None = None,
) -> AuditEntry:
    return AuditEntry(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        doctor_id=doctor_id,
        patient_id=patient_id,
        target_type=target_type,
        target_id=target_id,
        payload=payload,
        created_at=created_at or utcnow(),
    )


async def record_audit(
    session: AsyncSession,
    *,
    actor_id: UUID,
    actor_role: str,
    action: str,
    doctor_id: UUID | None = None,
    patient_id: UUID | None = None,
    target_type: str = "",
    target_id: UUID | None = None,
    payload: dict[str, object] | None = None,
    commit: bool = True,
) -> AuditEntry:
    """Create an append-only audit log entry."""
    entry = build_audit_entry(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        doctor_id=doctor_id,
        patient_id=patient_id,
        target_type=target_type,
        target_id=target_id,
        payload=payload,
    )
    session.add(entry)
    if commit:
        await session.commit()
        await session.refresh(entry)
    return entry


async def list_patient_access_log(
    session: AsyncSession,
    *,
    patient_id: UUID,
    limit: int = _ACCESS_LOG_DEFAULT_LIMIT,
) -> list[AuditEntry]:
    """Return grant transitions and doctor record reads for a patient, newest first."""
    return await (
        AuditEntry.objects.filter_by(patient_id=patient_id)
        .filter(
            or_(
                col(AuditEntry.action).startswith("access_request."),
                col(AuditEntry.action).startswith("access_grant."),
                col(AuditEntry.action).in_(RECORD_READ_ACTIONS),
            ),
        )
        .order_by(col(AuditEntry.created_at).desc())
        .limit(limit)
        .all(session)
    )
