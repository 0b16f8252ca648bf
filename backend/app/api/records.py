"""Patient record reads, gated per request, and the patient's access log."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Query
from sqlmodel import col

from app.api.deps import AUTH_DEP, PATIENT_DEP, SESSION_DEP
from app.core.auth import AuthContext
from app.models.medical_records import MedicalRecord
from app.models.patients import Patient
from app.schemas.audit import AuditEntryRead
from app.schemas.records import MedicalRecordRead
from app.services.access_grants.errors import ForbiddenError, NotFoundError
from app.services.access_grants.gate import require_access
from app.services.audit import list_patient_access_log, record_audit

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/patients", tags=["records"])
ACCESS_LOG_LIMIT_QUERY = Query(default=100, ge=1, le=500)


async def _authorize_record_read(
    session: AsyncSession,
    *,
    auth: AuthContext,
    patient_id: UUID,
) -> None:
    if auth.is_patient:
        if auth.actor_id != patient_id:
            raise ForbiddenError
    else:
        await require_access(session, doctor_id=auth.actor_id, patient_id=patient_id)
    if await Patient.objects.by_id(patient_id).first(session) is None:
        raise NotFoundError("Patient not found")


@router.get("/me/access-log", response_model=list[AuditEntryRead])
async def get_my_access_log(
    session: AsyncSession = SESSION_DEP,
    auth: AuthContext = PATIENT_DEP,
    limit: int = ACCESS_LOG_LIMIT_QUERY,
) -> list[AuditEntryRead]:
    """Show the patient who requested, was granted, and read their records."""
    entries = await list_patient_access_log(session, patient_id=auth.actor_id, limit=limit)
    return [AuditEntryRead.model_validate(entry, from_attributes=True) for entry in entries]


@router.get("/{patient_id}/records", response_model=list[MedicalRecordRead])
async def list_patient_records(
    patient_id: UUID,
    session: AsyncSession = SESSION_DEP,
    auth: AuthContext = AUTH_DEP,
) -> list[MedicalRecordRead]:
    """List a patient's records; doctors need a live grant."""
    await _authorize_record_read(session, auth=auth, patient_id=patient_id)
    records = await (
        MedicalRecord.objects.filter_by(patient_id=patient_id)
        .order_by(col(MedicalRecord.uploaded_at).desc())
        .all(session)
    )
    if auth.is_doctor:
        await record_audit(
            session,
            actor_id=auth.actor_id,
            actor_role="doctor",
            action="record.list",
            doctor_id=auth.actor_id,
            patient_id=patient_id,
            target_type="patient",
            target_id=patient_id,
            payload={"count": len(records)},
        )
    return [MedicalRecordRead.model_validate(record, from_attributes=True) for record in records]


@router.get("/{patient_id}/records/{record_id}", response_model=MedicalRecordRead)
async def get_patient_record(
    patient_id: UUID,
    record_id: UUID,
    session: AsyncSession = SESSION_DEP,
    auth: AuthContext = AUTH_DEP,
) -> MedicalRecordRead:
    """Return one record's metadata; doctors need a live grant."""
    await _authorize_record_read(session, auth=auth, patient_id=patient_id)
    record = await MedicalRecord.objects.by_id(record_id).first(session)
    if record is None or record.patient_id != patient_id:
        raise NotFoundError("Record not found")
    result = MedicalRecordRead.model_validate(record, from_attributes=True)
    if auth.is_doctor:
        await record_audit(
            session,
            actor_id=auth.actor_id,
            actor_role="doctor",
            action="record.read",
            doctor_id=auth.actor_id,
            patient_id=patient_id,
            target_type="medical_record",
            target_id=record_id,
        )
    return result
