"""Grant request lifecycle: submit, respond, revoke, and active listings.

All coordination happens in the database. Submissions rely on the unique
`active_key` column; responses and revocations are compare-and-set updates
keyed on the stored status, so concurrent callers see exactly one winner.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from app.core import time as clock
from app.core.config import settings
from app.core.logging import get_logger
from app.models.access_grant_requests import AccessGrantRequest, active_key_for
from app.models.doctors import Doctor
from app.models.patients import Patient
from app.services.access_grants.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.services.access_grants.state import (
    ACTIVE_STATUSES,
    DECISION_TARGETS,
    Decision,
    EffectiveStatus,
    GrantStatus,
    can_transition,
    effective_status,
)
from app.services.audit import build_audit_entry
from app.services.grant_notifications import GrantNotification, enqueue_notification
from app.services.grant_notifications.queue import APPROVED, REJECTED, REVOKED, SUBMITTED

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)

DUPLICATE_ACTIVE_DETAIL = "An active access request already exists for this patient."
ALREADY_RESPONDED_DETAIL = "Access request has already been responded to."
_NOTIFICATION_EVENTS: dict[GrantStatus, str] = {
    GrantStatus.APPROVED: APPROVED,
    GrantStatus.REJECTED: REJECTED,
}


@dataclass(frozen=True)
class ActiveRequestView:
    """A pending or live request as shown to one of its two parties."""

    id: UUID
    counterparty_id: UUID
    notes: str | None
    status: EffectiveStatus
    requested_at: datetime
    expires_at: datetime | None


def _normalize_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    cleaned = notes.strip()
    if not cleaned:
        return None
    if len(cleaned) > settings.grant_notes_max_length:
        raise ValidationError(
            f"Notes must be at most {settings.grant_notes_max_length} characters.",
        )
    return cleaned


def _parse_decision(decision: Decision | str) -> Decision:
    try:
        return Decision(decision)
    except ValueError as exc:
        raise ValidationError("Decision must be 'approve' or 'reject'.") from exc


def _validate_duration(duration_minutes: int | None) -> int:
    low = settings.grant_min_duration_minutes
    high = settings.grant_max_duration_minutes
    if (
        duration_minutes is None
        or isinstance(duration_minutes, bool)
        or not isinstance(duration_minutes, int)
    ):
        raise ValidationError("duration_minutes is required to approve a request.")
    if not low <= duration_minutes <= high:
        raise ValidationError(
            f"duration_minutes must be between {low} and {high}.",
        )
    return duration_minutes


def _assert_transition(current: GrantStatus, target: GrantStatus) -> None:
    if not can_transition(current, target):
        raise RuntimeError(f"illegal grant transition {current.value} -> {target.value}")


def _notify(
    event_type: str,
    request: AccessGrantRequest,
    *,
    target_id: UUID,
    payload: dict[str, object] | None = None,
) -> None:
    enqueue_notification(
        GrantNotification(
            event_type=event_type,
            request_id=request.id,
            doctor_id=request.doctor_id,
            patient_id=request.patient_id,
            target_ids=[target_id],
            payload=payload or {},
        ),
    )


async def _get_owned_request(
    session: AsyncSession,
    *,
    patient_id: UUID,
    request_id: UUID,
) -> AccessGrantRequest:
    request = await AccessGrantRequest.objects.by_id(request_id).first(session)
    if request is None:
        raise NotFoundError("Access request not found")
    if request.patient_id != patient_id:
        raise ForbiddenError
    return request


async def _clear_lapsed_active_keys(
    session: AsyncSession,
    *,
    doctor_id: UUID,
    patient_id: UUID,
    now: datetime,
) -> None:
    await session.exec(
        update(AccessGrantRequest)
        .where(col(AccessGrantRequest.doctor_id) == doctor_id)
        .where(col(AccessGrantRequest.patient_id) == patient_id)
        .where(col(AccessGrantRequest.status) == GrantStatus.APPROVED.value)
        .where(col(AccessGrantRequest.expires_at) <= now)
        .where(col(AccessGrantRequest.active_key).is_not(None))
        .values(active_key=None)
        .execution_options(synchronize_session=False),
    )


async def submit_request(
    session: AsyncSession,
    *,
    doctor_id: UUID,
    patient_id: UUID,
    notes: str | None = None,
) -> AccessGrantRequest:
    """Create a pending request unless the pair already has an active one."""
    cleaned_notes = _normalize_notes(notes)
    doctor = await Doctor.objects.by_id(doctor_id).first(session)
    if doctor is None:
        raise NotFoundError("Doctor not found")
    if doctor.is_blocked:
        raise ForbiddenError
    patient = await Patient.objects.by_id(patient_id).first(session)
    if patient is None:
        raise NotFoundError("Patient not found")

    now = clock.utcnow()
    await _clear_lapsed_active_keys(session, doctor_id=doctor_id, patient_id=patient_id, now=now)
    request = AccessGrantRequest(
        doctor_id=doctor_id,
        patient_id=patient_id,
        status=GrantStatus.PENDING.value,
        notes=cleaned_notes,
        requested_at=now,
        active_key=active_key_for(doctor_id, patient_id),
    )
    session.add(request)
    session.add(
        build_audit_entry(
            actor_id=doctor_id,
            actor_role="doctor",
            action="access_request.submit",
            doctor_id=doctor_id,
            patient_id=patient_id,
            target_type="access_request",
            target_id=request.id,
            payload={"has_notes": cleaned_notes is not None},
            created_at=now,
        ),
    )
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.info(
            "access_request.submit.duplicate",
            extra={"doctor_id": str(doctor_id), "patient_id": str(patient_id)},
        )
        raise ConflictError(DUPLICATE_ACTIVE_DETAIL) from exc
    await session.refresh(request)

    logger.info(
        "access_request.submitted",
        extra={
            "request_id": str(request.id),
            "doctor_id": str(doctor_id),
            "patient_id": str(patient_id),
        },
    )
    _notify(SUBMITTED, request, target_id=patient_id)
    return request


async def respond_to_request(
    session: AsyncSession,
    *,
    patient_id: UUID,
    request_id: UUID,
    decision: Decision | str,
    duration_minutes: int | None = None,
) -> AccessGrantRequest:
    """Approve or reject a pending request; only the first response lands."""
    parsed = _parse_decision(decision)
    request = await _get_owned_request(session, patient_id=patient_id, request_id=request_id)
    duration = _validate_duration(duration_minutes) if parsed is Decision.APPROVE else None

    target = DECISION_TARGETS[parsed]
    _assert_transition(GrantStatus.PENDING, target)
    now = clock.utcnow()
    expires_at = now + timedelta(minutes=duration) if duration is not None else None
    values: dict[str, object] = {"status": target.value, "responded_at": now}
    if expires_at is not None:
        values["expires_at"] = expires_at
    else:
        values["active_key"] = None

    result = await session.exec(
        update(AccessGrantRequest)
        .where(col(AccessGrantRequest.id) == request_id)
        .where(col(AccessGrantRequest.status) == GrantStatus.PENDING.value)
        .values(**values)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount != 1:
        await session.rollback()
        logger.info(
            "access_request.respond.conflict",
            extra={"request_id": str(request_id), "decision": parsed.value},
        )
        raise ConflictError(ALREADY_RESPONDED_DETAIL)

    payload: dict[str, object] = {"decision": parsed.value}
    if expires_at is not None:
        payload["duration_minutes"] = duration
        payload["expires_at"] = expires_at.isoformat()
    session.add(
        build_audit_entry(
            actor_id=patient_id,
            actor_role="patient",
            action=f"access_request.{parsed.value}",
            doctor_id=request.doctor_id,
            patient_id=patient_id,
            target_type="access_request",
            target_id=request_id,
            payload=payload,
            created_at=now,
        ),
    )
    await session.commit()
    await session.refresh(request)

    logger.info(
        "access_request.responded",
        extra={
            "request_id": str(request_id),
            "decision": parsed.value,
            "duration_minutes": duration,
        },
    )
    _notify(_NOTIFICATION_EVENTS[target], request, target_id=request.doctor_id, payload=payload)
    return request


async def revoke_grant(
    session: AsyncSession,
    *,
    patient_id: UUID,
    request_id: UUID,
) -> AccessGrantRequest:
    """End a live grant immediately; calling it again is a harmless no-op."""
    request = await _get_owned_request(session, patient_id=patient_id, request_id=request_id)
    now = clock.utcnow()
    current = effective_status(request, now)
    if current is not EffectiveStatus.APPROVED:
        logger.info(
            "access_request.revoke.noop",
            extra={"request_id": str(request_id), "status": current.value},
        )
        return request

    _assert_transition(GrantStatus.APPROVED, GrantStatus.REVOKED)
    previous_expiry = request.expires_at
    result = await session.exec(
        update(AccessGrantRequest)
        .where(col(AccessGrantRequest.id) == request_id)
        .where(col(AccessGrantRequest.status) == GrantStatus.APPROVED.value)
        .where(col(AccessGrantRequest.expires_at) > now)
        .values(status=GrantStatus.REVOKED.value, expires_at=None, active_key=None)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount != 1:
        await session.rollback()
        await session.refresh(request)
        logger.info(
            "access_request.revoke.lost_race",
            extra={"request_id": str(request_id), "status": request.status},
        )
        return request

    payload: dict[str, object] = {
        "revoked_at": now.isoformat(),
        "previous_expires_at": previous_expiry.isoformat() if previous_expiry else None,
    }
    session.add(
        build_audit_entry(
            actor_id=patient_id,
            actor_role="patient",
            action="access_request.revoke",
            doctor_id=request.doctor_id,
            patient_id=patient_id,
            target_type="access_request",
            target_id=request_id,
            payload=payload,
            created_at=now,
        ),
    )
    await session.commit()
    await session.refresh(request)

    logger.info(
        "access_request.revoked",
        extra={"request_id": str(request_id), "doctor_id": str(request.doctor_id)},
    )
    _notify(REVOKED, request, target_id=request.doctor_id, payload=payload)
    return request


async def list_active(
    session: AsyncSession,
    *,
    doctor_id: UUID | None = None,
    patient_id: UUID | None = None,
) -> list[ActiveRequestView]:
    """List a party's pending and currently approved requests, newest first."""
    if (doctor_id is None) == (patient_id is None):
        raise ValidationError("Exactly one of doctor_id or patient_id is required.")

    stored_active = [GrantStatus.PENDING.value, GrantStatus.APPROVED.value]
    queryset = AccessGrantRequest.objects.filter(col(AccessGrantRequest.status).in_(stored_active))
    if doctor_id is not None:
        queryset = queryset.filter(col(AccessGrantRequest.doctor_id) == doctor_id)
    else:
        queryset = queryset.filter(col(AccessGrantRequest.patient_id) == patient_id)
    rows = await queryset.order_by(col(AccessGrantRequest.requested_at).desc()).all(session)

    now = clock.utcnow()
    views: list[ActiveRequestView] = []
    for row in rows:
        status = effective_status(row, now)
        if status not in ACTIVE_STATUSES:
            continue
        views.append(
            ActiveRequestView(
                id=row.id,
                counterparty_id=row.patient_id if doctor_id is not None else row.doctor_id,
                notes=row.notes,
                status=status,
                requested_at=row.requested_at,
                expires_at=row.expires_at if status is EffectiveStatus.APPROVED else None,
            ),
        )
    return views
