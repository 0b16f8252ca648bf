"""Access request endpoints for doctors (submit) and patients (respond/revoke)."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Response, status

from app.api.deps import AUTH_DEP, DOCTOR_DEP, PATIENT_DEP, SESSION_DEP
from app.core import time as clock
from app.core.auth import AuthContext
from app.core.config import settings
from app.schemas.access_requests import (
    AccessRequestCreate,
    AccessRequestRespond,
    AccessRequestStatusRead,
    ActiveAccessRequestRead,
)
from app.services.access_grants import service as grants
from app.services.access_grants.state import EffectiveStatus, effective_status

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.models.access_grant_requests import AccessGrantRequest

router = APIRouter(prefix="/access-requests", tags=["access-requests"])
POLL_INTERVAL_HEADER = "X-Poll-Interval-Seconds"


def _status_read(request: AccessGrantRequest) -> AccessRequestStatusRead:
    current = effective_status(request, clock.utcnow())
    return AccessRequestStatusRead(
        id=request.id,
        status=current.value,
        expires_at=request.expires_at if current is EffectiveStatus.APPROVED else None,
    )


@router.post(
    "",
    response_model=AccessRequestStatusRead,
    status_code=status.HTTP_201_CREATED,
)
async def submit_access_request(
    payload: AccessRequestCreate,
    session: AsyncSession = SESSION_DEP,
    auth: AuthContext = DOCTOR_DEP,
) -> AccessRequestStatusRead:
    """Ask a patient for time-bounded access to their records."""
    request = await grants.submit_request(
        session,
        doctor_id=auth.actor_id,
        patient_id=payload.patient_id,
        notes=payload.notes,
    )
    return _status_read(request)


@router.get("/active", response_model=list[ActiveAccessRequestRead])
async def list_active_access_requests(
    response: Response,
    session: AsyncSession = SESSION_DEP,
    auth: AuthContext = AUTH_DEP,
) -> list[ActiveAccessRequestRead]:
    """List the caller's pending and currently approved requests."""
    if auth.is_doctor:
        views = await grants.list_active(session, doctor_id=auth.actor_id)
    else:
        views = await grants.list_active(session, patient_id=auth.actor_id)
    response.headers[POLL_INTERVAL_HEADER] = str(settings.list_poll_interval_seconds)
    return [
        ActiveAccessRequestRead(
            id=view.id,
            counterparty_id=view.counterparty_id,
            notes=view.notes,
            status=view.status.value,
            requested_at=view.requested_at,
            expires_at=view.expires_at,
        )
        for view in views
    ]


@router.post("/{request_id}/respond", response_model=AccessRequestStatusRead)
async def respond_to_access_request(
    request_id: UUID,
    payload: AccessRequestRespond,
    session: AsyncSession = SESSION_DEP,
    auth: AuthContext = PATIENT_DEP,
) -> AccessRequestStatusRead:
    """Approve (with a duration) or reject a pending request."""
    request = await grants.respond_to_request(
        session,
        patient_id=auth.actor_id,
        request_id=request_id,
        decision=payload.decision,
        duration_minutes=payload.duration_minutes,
    )
    return _status_read(request)


@router.post("/{request_id}/revoke", response_model=AccessRequestStatusRead)
async def revoke_access_grant(
    request_id: UUID,
    session: AsyncSession = SESSION_DEP,
    auth: AuthContext = PATIENT_DEP,
) -> AccessRequestStatusRead:
    """End an approved grant now; repeating the call is harmless."""
    request = await grants.revoke_grant(
        session,
        patient_id=auth.actor_id,
        request_id=request_id,
    )
    return _status_read(request)
