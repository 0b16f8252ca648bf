"""Read-time authorization check consulted before any record is returned."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import col, select

from app.core import time as clock
from app.core.logging import get_logger
from app.models.access_grant_requests import AccessGrantRequest
from app.services.access_grants.errors import AccessDeniedError
from app.services.access_grants.state import GrantStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)


async def is_granted(
    session: AsyncSession,
    *,
    doctor_id: UUID,
    patient_id: UUID,
    now: datetime | None = None,
) -> bool:
    """Return whether the doctor may read the patient's records at `now`.

    Only the stored status and `expires_at` are consulted; the check never
    writes and needs no sweep to have run.
    """
    at = now if now is not None else clock.utcnow()
    statement = (
        select(AccessGrantRequest.id)
        .where(col(AccessGrantRequest.doctor_id) == doctor_id)
        .where(col(AccessGrantRequest.patient_id) == patient_id)
        .where(col(AccessGrantRequest.status) == GrantStatus.APPROVED.value)
        .where(col(AccessGrantRequest.expires_at) > at)
        .limit(1)
    )
    return (await session.exec(statement)).first() is not None


async def require_access(
    session: AsyncSession,
    *,
    doctor_id: UUID,
    patient_id: UUID,
) -> None:
    """Raise `AccessDeniedError` unless the doctor currently holds a grant."""
    if await is_granted(session, doctor_id=doctor_id, patient_id=patient_id):
        return
    logger.info(
        "gate.denied",
        extra={"doctor_id": str(doctor_id), "patient_id": str(patient_id)},
    )
    raise AccessDeniedError
