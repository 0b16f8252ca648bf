"""Periodic expiry bookkeeping for lapsed grants.

Expiry is already enforced at read time; the sweep only releases the pair's
uniqueness slot and tells both parties the grant ended.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from redis import Redis
from rq_scheduler import Scheduler  # type: ignore[import-untyped]
from sqlalchemy import update
from sqlmodel import col

from app.core import time as clock
from app.core.config import settings
from app.core.logging import get_logger
from app.models.access_grant_requests import AccessGrantRequest
from app.services.access_grants.state import GrantStatus
from app.services.audit import build_audit_entry
from app.services.grant_notifications import GrantNotification, enqueue_notification
from app.services.grant_notifications.queue import EXPIRED

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)
SYSTEM_ACTOR_ROLE = "system"


async def sweep_expired_grants(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    limit: int | None = None,
) -> list[AccessGrantRequest]:
    """Release lapsed approvals and notify both parties once per grant.

    Stored `status` stays `approved`; only `active_key` is cleared. Each row is
    claimed with its own conditional update so overlapping sweeps never report
    the same grant twice.
    """
    at = now if now is not None else clock.utcnow()
    batch_size = limit if limit is not None else settings.grant_expiry_sweep_batch_size
    candidates = await (
        AccessGrantRequest.objects.filter(
            col(AccessGrantRequest.status) == GrantStatus.APPROVED.value,
            col(AccessGrantRequest.expires_at) <= at,
            col(AccessGrantRequest.active_key).is_not(None),
        )
        .order_by(col(AccessGrantRequest.expires_at))
        .limit(batch_size)
        .all(session)
    )

    claimed: list[AccessGrantRequest] = []
    for request in candidates:
        result = await session.exec(
            update(AccessGrantRequest)
            .where(col(AccessGrantRequest.id) == request.id)
            .where(col(AccessGrantRequest.status) == GrantStatus.APPROVED.value)
            .where(col(AccessGrantRequest.active_key).is_not(None))
            .values(active_key=None)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            continue
        claimed.append(request)
        session.add(
            build_audit_entry(
                actor_id=request.patient_id,
                actor_role=SYSTEM_ACTOR_ROLE,
                action="access_grant.expired",
                doctor_id=request.doctor_id,
                patient_id=request.patient_id,
                target_type="access_request",
                target_id=request.id,
                payload={
                    "expires_at": request.expires_at.isoformat() if request.expires_at else None,
                },
                created_at=at,
            ),
        )
    await session.commit()
    for request in claimed:
        await session.refresh(request)

    for request in claimed:
        enqueue_notification(
            GrantNotification(
                event_type=EXPIRED,
                request_id=request.id,
                doctor_id=request.doctor_id,
                patient_id=request.patient_id,
                target_ids=[request.doctor_id, request.patient_id],
                payload={
                    "expires_at": request.expires_at.isoformat() if request.expires_at else None,
                },
            ),
        )
    logger.info(
        "grant.expiry_sweep.complete",
        extra={"candidates": len(candidates), "expired": len(claimed)},
    )
    return claimed


async def _sweep_once() -> int:
    from app.db.session import async_session_maker

    async with async_session_maker() as session:
        return len(await sweep_expired_grants(session))


def run_expiry_sweep() -> int:
    """RQ entrypoint: run one sweep in a fresh event loop."""
    return asyncio.run(_sweep_once())


def bootstrap_expiry_sweep_schedule(interval_seconds: int | None = None) -> None:
    """Register the recurring sweep job, replacing any earlier registration."""
    connection = Redis.from_url(settings.rq_redis_url)
    scheduler = Scheduler(queue_name=settings.rq_queue_name, connection=connection)

    for job in scheduler.get_jobs():
        if job.id == settings.grant_expiry_sweep_schedule_id:
            scheduler.cancel(job)

    effective_interval_seconds = (
        settings.grant_expiry_sweep_interval_seconds
        if interval_seconds is None
        else interval_seconds
    )
    scheduler.schedule(
        datetime.now(tz=UTC) + timedelta(seconds=5),
        func=run_expiry_sweep,
        interval=effective_interval_seconds,
        repeat=None,
        id=settings.grant_expiry_sweep_schedule_id,
        queue_name=settings.rq_queue_name,
    )
    logger.info(
        "grant.expiry_sweep.scheduled",
        extra={"interval_seconds": effective_interval_seconds},
    )
