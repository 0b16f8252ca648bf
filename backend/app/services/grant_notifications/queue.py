"""Grant notification envelope and Redis queue helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import redis

from app.core.config import settings
from app.core.logging import get_logger
from app.services.queue import QueuedTask, enqueue_task
from app.services.queue import requeue_if_failed as generic_requeue_if_failed

logger = get_logger(__name__)
TASK_TYPE = "grant_notification"

SUBMITTED = "access_request.submitted"
APPROVED = "access_request.approved"
REJECTED = "access_request.rejected"
REVOKED = "access_request.revoked"
EXPIRED = "access_grant.expired"
EVENT_TYPES = frozenset({SUBMITTED, APPROVED, REJECTED, REVOKED, EXPIRED})


@dataclass(frozen=True)
class GrantNotification:
    """One out-of-band notice about an access request changing state."""

    event_type: str
    request_id: UUID
    doctor_id: UUID
    patient_id: UUID
    target_ids: list[UUID] = field(default_factory=list)
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    attempts: int = 0


def _task_from_notification(notification: GrantNotification) -> QueuedTask:
    return QueuedTask(
        task_type=TASK_TYPE,
        payload={
            "event_type": notification.event_type,
            "request_id": str(notification.request_id),
            "doctor_id": str(notification.doctor_id),
            "patient_id": str(notification.patient_id),
            "target_ids": [str(target_id) for target_id in notification.target_ids],
            "payload": notification.payload,
        },
        created_at=notification.created_at,
        attempts=notification.attempts,
    )


def decode_notification_task(task: QueuedTask) -> GrantNotification:
    """Rebuild a `GrantNotification` from its queue envelope."""
    if task.task_type != TASK_TYPE:
        raise ValueError(f"Unexpected task_type={task.task_type!r}; expected {TASK_TYPE!r}")

    data: dict[str, Any] = task.payload
    event_type = str(data["event_type"])
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown grant notification event_type={event_type!r}")
    return GrantNotification(
        event_type=event_type,
        request_id=UUID(data["request_id"]),
        doctor_id=UUID(data["doctor_id"]),
        patient_id=UUID(data["patient_id"]),
        target_ids=[UUID(target_id) for target_id in data.get("target_ids", [])],
        payload=dict(data.get("payload") or {}),
        created_at=task.created_at,
        attempts=task.attempts,
    )


def enqueue_notification(notification: GrantNotification) -> bool:
    """Queue a notification; failures are logged and reported as False, never raised."""
    try:
        queued = enqueue_task(
            _task_from_notification(notification),
            settings.rq_queue_name,
            redis_url=settings.rq_redis_url,
        )
    except (redis.RedisError, OSError, ValueError) as exc:
        logger.warning(
            "grant.notification.enqueue_failed",
            extra={
                "event_type": notification.event_type,
                "request_id": str(notification.request_id),
                "error": str(exc),
            },
        )
        return False
    if queued:
        logger.info(
            "grant.notification.enqueued",
            extra={
                "event_type": notification.event_type,
                "request_id": str(notification.request_id),
                "target_count": len(notification.target_ids),
            },
        )
    return queued


def requeue_if_failed(
    notification: GrantNotification,
    *,
    delay_seconds: float = 0,
) -> bool:
    """Requeue a failed notification with capped retries."""
    try:
        return generic_requeue_if_failed(
            _task_from_notification(notification),
            settings.rq_queue_name,
            max_retries=settings.rq_dispatch_max_retries,
            redis_url=settings.rq_redis_url,
            delay_seconds=delay_seconds,
        )
    except (redis.RedisError, OSError) as exc:
        logger.warning(
            "grant.notification.requeue_failed",
            extra={
                "event_type": notification.event_type,
                "request_id": str(notification.request_id),
                "error": str(exc),
            },
        )
        return False
