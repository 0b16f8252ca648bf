"""Grant notification delivery.

Delivery is one structured log line per recipient; push or email senders
plug in at `_deliver`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.logging import get_logger
from app.services.grant_notifications.queue import (
    APPROVED,
    EXPIRED,
    REJECTED,
    REVOKED,
    SUBMITTED,
    GrantNotification,
    decode_notification_task,
    requeue_if_failed,
)

if TYPE_CHECKING:
    from uuid import UUID

    from app.services.queue import QueuedTask

logger = get_logger(__name__)

_MESSAGES = {
    SUBMITTED: "A doctor has requested access to your records.",
    APPROVED: "Your access request was approved.",
    REJECTED: "Your access request was declined.",
    REVOKED: "The patient revoked your access.",
    EXPIRED: "Record access has expired.",
}


def recipient_role(notification: GrantNotification, target_id: UUID) -> str:
    """Return which party of the request `target_id` is."""
    if target_id == notification.doctor_id:
        return "doctor"
    if target_id == notification.patient_id:
        return "patient"
    return "unknown"


def render_message(notification: GrantNotification) -> str:
    """Short human-readable text for the notification."""
    message = _MESSAGES[notification.event_type]
    expires_at = notification.payload.get("expires_at")
    if notification.event_type == APPROVED and expires_at:
        return f"Your access request was approved until {expires_at} UTC."
    return message


def _deliver(notification: GrantNotification, target_id: UUID, message: str) -> None:
    logger.info(
        "grant.notification.dispatch",
        extra={
            "event_type": notification.event_type,
            "request_id": str(notification.request_id),
            "recipient_id": str(target_id),
            "recipient_role": recipient_role(notification, target_id),
            "text": message,
            "attempt": notification.attempts,
        },
    )


def dispatch_notification(notification: GrantNotification) -> int:
    """Deliver to every target once; return how many recipients were addressed."""
    message = render_message(notification)
    recipients = list(dict.fromkeys(notification.target_ids))
    for target_id in recipients:
        _deliver(notification, target_id, message)
    if not recipients:
        logger.warning(
            "grant.notification.no_recipients",
            extra={
                "event_type": notification.event_type,
                "request_id": str(notification.request_id),
            },
        )
    return len(recipients)


async def process_notification_task(task: QueuedTask) -> None:
    """Decode a queued grant notification and deliver it."""
    dispatch_notification(decode_notification_task(task))


def requeue_notification_task(task: QueuedTask, *, delay_seconds: float = 0) -> bool:
    """Put a failed notification back with one more attempt recorded."""
    return requeue_if_failed(decode_notification_task(task), delay_seconds=delay_seconds)
