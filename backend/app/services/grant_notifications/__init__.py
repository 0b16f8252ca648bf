"""Access-grant notification queueing + dispatch utilities."""

from app.services.grant_notifications.queue import (
    TASK_TYPE,
    GrantNotification,
    decode_notification_task,
    enqueue_notification,
)

__all__ = [
    "TASK_TYPE",
    "GrantNotification",
    "decode_notification_task",
    "enqueue_notification",
]
