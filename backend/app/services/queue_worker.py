"""Queue worker that drains grant notifications and retries failures."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from app.core.config import settings
from app.core.logging import get_logger
from app.services.grant_notifications.dispatch import (
    process_notification_task,
    requeue_notification_task,
)
from app.services.grant_notifications.queue import TASK_TYPE as GRANT_NOTIFICATION_TASK_TYPE
from app.services.queue import QueuedTask, dequeue_task

logger = get_logger(__name__)
_WORKER_BLOCK_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class _TaskHandler:
    handler: Callable[[QueuedTask], Awaitable[None]]
    requeue: Callable[[QueuedTask, float], bool]


_TASK_HANDLERS: dict[str, _TaskHandler] = {
    GRANT_NOTIFICATION_TASK_TYPE: _TaskHandler(
        handler=process_notification_task,
        requeue=lambda task, delay: requeue_notification_task(task, delay_seconds=delay),
    ),
}


def retry_delay_seconds(attempts: int) -> float:
    """Capped exponential backoff for the given number of prior attempts."""
    return min(
        settings.rq_dispatch_retry_base_seconds * (2 ** max(0, attempts)),
        settings.rq_dispatch_retry_max_seconds,
    )


def _compute_jitter(base_delay: float) -> float:
    return random.uniform(0, min(settings.rq_dispatch_retry_max_seconds / 10, base_delay * 0.1))


async def flush_queue(*, block: bool = False, block_timeout: float = 0) -> int:
    """Consume queued tasks until the queue is empty; return how many succeeded."""
    processed = 0
    while True:
        try:
            task = dequeue_task(
                settings.rq_queue_name,
                redis_url=settings.rq_redis_url,
                block=block,
                block_timeout=block_timeout,
            )
        except Exception:
            logger.exception(
                "queue.worker.dequeue_failed",
                extra={"queue_name": settings.rq_queue_name},
            )
            continue

        if task is None:
            break

        handler = _TASK_HANDLERS.get(task.task_type)
        if handler is None:
            logger.warning(
                "queue.worker.task_unhandled",
                extra={"task_type": task.task_type, "queue_name": settings.rq_queue_name},
            )
            continue

        try:
            await handler.handler(task)
        except Exception as exc:
            logger.exception(
                "queue.worker.failed",
                extra={"task_type": task.task_type, "attempt": task.attempts, "error": str(exc)},
            )
            base_delay = retry_delay_seconds(task.attempts)
            if not handler.requeue(task, base_delay + _compute_jitter(base_delay)):
                logger.warning(
                    "queue.worker.drop_task",
                    extra={"task_type": task.task_type, "attempt": task.attempts},
                )
        else:
            processed += 1
            logger.info(
                "queue.worker.success",
                extra={"task_type": task.task_type, "attempt": task.attempts},
            )
        await asyncio.sleep(settings.rq_dispatch_throttle_seconds)

    if processed > 0:
        logger.info("queue.worker.batch_complete", extra={"count": processed})
    return processed


async def _run_worker_loop() -> None:
    while True:
        try:
            await flush_queue(
                block=True,
                # Finite timeout so delayed retries get drained.
                block_timeout=_WORKER_BLOCK_TIMEOUT_SECONDS,
            )
        except Exception:
            logger.exception(
                "queue.worker.loop_failed",
                extra={"queue_name": settings.rq_queue_name},
            )
            await asyncio.sleep(1)


def run_worker() -> None:
    """RQ entrypoint for continuous notification processing."""
    logger.info(
        "queue.worker.started",
        extra={"throttle_seconds": settings.rq_dispatch_throttle_seconds},
    )
    try:
        asyncio.run(_run_worker_loop())
    finally:
        logger.info("queue.worker.stopped", extra={"queue_name": settings.rq_queue_name})
