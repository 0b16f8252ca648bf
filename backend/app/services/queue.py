"""Redis list-backed task queue used for out-of-band grant notifications."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, cast

import redis

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

_SCHEDULED_SUFFIX = ":scheduled"
_DRAIN_BATCH_SIZE = 100


@dataclass(frozen=True)
class QueuedTask:
    """Generic queued task envelope."""

    task_type: str
    payload: dict[str, Any]
    created_at: datetime
    attempts: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {
                "task_type": self.task_type,
                "payload": self.payload,
                "created_at": self.created_at.isoformat(),
                "attempts": self.attempts,
            },
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> QueuedTask:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data: dict[str, Any] = json.loads(raw)
        return cls(
            task_type=str(data["task_type"]),
            payload=dict(data.get("payload") or {}),
            created_at=_coerce_datetime(data.get("created_at")),
            attempts=int(data.get("attempts", 0)),
        )


def _redis_client(redis_url: str | None = None) -> redis.Redis:
    return redis.Redis.from_url(redis_url or settings.rq_redis_url)


def _scheduled_queue_name(queue_name: str) -> str:
    return f"{queue_name}{_SCHEDULED_SUFFIX}"


def _coerce_datetime(raw: object | None) -> datetime:
    if isinstance(raw, str):
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            pass
    return datetime.now(UTC)


def _drain_ready_scheduled_tasks(client: redis.Redis, queue_name: str) -> float | None:
    """Move due delayed tasks onto the main list; return seconds until the next one."""
    scheduled_queue = _scheduled_queue_name(queue_name)
    now = time.time()

    ready_items = cast(
        list[str | bytes],
        client.zrangebyscore(scheduled_queue, "-inf", now, start=0, num=_DRAIN_BATCH_SIZE),
    )
    if ready_items:
        client.lpush(queue_name, *ready_items)
        client.zrem(scheduled_queue, *ready_items)
        logger.debug(
            "queue.drain_ready_scheduled",
            extra={"queue_name": queue_name, "count": len(ready_items)},
        )

    next_item = cast(
        list[tuple[str | bytes, float]],
        client.zrangebyscore(scheduled_queue, now, "+inf", start=0, num=1, withscores=True),
    )
    if not next_item:
        return None
    return max(0.0, float(next_item[0][1]) - now)


def enqueue_task(
    task: QueuedTask,
    queue_name: str,
    *,
    redis_url: str | None = None,
    delay_seconds: float = 0,
) -> bool:
    """Push a task onto the queue, or park it in the delayed set when `delay_seconds > 0`."""
    delay = max(0.0, float(delay_seconds))
    try:
        client = _redis_client(redis_url=redis_url)
        if delay > 0:
            client.zadd(_scheduled_queue_name(queue_name), {task.to_json(): time.time() + delay})
        else:
            client.lpush(queue_name, task.to_json())
    except redis.RedisError as exc:
        logger.warning(
            "queue.enqueue_failed",
            extra={"task_type": task.task_type, "queue_name": queue_name, "error": str(exc)},
        )
        return False
    logger.info(
        "queue.enqueued",
        extra={
            "task_type": task.task_type,
            "queue_name": queue_name,
            "attempt": task.attempts,
            "delay_seconds": delay,
        },
    )
    return True


def dequeue_task(
    queue_name: str,
    *,
    redis_url: str | None = None,
    block: bool = False,
    block_timeout: float = 0,
) -> QueuedTask | None:
    """Pop one task envelope from the queue."""
    client = _redis_client(redis_url=redis_url)
    raw: str | bytes | None
    if block:
        timeout = max(0.0, float(block_timeout))
        next_delay = _drain_ready_scheduled_tasks(client, queue_name)
        if next_delay is not None:
            timeout = min(timeout, next_delay) if timeout else next_delay
        result = cast(
            tuple[bytes | str, bytes | str] | None,
            client.brpop([queue_name], timeout=timeout),
        )
        raw = result[1] if result is not None else None
    else:
        raw = cast(str | bytes | None, client.rpop(queue_name))
    if raw is None:
        return None
    try:
        return QueuedTask.from_json(raw)
    except (ValueError, KeyError, TypeError) as exc:
        logger.error(
            "queue.dequeue_failed",
            extra={"queue_name": queue_name, "raw_payload": str(raw), "error": str(exc)},
        )
        raise


def requeue_if_failed(
    task: QueuedTask,
    queue_name: str,
    *,
    max_retries: int,
    redis_url: str | None = None,
    delay_seconds: float = 0,
) -> bool:
    """Requeue a failed task with one more attempt recorded.

    Returns False once the retry cap is exceeded.
    """
    retried = replace(task, attempts=task.attempts + 1)
    if retried.attempts > max_retries:
        logger.warning(
            "queue.drop_failed_task",
            extra={
                "task_type": task.task_type,
                "queue_name": queue_name,
                "attempts": retried.attempts,
            },
        )
        return False
    return enqueue_task(
        retried,
        queue_name,
        redis_url=redis_url,
        delay_seconds=delay_seconds,
    )
