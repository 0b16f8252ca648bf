# ruff: noqa: INP001
"""Grant notification queueing and worker dispatch tests."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from uuid import uuid4

import pytest
import redis

from app.core.config import settings
from app.services import queue_worker
from app.services.grant_notifications import (
    TASK_TYPE,
    GrantNotification,
    decode_notification_task,
    enqueue_notification,
)
from app.services.grant_notifications.dispatch import (
    dispatch_notification,
    recipient_role,
    render_message,
)
from app.services.grant_notifications.queue import (
    APPROVED,
    EXPIRED,
    REVOKED,
    _task_from_notification,
)
from app.services.queue import QueuedTask, dequeue_task
from app.services.queue_worker import _TASK_HANDLERS, _TaskHandler, flush_queue


def _notification(**overrides: object) -> GrantNotification:
    values: dict[str, object] = {
        "event_type": APPROVED,
        "request_id": uuid4(),
        "doctor_id": uuid4(),
        "patient_id": uuid4(),
        "payload": {"duration_minutes": 30},
    }
    values.update(overrides)
    values.setdefault("target_ids", [values["doctor_id"]])
    return GrantNotification(**values)  # type: ignore[arg-type]


def test_worker_registers_grant_notification_handler() -> None:
    assert TASK_TYPE in _TASK_HANDLERS


def test_notification_survives_queue_envelope(fake_redis) -> None:
    doctor_id, patient_id = uuid4(), uuid4()
    notification = _notification(
        event_type=EXPIRED,
        doctor_id=doctor_id,
        patient_id=patient_id,
        target_ids=[doctor_id, patient_id],
    )

    assert enqueue_notification(notification) is True
    task = dequeue_task(settings.rq_queue_name)
    assert task is not None
    assert task.task_type == TASK_TYPE

    decoded = decode_notification_task(task)
    assert decoded.event_type == EXPIRED
    assert decoded.request_id == notification.request_id
    assert decoded.target_ids == [notification.doctor_id, notification.patient_id]
    assert decoded.payload == {"duration_minutes": 30}
    assert fake_redis.values == []


def test_decode_rejects_foreign_task_type() -> None:
    task = QueuedTask(task_type="something_else", payload={}, created_at=datetime.now(UTC))

    with pytest.raises(ValueError, match="Unexpected task_type"):
        decode_notification_task(task)


def test_decode_rejects_unknown_event_type() -> None:
    task = _task_from_notification(_notification(event_type="access_request.escalated"))

    with pytest.raises(ValueError, match="Unknown grant notification event_type"):
        decode_notification_task(task)


def test_enqueue_notification_never_raises_on_redis_outage(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _boom(*_args: object, **_kwargs: object) -> bool:
        raise redis.ConnectionError("redis unavailable")

    monkeypatch.setattr("app.services.grant_notifications.queue.enqueue_task", _boom)

    assert enqueue_notification(_notification()) is False


@pytest.mark.asyncio
async def test_flush_queue_dispatches_pending_notifications(fake_redis) -> None:
    enqueue_notification(_notification())
    enqueue_notification(_notification())

    processed = await flush_queue()

    assert processed == 2
    assert fake_redis.values == []


@pytest.mark.asyncio
async def test_flush_queue_skips_unhandled_task_types(fake_redis) -> None:
    fake_redis.lpush(
        settings.rq_queue_name,
        QueuedTask(task_type="unknown", payload={}, created_at=datetime.now(UTC)).to_json(),
    )

    assert await flush_queue() == 0
    assert fake_redis.values == []


@pytest.mark.asyncio
async def test_failed_dispatch_is_requeued_with_backoff(
    monkeypatch: pytest.MonkeyPatch,
    fake_redis,
) -> None:
    async def _failing_handler(task: QueuedTask) -> None:
        raise RuntimeError("push gateway down")

    original = _TASK_HANDLERS[TASK_TYPE]
    monkeypatch.setitem(
        _TASK_HANDLERS,
        TASK_TYPE,
        _TaskHandler(handler=_failing_handler, requeue=original.requeue),
    )
    enqueue_notification(_notification())

    assert await flush_queue() == 0
    assert fake_redis.values == []
    assert len(fake_redis.scheduled) == 1
    (raw,) = fake_redis.scheduled
    assert json.loads(raw)["attempts"] == 1


@pytest.mark.asyncio
async def test_failed_dispatch_is_dropped_after_retry_cap(
    monkeypatch: pytest.MonkeyPatch,
    fake_redis,
) -> None:
    async def _failing_handler(task: QueuedTask) -> None:
        raise RuntimeError("push gateway down")

    original = _TASK_HANDLERS[TASK_TYPE]
    monkeypatch.setitem(
        _TASK_HANDLERS,
        TASK_TYPE,
        _TaskHandler(handler=_failing_handler, requeue=original.requeue),
    )
    enqueue_notification(_notification(attempts=settings.rq_dispatch_max_retries))

    assert await flush_queue() == 0
    assert fake_redis.values == []
    assert fake_redis.scheduled == {}


@pytest.mark.parametrize(
    ("attempts", "expected"),
    [(0, 5.0), (1, 10.0), (3, 40.0), (10, 300.0)],
)
def test_retry_delay_is_capped_exponential(
    monkeypatch: pytest.MonkeyPatch,
    attempts: int,
    expected: float,
) -> None:
    monkeypatch.setattr(queue_worker.settings, "rq_dispatch_retry_base_seconds", 5.0)
    monkeypatch.setattr(queue_worker.settings, "rq_dispatch_retry_max_seconds", 300.0)

    assert queue_worker.retry_delay_seconds(attempts) == expected


def test_dispatch_addresses_each_recipient_once() -> None:
    doctor_id, patient_id = uuid4(), uuid4()
    notification = _notification(
        event_type=EXPIRED,
        doctor_id=doctor_id,
        patient_id=patient_id,
        target_ids=[doctor_id, patient_id, doctor_id],
    )

    assert dispatch_notification(notification) == 2
    assert recipient_role(notification, doctor_id) == "doctor"
    assert recipient_role(notification, patient_id) == "patient"
    assert recipient_role(notification, uuid4()) == "unknown"


def test_dispatch_without_recipients_delivers_nothing() -> None:
    assert dispatch_notification(_notification(target_ids=[])) == 0


def test_render_message_includes_approval_expiry() -> None:
    approved = _notification(payload={"expires_at": "2026-03-02T10:00:00"})
    revoked = _notification(event_type=REVOKED, payload={})

    assert render_message(approved) == (
        "Your access request was approved until 2026-03-02T10:00:00 UTC."
    )
    assert render_message(revoked) == "The patient revoked your access."
