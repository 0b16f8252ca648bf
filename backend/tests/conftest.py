# ruff: noqa: INP001
"""Pytest configuration shared across backend tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Deterministic defaults for import-time settings initialization, regardless of shell env.
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret-0123456789-0123456789-0123456789"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DB_AUTO_MIGRATE"] = "false"
os.environ["RQ_DISPATCH_THROTTLE_SECONDS"] = "0"


class FakeRedis:
    """List + sorted-set subset of the redis client used by the queue helpers."""

    def __init__(self) -> None:
        self.values: list[str] = []
        self.scheduled: dict[str, float] = {}

    def lpush(self, key: str, *values: str) -> None:
        del key
        for value in values:
            self.values.insert(0, value)

    def rpop(self, key: str) -> str | None:
        del key
        if not self.values:
            return None
        return self.values.pop()

    def zadd(self, key: str, mapping: dict[str, float]) -> None:
        del key
        self.scheduled.update(mapping)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    fake = FakeRedis()

    def _fake_redis(*, redis_url: str | None = None) -> FakeRedis:
        del redis_url
        return fake

    monkeypatch.setattr("app.services.queue._redis_client", _fake_redis)
    return fake
