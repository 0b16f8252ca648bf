"""Time helpers shared by models, services, and the access gate."""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Timestamps are stored without timezone information; every comparison in
    the service goes through this function so tests can pin the clock.
    """
    return datetime.now(UTC).replace(tzinfo=None)
