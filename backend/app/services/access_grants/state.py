"""Grant status values, legal transitions, and effective-status computation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from app.models.access_grant_requests import AccessGrantRequest


class GrantStatus(str, Enum):
    """Status values that may be stored on a request row."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVOKED = "revoked"


class EffectiveStatus(str, Enum):
    """Status as observed at read time; `expired` is never stored."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVOKED = "revoked"
    EXPIRED = "expired"


class Decision(str, Enum):
    """Patient responses to a pending request."""

    APPROVE = "approve"
    REJECT = "reject"


ALLOWED_TRANSITIONS: dict[GrantStatus, frozenset[GrantStatus]] = {
    GrantStatus.PENDING: frozenset({GrantStatus.APPROVED, GrantStatus.REJECTED}),
    GrantStatus.APPROVED: frozenset({GrantStatus.REVOKED}),
    GrantStatus.REJECTED: frozenset(),
    GrantStatus.REVOKED: frozenset(),
}
ACTIVE_STATUSES = frozenset({EffectiveStatus.PENDING, EffectiveStatus.APPROVED})
DECISION_TARGETS: dict[Decision, GrantStatus] = {
    Decision.APPROVE: GrantStatus.APPROVED,
    Decision.REJECT: GrantStatus.REJECTED,
}


def can_transition(current: GrantStatus | str, target: GrantStatus | str) -> bool:
    """Return whether a stored-status transition is legal."""
    try:
        current_status = GrantStatus(current)
        target_status = GrantStatus(target)
    except ValueError:
        return False
    return target_status in ALLOWED_TRANSITIONS[current_status]


def is_terminal(status: GrantStatus | str) -> bool:
    """Return whether no stored transition leaves `status`."""
    return not ALLOWED_TRANSITIONS[GrantStatus(status)]


def effective_status(request: AccessGrantRequest, now: datetime) -> EffectiveStatus:
    """Fold expiry into the stored status using only the row and `now`."""
    if (
        request.status == GrantStatus.APPROVED
        and request.expires_at is not None
        and now >= request.expires_at
    ):
        return EffectiveStatus.EXPIRED
    return EffectiveStatus(request.status)


def is_active(request: AccessGrantRequest, now: datetime) -> bool:
    """Return whether the request is pending or a live approval."""
    return effective_status(request, now) in ACTIVE_STATUSES
