"""Access-grant lifecycle, read-time gate, and expiry bookkeeping."""

from app.services.access_grants.errors import (
    AccessDeniedError,
    AccessGrantError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.services.access_grants.gate import is_granted, require_access
from app.services.access_grants.service import (
    ActiveRequestView,
    list_active,
    respond_to_request,
    revoke_grant,
    submit_request,
)
from app.services.access_grants.state import (
    Decision,
    EffectiveStatus,
    GrantStatus,
    can_transition,
    effective_status,
)

__all__ = [
    "AccessDeniedError",
    "AccessGrantError",
    "ActiveRequestView",
    "ConflictError",
    "Decision",
    "EffectiveStatus",
    "ForbiddenError",
    "GrantStatus",
    "NotFoundError",
    "ValidationError",
    "can_transition",
    "effective_status",
    "is_granted",
    "list_active",
    "require_access",
    "respond_to_request",
    "revoke_grant",
    "submit_request",
]
