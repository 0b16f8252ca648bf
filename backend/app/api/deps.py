"""Reusable FastAPI dependencies for caller identity and role checks.

Routers compose these instead of inspecting tokens themselves, so every
endpoint shares one definition of who a doctor or patient caller is.
"""

from __future__ import annotations

from fastapi import Depends

from app.core.auth import AuthContext, get_auth_context
from app.db.session import get_session
from app.services.access_grants.errors import ForbiddenError

AUTH_DEP = Depends(get_auth_context)
SESSION_DEP = Depends(get_session)


def require_doctor(auth: AuthContext = AUTH_DEP) -> AuthContext:
    """Require an authenticated doctor caller."""
    if not auth.is_doctor:
        raise ForbiddenError
    return auth


def require_patient(auth: AuthContext = AUTH_DEP) -> AuthContext:
    """Require an authenticated patient caller."""
    if not auth.is_patient:
        raise ForbiddenError
    return auth


DOCTOR_DEP = Depends(require_doctor)
PATIENT_DEP = Depends(require_patient)
