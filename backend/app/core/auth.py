"""Bearer-token verification for doctor and patient callers.

Tokens are minted by the external identity service. This module only checks
the signature and standard claims, then exposes the caller's id and role.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)
SECURITY_DEP = Depends(security)

ActorRole = Literal["doctor", "patient"]


class AccessTokenClaims(BaseModel):
    """Claims every accepted token must carry."""

    sub: UUID
    role: ActorRole


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller resolved from the `Authorization` header."""

    actor_id: UUID
    role: ActorRole

    @property
    def is_doctor(self) -> bool:
        return self.role == "doctor"

    @property
    def is_patient(self) -> bool:
        return self.role == "patient"


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if not value.lower().startswith("bearer "):
        return None
    token = value.split(" ", maxsplit=1)[1].strip()
    return token or None


def _decode_options() -> dict[str, object]:
    options: dict[str, object] = {"require": ["sub", "exp"]}
    kwargs: dict[str, object] = {
        "algorithms": [settings.auth_jwt_algorithm],
        "leeway": settings.auth_jwt_leeway_seconds,
        "options": options,
    }
    if settings.auth_jwt_issuer:
        kwargs["issuer"] = settings.auth_jwt_issuer
    if settings.auth_jwt_audience:
        kwargs["audience"] = settings.auth_jwt_audience
    else:
        options["verify_aud"] = False
    return kwargs


def decode_access_token(token: str) -> AuthContext:
    """Verify a bearer token and return the caller it identifies.

    Raises `HTTPException(401)` for any signature, expiry, or claim problem.
    """
    try:
        claims = jwt.decode(token, settings.auth_jwt_secret, **_decode_options())
        parsed = AccessTokenClaims.model_validate(claims)
    except jwt.ExpiredSignatureError as exc:
        logger.info("auth.token.expired")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED) from exc
    except (jwt.InvalidTokenError, ValidationError) as exc:
        logger.info("auth.token.invalid", extra={"error_type": exc.__class__.__name__})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED) from exc
    return AuthContext(actor_id=parsed.sub, role=parsed.role)


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = SECURITY_DEP,
) -> AuthContext:
    """Resolve the required authenticated caller for a request."""
    token = (
        credentials.credentials
        if credentials is not None
        else _extract_bearer_token(request.headers.get("Authorization"))
    )
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return decode_access_token(token)
