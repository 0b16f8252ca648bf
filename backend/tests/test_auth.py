# ruff: noqa: INP001
"""Bearer-token verification tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import jwt
import pytest
from fastapi import HTTPException

from app.core import auth
from app.core.auth import AuthContext, _extract_bearer_token, decode_access_token
from app.core.config import settings


def _encode(claims: dict[str, object], *, secret: str | None = None) -> str:
    return jwt.encode(claims, secret or settings.auth_jwt_secret, algorithm="HS256")


def _claims(**overrides: object) -> dict[str, object]:
    claims: dict[str, object] = {
        "sub": str(uuid4()),
        "role": "doctor",
        "exp": datetime.now(UTC) + timedelta(minutes=5),
    }
    claims.update(overrides)
    return claims


def test_decode_access_token_returns_auth_context() -> None:
    actor_id = uuid4()
    ctx = decode_access_token(_encode(_claims(sub=str(actor_id), role="patient")))

    assert ctx == AuthContext(actor_id=actor_id, role="patient")
    assert ctx.is_patient is True
    assert ctx.is_doctor is False


@pytest.mark.parametrize(
    "token",
    [
        _encode(_claims(exp=datetime.now(UTC) - timedelta(minutes=5))),
        _encode(_claims(), secret="another-secret-0123456789-0123456789"),
        _encode(_claims(role="admin")),
        _encode(_claims(sub="not-a-uuid")),
        _encode({"sub": str(uuid4()), "role": "doctor"}),
        "garbage",
    ],
    ids=["expired", "bad-signature", "unknown-role", "bad-subject", "missing-exp", "garbage"],
)
def test_decode_access_token_rejects_bad_tokens(token: str) -> None:
    with pytest.raises(HTTPException) as exc_info:
        decode_access_token(token)

    assert exc_info.value.status_code == 401


def test_decode_access_token_checks_issuer_when_configured(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(auth.settings, "auth_jwt_issuer", "https://identity.example")

    with pytest.raises(HTTPException):
        decode_access_token(_encode(_claims(iss="https://someone-else.example")))
    ctx = decode_access_token(_encode(_claims(iss="https://identity.example", role="doctor")))
    assert ctx.is_doctor is True


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        (None, None),
        ("", None),
        ("Basic abc", None),
        ("Bearer ", None),
        ("Bearer abc.def", "abc.def"),
        ("  bearer token-value  ", "token-value"),
    ],
)
def test_extract_bearer_token(header: str | None, expected: str | None) -> None:
    assert _extract_bearer_token(header) == expected
