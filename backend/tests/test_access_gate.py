# ruff: noqa: INP001
"""Read-time access gate checks."""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.models.access_grant_requests import AccessGrantRequest
from app.models.doctors import Doctor
from app.models.patients import Patient
from app.services.access_grants.errors import ACCESS_DENIED_DETAIL, AccessDeniedError
from app.services.access_grants.gate import is_granted, require_access

NOW = datetime(2026, 5, 1, 12, 0, 0)


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


async def _seed_pair(session: AsyncSession) -> tuple[Doctor, Patient]:
    doctor = Doctor(id=uuid4(), full_name="Dr. Gate")
    patient = Patient(id=uuid4(), full_name="Pat Gate")
    session.add(doctor)
    session.add(patient)
    await session.commit()
    return doctor, patient


def _row(doctor: Doctor, patient: Patient, status: str, **fields: object) -> AccessGrantRequest:
    return AccessGrantRequest(
        doctor_id=doctor.id,
        patient_id=patient.id,
        status=status,
        requested_at=NOW - timedelta(hours=1),
        **fields,
    )


@pytest.mark.asyncio
async def test_gate_honours_expiry_boundary_without_writes() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        doctor, patient = await _seed_pair(session)
        grant = _row(doctor, patient, "approved", responded_at=NOW, expires_at=NOW)
        session.add(grant)
        await session.commit()

    async with session_maker() as session:
        before = NOW - timedelta(microseconds=1)
        assert await is_granted(session, doctor_id=doctor.id, patient_id=patient.id, now=before)
        assert not await is_granted(session, doctor_id=doctor.id, patient_id=patient.id, now=NOW)
        assert not await is_granted(
            session, doctor_id=doctor.id, patient_id=patient.id, now=NOW + timedelta(days=1)
        )
        assert not session.new
        assert not session.dirty

    async with session_maker() as session:
        stored = await AccessGrantRequest.objects.by_id(grant.id).first(session)
        assert stored is not None
        assert stored.status == "approved"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["pending", "rejected", "revoked"])
async def test_gate_denies_every_non_approved_status(status: str) -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        doctor, patient = await _seed_pair(session)
        session.add(_row(doctor, patient, status))
        await session.commit()

        assert not await is_granted(session, doctor_id=doctor.id, patient_id=patient.id, now=NOW)


@pytest.mark.asyncio
async def test_gate_is_scoped_to_the_exact_pair() -> None:
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        doctor, patient = await _seed_pair(session)
        other_doctor, other_patient = await _seed_pair(session)
        session.add(
            _row(doctor, patient, "approved", responded_at=NOW, expires_at=NOW + timedelta(hours=1))
        )
        await session.commit()

        assert await is_granted(session, doctor_id=doctor.id, patient_id=patient.id, now=NOW)
        assert not await is_granted(
            session, doctor_id=other_doctor.id, patient_id=patient.id, now=NOW
        )
        assert not await is_granted(
            session, doctor_id=doctor.id, patient_id=other_patient.id, now=NOW
        )


@pytest.mark.asyncio
async def test_require_access_uses_one_generic_denial(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("app.core.time.utcnow", lambda: NOW)
    engine = await _make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        doctor, patient = await _seed_pair(session)
        never_granted = await _seed_pair(session)
        session.add(
            _row(doctor, patient, "approved", responded_at=NOW, expires_at=NOW - timedelta(1))
        )
        await session.commit()

        details = []
        for doctor_id, patient_id in [
            (doctor.id, patient.id),
            (never_granted[0].id, never_granted[1].id),
        ]:
            with pytest.raises(AccessDeniedError) as exc_info:
                await require_access(session, doctor_id=doctor_id, patient_id=patient_id)
            assert exc_info.value.status_code == 403
            details.append(exc_info.value.detail)

        assert details == [ACCESS_DENIED_DETAIL, ACCESS_DENIED_DETAIL]
