"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from app.models.access_grant_requests import AccessGrantRequest
from app.models.audit_entries import AuditEntry
from app.models.doctors import Doctor
from app.models.medical_records import MedicalRecord
from app.models.patients import Patient

__all__ = [
    "AccessGrantRequest",
    "AuditEntry",
    "Doctor",
    "MedicalRecord",
    "Patient",
]
