"""Public schema exports shared across API route modules."""

from app.schemas.access_requests import (
    AccessRequestCreate,
    AccessRequestRespond,
    AccessRequestStatusRead,
    ActiveAccessRequestRead,
)
from app.schemas.audit import AuditEntryRead
from app.schemas.errors import ErrorResponse
from app.schemas.health import HealthStatusResponse
from app.schemas.records import MedicalRecordRead

__all__ = [
    "AccessRequestCreate",
    "AccessRequestRespond",
    "AccessRequestStatusRead",
    "ActiveAccessRequestRead",
    "AuditEntryRead",
    "ErrorResponse",
    "HealthStatusResponse",
    "MedicalRecordRead",
]
