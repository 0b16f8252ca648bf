"""Directory stand-ins, access grant requests, and audit trail tables.

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "1a2b3c4d5e6f"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "doctors" not in existing_tables:
        op.create_table(
            "doctors",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("full_name", sa.String(), server_default="", nullable=False),
            sa.Column("is_blocked", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if "patients" not in existing_tables:
        op.create_table(
            "patients",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("full_name", sa.String(), server_default="", nullable=False),
            sa.Column("patient_tag_id", sa.String(), nullable=True),
            sa.Column("is_blocked", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("patient_tag_id"),
        )

    if "medical_records" not in existing_tables:
        op.create_table(
            "medical_records",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("patient_id", sa.Uuid(), nullable=False),
            sa.Column("title", sa.String(), server_default="", nullable=False),
            sa.Column("file_name", sa.String(), nullable=False),
            sa.Column(
                "content_type",
                sa.String(),
                server_default="application/octet-stream",
                nullable=False,
            ),
            sa.Column("uploaded_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["patient_id"], ["patients.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_medical_records_patient_id", "medical_records", ["patient_id"])

    if "access_grant_requests" not in existing_tables:
        op.create_table(
            "access_grant_requests",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("doctor_id", sa.Uuid(), nullable=False),
            sa.Column("patient_id", sa.Uuid(), nullable=False),
            sa.Column("status", sa.String(), server_default="pending", nullable=False),
            sa.Column("notes", sa.String(), nullable=True),
            sa.Column("requested_at", sa.DateTime(), nullable=False),
            sa.Column("responded_at", sa.DateTime(), nullable=True),
            sa.Column("expires_at", sa.DateTime(), nullable=True),
            sa.Column("active_key", sa.String(), nullable=True),
            sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"]),
            sa.ForeignKeyConstraint(["patient_id"], ["patients.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("active_key"),
            sa.CheckConstraint(
                "status IN ('pending', 'approved', 'rejected', 'revoked')",
                name="ck_access_grant_requests_status",
            ),
            sa.CheckConstraint(
                "(status = 'approved') = (expires_at IS NOT NULL)",
                name="ck_access_grant_requests_expiry_iff_approved",
            ),
        )
        op.create_index(
            "ix_access_grant_requests_doctor_id", "access_grant_requests", ["doctor_id"]
        )
        op.create_index(
            "ix_access_grant_requests_patient_id", "access_grant_requests", ["patient_id"]
        )
        op.create_index("ix_access_grant_requests_status", "access_grant_requests", ["status"])
        op.create_index(
            "ix_access_grant_requests_expires_at", "access_grant_requests", ["expires_at"]
        )

    if "audit_entries" not in existing_tables:
        op.create_table(
            "audit_entries",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("actor_id", sa.Uuid(), nullable=False),
            sa.Column("actor_role", sa.String(), nullable=False),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("doctor_id", sa.Uuid(), nullable=True),
            sa.Column("patient_id", sa.Uuid(), nullable=True),
            sa.Column("target_type", sa.String(), server_default="", nullable=False),
            sa.Column("target_id", sa.Uuid(), nullable=True),
            sa.Column("payload", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_audit_entries_actor_id", "audit_entries", ["actor_id"])
        op.create_index("ix_audit_entries_actor_role", "audit_entries", ["actor_role"])
        op.create_index("ix_audit_entries_action", "audit_entries", ["action"])
        op.create_index("ix_audit_entries_doctor_id", "audit_entries", ["doctor_id"])
        op.create_index("ix_audit_entries_patient_id", "audit_entries", ["patient_id"])
        op.create_index("ix_audit_entries_created_at", "audit_entries", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_entries")
    op.drop_table("access_grant_requests")
    op.drop_table("medical_records")
    op.drop_table("patients")
    op.drop_table("doctors")
