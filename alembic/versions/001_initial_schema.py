"""Initial schema — slots, attendance_records, skip_requests, slot_events.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "slots",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("start_time", sa.Time, nullable=False, unique=True),
        sa.Column("end_time", sa.Time, nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="free"),
        sa.Column("consecutive_missed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_attended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("counting_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("skip_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_slots_owner_id", "slots", ["owner_id"], unique=True)
    op.create_index("ix_slots_status", "slots", ["status"])

    op.create_table(
        "attendance_records",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("slot_id", sa.Integer, sa.ForeignKey("slots.id"), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("occurrence_date", sa.Date, nullable=False),
        sa.Column("attended", sa.Boolean, nullable=False),
        sa.Column("exempt", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "slot_id", "occurrence_date", name="uq_attendance_slot_occurrence",
        ),
    )
    op.create_index(
        "ix_attendance_records_owner_id", "attendance_records", ["owner_id"],
    )

    op.create_table(
        "skip_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("requested_days", sa.Integer, nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("admin_comment", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("effective_until", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "requested_days >= 1 AND requested_days <= 30",
            name="ck_skip_requests_days",
        ),
    )
    op.create_index("ix_skip_requests_owner_id", "skip_requests", ["owner_id"])
    op.create_index("ix_skip_requests_status", "skip_requests", ["status"])
    op.create_index(
        "uq_skip_requests_owner_pending", "skip_requests", ["owner_id"],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "slot_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("kind", sa.String(40), nullable=False),
        sa.Column("slot_id", sa.Integer, nullable=True),
        sa.Column("owner_id", sa.String(64), nullable=True),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_slot_events_kind", "slot_events", ["kind"])


def downgrade() -> None:
    op.drop_table("slot_events")
    op.drop_table("skip_requests")
    op.drop_table("attendance_records")
    op.drop_table("slots")
