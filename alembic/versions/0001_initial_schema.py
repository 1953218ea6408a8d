"""Medication ledger, dose history and settings.

Revision ID: 0001
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "medications",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("owner_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("dose_quantity", sa.String(length=120), nullable=False),
        sa.Column("interval_hours", sa.Integer(), nullable=False),
        sa.Column("next_dose_at", sa.String(length=32)),
        sa.Column("total_doses", sa.Integer(), nullable=False),
        sa.CheckConstraint("interval_hours > 0", name="ck_medications_interval_positive"),
        sa.CheckConstraint("total_doses >= 0", name="ck_medications_total_doses"),
    )
    op.create_index("ix_medications_owner_id", "medications", ["owner_id"])

    op.create_table(
        "dose_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "medication_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("medications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("taken_at", sa.String(length=32), nullable=False),
    )
    op.create_index("ix_dose_events_medication_id", "dose_events", ["medication_id"])

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("value", sa.JSON()),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    op.drop_index("ix_dose_events_medication_id", table_name="dose_events")
    op.drop_table("dose_events")
    op.drop_index("ix_medications_owner_id", table_name="medications")
    op.drop_table("medications")
