"""create anomaly detection audit

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "anomaly_detection_audit",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("event_type", sa.String(length=64), server_default="anomaly_detection", nullable=False),
        sa.Column("event_description", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), server_default="{}", nullable=False),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_anomaly_detection_audit"),
    )
    op.create_index(
        "ix_anomaly_detection_audit_detected_at",
        "anomaly_detection_audit",
        ["detected_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_anomaly_detection_audit_detected_at", table_name="anomaly_detection_audit")
    op.drop_table("anomaly_detection_audit")
