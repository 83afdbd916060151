"""create fusion intelligence tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), nullable=nullable)


def _timestamp(name: str, nullable: bool = False, now_default: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()") if now_default else None,
        nullable=nullable,
    )


def _jsonb(name: str) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), server_default="{}", nullable=False)


def upgrade() -> None:
    # --- Work list and raw events --------------------------------------
    op.create_table(
        "integration_registry",
        _uuid("id"),
        sa.Column("service_name", sa.String(length=100), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), server_default="true", nullable=False),
        _timestamp("created_at", now_default=True),
        _timestamp("updated_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_integration_registry"),
        sa.UniqueConstraint("service_name", name="uq_integration_registry_service_name"),
    )

    op.create_table(
        "user_integrations",
        _uuid("id"),
        _uuid("user_id"),
        _uuid("integration_id"),
        sa.Column("status", sa.String(length=32), server_default="active", nullable=False),
        _timestamp("created_at", now_default=True),
        _timestamp("updated_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_user_integrations"),
        sa.ForeignKeyConstraint(
            ["integration_id"],
            ["integration_registry.id"],
            name="fk_user_integrations_integration_id_integration_registry",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("user_id", "integration_id", name="uq_user_integrations_user_integration"),
    )
    op.create_index("ix_user_integrations_status", "user_integrations", ["status"], unique=False)

    op.create_table(
        "integration_events",
        _uuid("id"),
        _uuid("user_id"),
        _uuid("user_integration_id", nullable=True),
        sa.Column("service_name", sa.String(length=100), nullable=False),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        _timestamp("occurred_at", now_default=True),
        _jsonb("metadata"),
        _timestamp("created_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_integration_events"),
        sa.ForeignKeyConstraint(
            ["user_integration_id"],
            ["user_integrations.id"],
            name="fk_integration_events_user_integration_id_user_integrations",
            ondelete="SET NULL",
        ),
    )
    op.create_index(
        "ix_integration_events_user_service_occurred",
        "integration_events",
        ["user_id", "service_name", "occurred_at"],
        unique=False,
    )

    # --- Snapshots and insights ----------------------------------------
    op.create_table(
        "integration_intelligence",
        _uuid("id"),
        _uuid("user_id"),
        _uuid("integration_id"),
        sa.Column("service_name", sa.String(length=100), nullable=False),
        sa.Column("category", sa.String(length=50), server_default="general", nullable=False),
        sa.Column("activity_volume", sa.Float(), server_default="0", nullable=False),
        sa.Column("participation_level", sa.Float(), server_default="0", nullable=False),
        sa.Column("responsiveness", sa.Float(), server_default="50", nullable=False),
        sa.Column("throughput", sa.Float(), server_default="50", nullable=False),
        sa.Column("trend_direction", sa.String(length=16), server_default="stable", nullable=False),
        sa.Column("week_over_week_change", sa.Float(), server_default="0", nullable=False),
        sa.Column("trend_slope", sa.Float(), server_default="0", nullable=False),
        sa.Column("forecast_score", sa.Float(), server_default="0", nullable=False),
        sa.Column("fusion_score", sa.Float(), server_default="0", nullable=False),
        sa.Column("fusion_contribution", sa.Float(), server_default="0", nullable=False),
        sa.Column("anomaly_score", sa.Float(), server_default="0", nullable=False),
        sa.Column("anomaly_detected", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("event_count", sa.Integer(), server_default="0", nullable=False),
        _jsonb("raw_metrics"),
        sa.Column("signals_used", postgresql.ARRAY(sa.String()), server_default="{}", nullable=False),
        _timestamp("computed_at", nullable=True),
        _timestamp("last_successful_run_at", nullable=True),
        _timestamp("last_failed_run_at", nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        _timestamp("created_at", now_default=True),
        _timestamp("updated_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_integration_intelligence"),
        sa.UniqueConstraint(
            "user_id",
            "integration_id",
            "service_name",
            name="uq_integration_intelligence_user_integration_service",
        ),
    )
    op.create_index("ix_integration_intelligence_user_id", "integration_intelligence", ["user_id"], unique=False)

    op.create_table(
        "integration_insights",
        _uuid("id"),
        _uuid("user_id"),
        _uuid("integration_id", nullable=True),
        sa.Column("service_name", sa.String(length=100), nullable=False),
        sa.Column("insight_key", sa.String(length=150), nullable=False),
        sa.Column("insight_text", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        _jsonb("metadata"),
        _timestamp("generated_at"),
        _timestamp("created_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_integration_insights"),
    )
    op.create_index(
        "ix_integration_insights_user_service",
        "integration_insights",
        ["user_id", "service_name"],
        unique=False,
    )

    # --- Fusion metrics, weights and history ---------------------------
    op.create_table(
        "fusion_metrics",
        _uuid("id"),
        _uuid("user_id"),
        _uuid("integration_id"),
        sa.Column("metric_name", sa.String(length=150), nullable=False),
        sa.Column("metric_type", sa.String(length=32), server_default="percentage", nullable=False),
        sa.Column("raw_value", sa.Float(), nullable=False),
        sa.Column("normalized_value", sa.Float(), nullable=False),
        sa.Column("weight", sa.Float(), server_default="0.25", nullable=False),
        _timestamp("synced_at"),
        _timestamp("created_at", now_default=True),
        _timestamp("updated_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_fusion_metrics"),
        sa.UniqueConstraint(
            "user_id",
            "integration_id",
            "metric_name",
            name="uq_fusion_metrics_user_integration_metric",
        ),
    )

    op.create_table(
        "fusion_metric_history",
        _uuid("id"),
        _uuid("user_id"),
        _uuid("integration_id"),
        sa.Column("metric_name", sa.String(length=150), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("normalized_value", sa.Float(), nullable=False),
        _timestamp("recorded_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_fusion_metric_history"),
    )
    op.create_index(
        "ix_fusion_metric_history_user_integration_recorded",
        "fusion_metric_history",
        ["user_id", "integration_id", "recorded_at"],
        unique=False,
    )

    op.create_table(
        "fusion_weightings",
        _uuid("id"),
        _uuid("user_id"),
        _uuid("integration_id"),
        sa.Column("metric_name", sa.String(length=150), nullable=False),
        sa.Column("raw_weight", sa.Float(), nullable=False),
        sa.Column("final_weight", sa.Float(), nullable=False),
        sa.Column("variance", sa.Float(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("correlation_penalty", sa.Float(), server_default="0", nullable=False),
        sa.Column("adjustment_reason", sa.String(length=255), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        _timestamp("last_adjusted"),
        _timestamp("created_at", now_default=True),
        _timestamp("updated_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_fusion_weightings"),
        sa.UniqueConstraint(
            "user_id",
            "integration_id",
            "metric_name",
            name="uq_fusion_weightings_user_integration_metric",
        ),
    )

    op.create_table(
        "fusion_audit_log",
        _uuid("id"),
        _uuid("user_id"),
        _uuid("integration_id"),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("metrics_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_variance", sa.Float(), nullable=True),
        sa.Column("avg_confidence", sa.Float(), nullable=True),
        _jsonb("weight_changes"),
        sa.Column("triggered_by", sa.String(length=16), nullable=False),
        sa.Column("execution_time_ms", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        _timestamp("created_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_fusion_audit_log"),
    )
    op.create_index(
        "ix_fusion_audit_log_user_integration",
        "fusion_audit_log",
        ["user_id", "integration_id"],
        unique=False,
    )

    op.create_table(
        "fusion_score_history",
        _uuid("id"),
        _uuid("user_id"),
        _uuid("integration_id"),
        sa.Column("fusion_score", sa.Float(), nullable=False),
        _timestamp("recorded_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_fusion_score_history"),
    )
    op.create_index(
        "ix_fusion_score_history_user_integration_recorded",
        "fusion_score_history",
        ["user_id", "integration_id", "recorded_at"],
        unique=False,
    )

    # --- Anomalies and health samples ----------------------------------
    op.create_table(
        "anomaly_signals",
        _uuid("id"),
        _uuid("user_id", nullable=True),
        sa.Column("anomaly_type", sa.String(length=64), nullable=False),
        sa.Column("anomaly_category", sa.String(length=64), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("source_type", sa.String(length=64), nullable=False),
        sa.Column("source_component_type", sa.String(length=100), nullable=True),
        sa.Column("source_component_name", sa.String(length=255), nullable=True),
        sa.Column("detection_method", sa.String(length=64), nullable=False),
        sa.Column("detection_algorithm", sa.String(length=64), nullable=False),
        sa.Column("baseline_value", sa.Float(), nullable=True),
        sa.Column("observed_value", sa.Float(), nullable=True),
        sa.Column("deviation_percentage", sa.Float(), nullable=True),
        sa.Column("threshold_exceeded", sa.String(length=100), nullable=True),
        sa.Column("pattern_type", sa.String(length=64), nullable=True),
        sa.Column("business_impact", sa.String(length=16), nullable=True),
        sa.Column("recommended_actions", postgresql.ARRAY(sa.Text()), server_default="{}", nullable=False),
        sa.Column("tags", postgresql.ARRAY(sa.String()), server_default="{}", nullable=False),
        _jsonb("metadata"),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("root_cause_analysis", sa.Text(), nullable=True),
        sa.Column("explanation_source", sa.String(length=16), nullable=True),
        sa.Column("status", sa.String(length=16), server_default="detected", nullable=False),
        _timestamp("detected_at"),
        _timestamp("created_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_anomaly_signals"),
    )
    op.create_index("ix_anomaly_signals_detected_at", "anomaly_signals", ["detected_at"], unique=False)
    op.create_index("ix_anomaly_signals_severity", "anomaly_signals", ["severity"], unique=False)

    op.create_table(
        "system_health_events",
        _uuid("id"),
        sa.Column("component_type", sa.String(length=100), nullable=False),
        sa.Column("component_name", sa.String(length=255), nullable=False),
        sa.Column("latency_ms", sa.Float(), nullable=True),
        sa.Column("error_rate", sa.Float(), nullable=True),
        sa.Column("cpu_usage_percent", sa.Float(), nullable=True),
        sa.Column("memory_usage_percent", sa.Float(), nullable=True),
        _timestamp("measured_at", now_default=True),
        sa.PrimaryKeyConstraint("id", name="pk_system_health_events"),
    )
    op.create_index("ix_system_health_events_measured_at", "system_health_events", ["measured_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_system_health_events_measured_at", table_name="system_health_events")
    op.drop_table("system_health_events")
    op.drop_index("ix_anomaly_signals_severity", table_name="anomaly_signals")
    op.drop_index("ix_anomaly_signals_detected_at", table_name="anomaly_signals")
    op.drop_table("anomaly_signals")
    op.drop_index("ix_fusion_score_history_user_integration_recorded", table_name="fusion_score_history")
    op.drop_table("fusion_score_history")
    op.drop_index("ix_fusion_audit_log_user_integration", table_name="fusion_audit_log")
    op.drop_table("fusion_audit_log")
    op.drop_table("fusion_weightings")
    op.drop_index("ix_fusion_metric_history_user_integration_recorded", table_name="fusion_metric_history")
    op.drop_table("fusion_metric_history")
    op.drop_table("fusion_metrics")
    op.drop_index("ix_integration_insights_user_service", table_name="integration_insights")
    op.drop_table("integration_insights")
    op.drop_index("ix_integration_intelligence_user_id", table_name="integration_intelligence")
    op.drop_table("integration_intelligence")
    op.drop_index("ix_integration_events_user_service_occurred", table_name="integration_events")
    op.drop_table("integration_events")
    op.drop_index("ix_user_integrations_status", table_name="user_integrations")
    op.drop_table("user_integrations")
    op.drop_table("integration_registry")
