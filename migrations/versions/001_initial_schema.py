"""
001: Initial schema: health_scores, bulk_operation_logs and the entity /
engine-input tables this service reads and mutates.

Revision ID: 001
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.String(36), primary_key=True)


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    # ── Entities ──
    op.create_table(
        "companies",
        _id(),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("slug", sa.String(200), nullable=True),
        sa.Column("status", sa.String(30), nullable=True),
        sa.Column("tags", sa.JSON, nullable=True),
        sa.Column("cs_manager_id", sa.String(36), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        _created_at(),
    )
    op.create_index("ix_companies_status", "companies", ["status"])

    op.create_table(
        "leads",
        _id(),
        sa.Column("company_id", sa.String(36), nullable=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("status", sa.String(30), nullable=True),
        sa.Column("tags", sa.JSON, nullable=True),
        sa.Column("assigned_to", sa.String(36), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        _created_at(),
    )
    op.create_index("ix_leads_company_id", "leads", ["company_id"])
    op.create_index("ix_leads_created_at", "leads", ["created_at"])

    op.create_table(
        "company_subscriptions",
        _id(),
        sa.Column("company_id", sa.String(36), nullable=True),
        sa.Column("plan_id", sa.String(36), nullable=True),
        sa.Column("status", sa.String(30), nullable=True),
        sa.Column("billing_cycle", sa.String(20), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_billing_date", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_company_subscriptions_company_id", "company_subscriptions", ["company_id"])

    # ── Engine inputs ──
    op.create_table(
        "profiles",
        _id(),
        sa.Column("company_id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        _created_at(),
    )
    op.create_index("ix_profiles_company_id", "profiles", ["company_id"])

    op.create_table(
        "audit_logs",
        _id(),
        sa.Column("company_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        _created_at(),
    )
    op.create_index("ix_audit_logs_company_created", "audit_logs", ["company_id", "created_at"])

    op.create_table(
        "landing_pages",
        _id(),
        sa.Column("company_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(200), nullable=True),
        sa.Column("status", sa.String(30), nullable=True),
        _created_at(),
    )
    op.create_index("ix_landing_pages_company_id", "landing_pages", ["company_id"])

    op.create_table(
        "feature_usage",
        _id(),
        sa.Column("company_id", sa.String(36), nullable=False),
        sa.Column("feature_key", sa.String(100), nullable=False),
        sa.Column("usage_count", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_index("ix_feature_usage_company_id", "feature_usage", ["company_id"])

    # ── Owned by this service ──
    op.create_table(
        "health_scores",
        _id(),
        sa.Column("company_id", sa.String(36), nullable=False),

        sa.Column("overall_score", sa.Integer, nullable=False),
        sa.Column("engagement_score", sa.Integer, nullable=False),
        sa.Column("product_usage_score", sa.Integer, nullable=False),
        sa.Column("support_score", sa.Integer, nullable=False),
        sa.Column("payment_score", sa.Integer, nullable=False),
        sa.Column("health_status", sa.String(20), nullable=False),

        sa.Column("risk_factors", sa.JSON, nullable=False),
        sa.Column("recommendations", sa.JSON, nullable=False),

        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.CheckConstraint("overall_score BETWEEN 0 AND 100", name="ck_health_scores_overall_range"),
    )
    op.create_index("ix_health_scores_company_calculated", "health_scores", ["company_id", "calculated_at"])

    op.create_table(
        "bulk_operation_logs",
        _id(),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("operation", sa.String(50), nullable=False),
        sa.Column("entity_ids", sa.JSON, nullable=False),
        sa.Column("parameters", sa.JSON, nullable=False),

        sa.Column("total_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("success_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("failed_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("error_details", sa.JSON, nullable=False),

        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("executed_by", sa.Text, nullable=True),
        _created_at(),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_bulk_operation_logs_entity_type", "bulk_operation_logs", ["entity_type"])
    op.create_index("ix_bulk_operation_logs_operation", "bulk_operation_logs", ["operation"])
    op.create_index("ix_bulk_operation_logs_status", "bulk_operation_logs", ["status"])
    op.create_index("ix_bulk_operation_logs_created_at", "bulk_operation_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "bulk_operation_logs", "health_scores", "feature_usage", "landing_pages",
        "audit_logs", "profiles", "company_subscriptions", "leads", "companies",
    ):
        op.drop_table(table)
