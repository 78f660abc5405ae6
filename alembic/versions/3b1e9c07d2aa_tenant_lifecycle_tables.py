"""tenant lifecycle tables

Revision ID: 3b1e9c07d2aa
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1e9c07d2aa"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _org_fk() -> sa.ForeignKey:
    return sa.ForeignKey("organizations.id")


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "lifecycle",
            sa.String(length=32),
            nullable=False,
            server_default="pending_activation",
        ),
        sa.Column(
            "enabled_modules",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("plan", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("suspended_from", sa.String(length=32), nullable=True),
        sa.CheckConstraint(
            "lifecycle IN ('pending_activation', 'onboarding', 'active', 'suspended')",
            name="ck_organizations_lifecycle",
        ),
    )

    op.create_table(
        "subscription_keys",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("key_hash", sa.String(length=64), nullable=False, unique=True),
        sa.Column("plan", sa.String(length=64), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "enabled_modules",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("created_by", sa.String(length=320), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="active"
        ),
        sa.CheckConstraint("used_count <= max_uses", name="ck_keys_usage_bound"),
    )

    op.create_table(
        "subscription_redemptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "key_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscription_keys.id"),
            nullable=False,
        ),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), _org_fk(), nullable=False),
        sa.Column("redeemed_by", sa.String(length=320), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("actor_id", sa.String(length=320), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.Text(), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), _org_fk(), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_org_id", "audit_logs", ["org_id"])

    op.create_table(
        "user_roles",
        sa.Column("org_id", postgresql.UUID(as_uuid=True), _org_fk(), primary_key=True),
        sa.Column("user_id", sa.String(length=320), primary_key=True),
        sa.Column("role", sa.String(length=16), primary_key=True),
    )

    op.create_table(
        "chart_of_accounts",
        sa.Column("org_id", postgresql.UUID(as_uuid=True), _org_fk(), primary_key=True),
        sa.Column("account_code", sa.String(length=16), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("account_type", sa.String(length=16), nullable=False),
    )

    op.create_table(
        "financial_years",
        sa.Column("org_id", postgresql.UUID(as_uuid=True), _org_fk(), primary_key=True),
        sa.Column("start_date", sa.Date(), primary_key=True),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "approval_workflows",
        sa.Column("org_id", postgresql.UUID(as_uuid=True), _org_fk(), primary_key=True),
        sa.Column("workflow_type", sa.String(length=32), primary_key=True),
        sa.Column("threshold_amount", sa.Integer(), nullable=False),
        sa.Column("approver_role", sa.String(length=16), nullable=False),
    )

    op.create_table(
        "compliance_settings",
        sa.Column("org_id", postgresql.UUID(as_uuid=True), _org_fk(), primary_key=True),
        sa.Column(
            "gst_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "tds_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "pf_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "esi_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "working_days",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
    )

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(length=320), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), _org_fk(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("link", sa.String(length=255), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("compliance_settings")
    op.drop_table("approval_workflows")
    op.drop_table("financial_years")
    op.drop_table("chart_of_accounts")
    op.drop_table("user_roles")
    op.drop_index("ix_audit_logs_org_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("subscription_redemptions")
    op.drop_table("subscription_keys")
    op.drop_table("organizations")
