"""workforce tables read by notification dispatch

Revision ID: 8c4f21a6e913
Revises: 3b1e9c07d2aa
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c4f21a6e913"
down_revision: str | Sequence[str] | None = "3b1e9c07d2aa"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid(name: str, *args, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kwargs)


def _org_id() -> sa.Column:
    return _uuid("org_id", sa.ForeignKey("organizations.id"), nullable=False)


def _profile_id() -> sa.Column:
    return _uuid("profile_id", sa.ForeignKey("profiles.id"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "profiles",
        _uuid("id", primary_key=True),
        _org_id(),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("user_id", sa.String(length=320), nullable=True),
        _uuid("manager_id", sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="active"
        ),
    )
    op.create_index("ix_profiles_org_id", "profiles", ["org_id"])

    op.create_table(
        "leave_requests",
        _uuid("id", primary_key=True),
        _org_id(),
        _profile_id(),
        sa.Column("leave_type", sa.String(length=16), nullable=False),
        sa.Column("from_date", sa.Date(), nullable=False),
        sa.Column("to_date", sa.Date(), nullable=False),
        sa.Column("days", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="pending"
        ),
    )

    op.create_table(
        "attendance_correction_requests",
        _uuid("id", primary_key=True),
        _org_id(),
        _profile_id(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("reviewer_notes", sa.Text(), nullable=True),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="pending"
        ),
    )

    op.create_table(
        "reimbursement_requests",
        _uuid("id", primary_key=True),
        _org_id(),
        _profile_id(),
        sa.Column(
            "amount", sa.Numeric(14, 2), nullable=False, server_default="0"
        ),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("vendor_name", sa.String(length=255), nullable=True),
        sa.Column("manager_notes", sa.Text(), nullable=True),
        sa.Column("finance_notes", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            server_default="pending_manager",
        ),
    )

    op.create_table(
        "memos",
        _uuid("id", primary_key=True),
        _org_id(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("author_name", sa.String(length=255), nullable=False),
        sa.Column(
            "recipients",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
    )


def downgrade() -> None:
    op.drop_table("memos")
    op.drop_table("reimbursement_requests")
    op.drop_table("attendance_correction_requests")
    op.drop_table("leave_requests")
    op.drop_index("ix_profiles_org_id", table_name="profiles")
    op.drop_table("profiles")
