"""001 - Initial schema: leave policies, balances, requests and audit log.

Revision ID: 001_initial_leave_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000+00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_leave_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "leave_policy",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("policy_level", sa.String(length=50), nullable=False),
        sa.Column("target_id", sa.Uuid(), nullable=False),
        sa.Column("casual_leave_quota", sa.Integer(), nullable=False),
        sa.Column("medical_leave_quota", sa.Integer(), nullable=False),
        sa.Column("annual_leave_quota", sa.Integer(), nullable=False),
        sa.Column("carry_forward_enabled", sa.Boolean(), nullable=False),
        sa.Column("max_carry_forward", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.CheckConstraint("casual_leave_quota >= 0", name="ck_leave_policy_casual_quota"),
        sa.CheckConstraint("medical_leave_quota >= 0", name="ck_leave_policy_medical_quota"),
        sa.CheckConstraint("annual_leave_quota >= 0", name="ck_leave_policy_annual_quota"),
        sa.CheckConstraint("max_carry_forward >= 0", name="ck_leave_policy_max_carry_forward"),
    )
    op.create_index("ix_leave_policy_organization_id", "leave_policy", ["organization_id"])
    op.create_index(
        "ix_leave_policy_scope", "leave_policy", ["organization_id", "policy_level", "target_id", "active"]
    )

    op.create_table(
        "leave_balance",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("casual_leave_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("casual_leave_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("medical_leave_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("medical_leave_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("annual_leave_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("annual_leave_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("carry_forward_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("carry_forward_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("policy_id", sa.Uuid(), sa.ForeignKey("leave_policy.id", ondelete="SET NULL"), nullable=True),
        _timestamp("last_updated"),
        sa.UniqueConstraint("employee_id", "organization_id", "year", name="uq_leave_balance_employee_year"),
        sa.CheckConstraint("casual_leave_balance >= 0", name="ck_leave_balance_casual"),
        sa.CheckConstraint("medical_leave_balance >= 0", name="ck_leave_balance_medical"),
        sa.CheckConstraint("annual_leave_balance >= 0", name="ck_leave_balance_annual"),
        sa.CheckConstraint("carry_forward_balance >= 0", name="ck_leave_balance_carry_forward"),
        sa.CheckConstraint(
            "casual_leave_used >= 0 AND medical_leave_used >= 0 AND annual_leave_used >= 0 AND carry_forward_used >= 0",
            name="ck_leave_balance_used",
        ),
    )
    op.create_index("ix_leave_balance_employee_id", "leave_balance", ["employee_id"])
    op.create_index("ix_leave_balance_organization_id", "leave_balance", ["organization_id"])

    op.create_table(
        "leave_request",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="Pending"),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        _timestamp("approved_at", nullable=True),
        sa.Column("rejected_by", sa.Uuid(), nullable=True),
        _timestamp("rejected_at", nullable=True),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        _timestamp("cancelled_at", nullable=True),
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_range"),
        sa.CheckConstraint("total_days >= 0", name="ck_leave_request_total_days"),
    )
    op.create_index("ix_leave_request_user_id", "leave_request", ["user_id"])
    op.create_index("ix_leave_request_organization_id", "leave_request", ["organization_id"])
    op.create_index("ix_leave_request_status", "leave_request", ["status"])
    op.create_index("ix_leave_request_org_status", "leave_request", ["organization_id", "status"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_audit_log_organization_id", "audit_log", ["organization_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("leave_request")
    op.drop_table("leave_balance")
    op.drop_table("leave_policy")
