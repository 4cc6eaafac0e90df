# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from hr_leave.models.base import UUIDBase, now_utc


class LeaveBalance(UUIDBase, table=True):
    """Remaining and consumed leave for one employee in one calendar year.

    For every leave type ``used + balance`` stays at the quota seeded on
    creation unless an administrator overrides it.
    """

    __tablename__ = "leave_balance"
    __table_args__ = (
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

    employee_id: uuid.UUID = Field(index=True)
    organization_id: uuid.UUID = Field(index=True)
    year: int
    casual_leave_used: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    casual_leave_balance: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    medical_leave_used: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    medical_leave_balance: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    annual_leave_used: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    annual_leave_balance: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    carry_forward_used: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    carry_forward_balance: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    policy_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_policy.id", ondelete="SET NULL"), nullable=True),
    )
    last_updated: datetime = Field(  # type: ignore[call-overload]
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": sa.func.now()},
    )
