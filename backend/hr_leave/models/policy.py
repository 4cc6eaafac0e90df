# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from hr_leave.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase


class LeavePolicy(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """Yearly leave quotas granted at one organizational scope.

    ``target_id`` is the id of the employee, team, department or organization
    named by ``policy_level``.
    """

    __tablename__ = "leave_policy"
    __table_args__ = (
        sa.Index("ix_leave_policy_scope", "organization_id", "policy_level", "target_id", "active"),
        sa.CheckConstraint("casual_leave_quota >= 0", name="ck_leave_policy_casual_quota"),
        sa.CheckConstraint("medical_leave_quota >= 0", name="ck_leave_policy_medical_quota"),
        sa.CheckConstraint("annual_leave_quota >= 0", name="ck_leave_policy_annual_quota"),
        sa.CheckConstraint("max_carry_forward >= 0", name="ck_leave_policy_max_carry_forward"),
    )

    organization_id: uuid.UUID = Field(index=True)
    name: str = Field(max_length=255)
    description: str | None = None
    policy_level: str = Field(max_length=50)
    target_id: uuid.UUID
    casual_leave_quota: int = Field(default=0)
    medical_leave_quota: int = Field(default=0)
    annual_leave_quota: int = Field(default=0)
    carry_forward_enabled: bool = Field(default=False)
    max_carry_forward: int = Field(default=0)
    active: bool = Field(default=True)
    created_by: uuid.UUID
