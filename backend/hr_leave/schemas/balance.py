# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

# ---------------------------------------------------------------------------
# Balance response schema
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """An employee's leave balance for one calendar year."""

    id: uuid.UUID
    employee_id: uuid.UUID
    organization_id: uuid.UUID
    year: int
    casual_leave_used: int
    casual_leave_balance: int
    medical_leave_used: int
    medical_leave_balance: int
    annual_leave_used: int
    annual_leave_balance: int
    carry_forward_used: int
    carry_forward_balance: int
    policy_id: uuid.UUID | None
    last_updated: datetime


# ---------------------------------------------------------------------------
# Administrative override schema
# ---------------------------------------------------------------------------


class BalanceOverrideRequest(BaseModel):
    """Request body for an administrative balance override.

    Only the fields provided are written; values are absolute, not deltas.
    """

    casual_leave_used: int | None = Field(default=None, ge=0)
    casual_leave_balance: int | None = Field(default=None, ge=0)
    medical_leave_used: int | None = Field(default=None, ge=0)
    medical_leave_balance: int | None = Field(default=None, ge=0)
    annual_leave_used: int | None = Field(default=None, ge=0)
    annual_leave_balance: int | None = Field(default=None, ge=0)
    carry_forward_used: int | None = Field(default=None, ge=0)
    carry_forward_balance: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _require_a_field(self) -> Self:
        if not any(getattr(self, name) is not None for name in type(self).model_fields):
            msg = "At least one balance field must be provided"
            raise ValueError(msg)
        return self
