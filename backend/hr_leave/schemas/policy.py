# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from hr_leave.models.enums import PolicyLevel

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreatePolicyRequest(BaseModel):
    """Request body for creating a leave policy."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    policy_level: PolicyLevel
    target_id: uuid.UUID
    casual_leave_quota: int = Field(ge=0)
    medical_leave_quota: int = Field(ge=0)
    annual_leave_quota: int = Field(ge=0)
    carry_forward_enabled: bool = False
    max_carry_forward: int = Field(default=0, ge=0)
    active: bool = True

    @model_validator(mode="after")
    def _validate_carry_forward(self) -> Self:
        if not self.carry_forward_enabled and self.max_carry_forward > 0:
            msg = "max_carry_forward requires carry_forward_enabled"
            raise ValueError(msg)
        return self


class UpdatePolicyRequest(BaseModel):
    """Partial update of a leave policy. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    policy_level: PolicyLevel | None = None
    target_id: uuid.UUID | None = None
    casual_leave_quota: int | None = Field(default=None, ge=0)
    medical_leave_quota: int | None = Field(default=None, ge=0)
    annual_leave_quota: int | None = Field(default=None, ge=0)
    carry_forward_enabled: bool | None = None
    max_carry_forward: int | None = Field(default=None, ge=0)
    active: bool | None = None

    @model_validator(mode="after")
    def _reject_explicit_nulls(self) -> Self:
        nullable = {"description"}
        for field_name in self.model_fields_set - nullable:
            if getattr(self, field_name) is None:
                msg = f"{field_name} cannot be null"
                raise ValueError(msg)
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PolicyResponse(BaseModel):
    """Response schema for a single leave policy."""

    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    description: str | None
    policy_level: PolicyLevel
    target_id: uuid.UUID
    casual_leave_quota: int
    medical_leave_quota: int
    annual_leave_quota: int
    carry_forward_enabled: bool
    max_carry_forward: int
    active: bool
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime


class PolicyListResponse(BaseModel):
    """All leave policies of an organization, active and inactive."""

    items: list[PolicyResponse]
    total: int


class DeletePolicyResponse(BaseModel):
    """Acknowledgement returned after a policy is deleted."""

    message: str
