# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from hr_leave.api.deps import AuthDep, AuthorityDep
from hr_leave.db import SessionDep
from hr_leave.schemas.policy import (
    CreatePolicyRequest,
    DeletePolicyResponse,
    PolicyListResponse,
    PolicyResponse,
    UpdatePolicyRequest,
)
from hr_leave.services import policy as policy_service

policies_router = APIRouter(prefix="/policies", tags=["policies"])


@policies_router.get("", response_model=PolicyListResponse)
async def list_policies(
    session: SessionDep,
    auth: AuthDep,
) -> PolicyListResponse:
    """List the organization's leave policies, active and inactive."""
    return await policy_service.list_policies(session, auth.organization_id)


@policies_router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    payload: CreatePolicyRequest,
    session: SessionDep,
    auth: AuthorityDep,
) -> PolicyResponse:
    """Create a leave policy."""
    return await policy_service.create_policy(session, auth, payload)


@policies_router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> PolicyResponse:
    """Get a single leave policy."""
    return await policy_service.get_policy(session, auth.organization_id, policy_id)


@policies_router.patch("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: uuid.UUID,
    payload: UpdatePolicyRequest,
    session: SessionDep,
    auth: AuthorityDep,
) -> PolicyResponse:
    """Partially update a leave policy."""
    return await policy_service.update_policy(session, auth, policy_id, payload)


@policies_router.delete("/{policy_id}", response_model=DeletePolicyResponse)
async def delete_policy(
    policy_id: uuid.UUID,
    session: SessionDep,
    auth: AuthorityDep,
) -> DeletePolicyResponse:
    """Delete a leave policy."""
    return await policy_service.delete_policy(session, auth, policy_id)
