# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from hr_leave.exceptions import NotFoundError, ValidationError
from hr_leave.models.base import now_utc
from hr_leave.models.enums import AuditAction, AuditEntityType, PolicyLevel
from hr_leave.models.policy import LeavePolicy
from hr_leave.schemas.policy import DeletePolicyResponse, PolicyListResponse, PolicyResponse
from hr_leave.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_leave.schemas.auth import AuthContext
    from hr_leave.schemas.policy import CreatePolicyRequest, UpdatePolicyRequest

logger = logging.getLogger(__name__)


def _build_policy_response(policy: LeavePolicy) -> PolicyResponse:
    """Build a PolicyResponse from a DB model."""
    return PolicyResponse(
        id=policy.id,
        organization_id=policy.organization_id,
        name=policy.name,
        description=policy.description,
        policy_level=PolicyLevel(policy.policy_level),
        target_id=policy.target_id,
        casual_leave_quota=policy.casual_leave_quota,
        medical_leave_quota=policy.medical_leave_quota,
        annual_leave_quota=policy.annual_leave_quota,
        carry_forward_enabled=policy.carry_forward_enabled,
        max_carry_forward=policy.max_carry_forward,
        active=policy.active,
        created_by=policy.created_by,
        created_at=policy.created_at,
        updated_at=policy.updated_at,
    )


async def _get_policy_or_404(
    session: AsyncSession,
    organization_id: uuid.UUID,
    policy_id: uuid.UUID,
) -> LeavePolicy:
    """Fetch a policy scoped to the organization. Raises 404 if not found."""
    result = await session.execute(
        select(LeavePolicy).where(
            col(LeavePolicy.id) == policy_id,
            col(LeavePolicy.organization_id) == organization_id,
        )
    )
    policy = result.scalar_one_or_none()
    if policy is None:
        raise NotFoundError("Leave policy not found")
    return policy


async def create_policy(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreatePolicyRequest,
) -> PolicyResponse:
    """Create a leave policy in the caller's organization."""
    policy = LeavePolicy(
        organization_id=auth.organization_id,
        name=payload.name,
        description=payload.description,
        policy_level=payload.policy_level.value,
        target_id=payload.target_id,
        casual_leave_quota=payload.casual_leave_quota,
        medical_leave_quota=payload.medical_leave_quota,
        annual_leave_quota=payload.annual_leave_quota,
        carry_forward_enabled=payload.carry_forward_enabled,
        max_carry_forward=payload.max_carry_forward,
        active=payload.active,
        created_by=auth.user_id,
    )
    session.add(policy)
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.POLICY,
        entity_id=policy.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(policy),
    )

    await session.commit()
    await session.refresh(policy)
    logger.info("Created %s policy %s targeting %s", policy.policy_level, policy.id, policy.target_id)
    return _build_policy_response(policy)


async def get_policy(
    session: AsyncSession,
    organization_id: uuid.UUID,
    policy_id: uuid.UUID,
) -> PolicyResponse:
    """Fetch a single policy."""
    policy = await _get_policy_or_404(session, organization_id, policy_id)
    return _build_policy_response(policy)


async def list_policies(
    session: AsyncSession,
    organization_id: uuid.UUID,
) -> PolicyListResponse:
    """List all policies of an organization, active and inactive, oldest first."""
    count_result = await session.execute(
        select(func.count()).select_from(LeavePolicy).where(col(LeavePolicy.organization_id) == organization_id)
    )
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeavePolicy)
        .where(col(LeavePolicy.organization_id) == organization_id)
        .order_by(col(LeavePolicy.created_at), col(LeavePolicy.id))
    )
    policies = list(result.scalars().all())

    return PolicyListResponse(items=[_build_policy_response(p) for p in policies], total=total)


async def update_policy(
    session: AsyncSession,
    auth: AuthContext,
    policy_id: uuid.UUID,
    payload: UpdatePolicyRequest,
) -> PolicyResponse:
    """Apply a partial update. Balances already seeded from the policy keep their values."""
    policy = await _get_policy_or_404(session, auth.organization_id, policy_id)
    before_dict = model_to_audit_dict(policy)

    for field_name, value in payload.model_dump(exclude_unset=True).items():
        if isinstance(value, PolicyLevel):
            value = value.value
        setattr(policy, field_name, value)

    if not policy.carry_forward_enabled and policy.max_carry_forward > 0:
        raise ValidationError("max_carry_forward requires carry_forward_enabled")
    policy.updated_at = now_utc()

    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.POLICY,
        entity_id=policy.id,
        action=AuditAction.UPDATE,
        before_json=before_dict,
        after_json=model_to_audit_dict(policy),
    )

    await session.commit()
    await session.refresh(policy)
    return _build_policy_response(policy)


async def delete_policy(
    session: AsyncSession,
    auth: AuthContext,
    policy_id: uuid.UUID,
) -> DeletePolicyResponse:
    """Hard-delete a policy. Balances it seeded lose their policy reference."""
    policy = await _get_policy_or_404(session, auth.organization_id, policy_id)
    before_dict = model_to_audit_dict(policy)

    await session.delete(policy)
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.POLICY,
        entity_id=policy_id,
        action=AuditAction.DELETE,
        before_json=before_dict,
    )

    await session.commit()
    logger.info("Deleted policy %s", policy_id)
    return DeletePolicyResponse(message="Leave policy deleted successfully")
