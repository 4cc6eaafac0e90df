# ruff: noqa: TC003
"""Leave policy resolution through the organizational hierarchy.

The applicable policy for an employee is the first active one found while
walking the scopes from most to least specific::

    Employee -> Team -> Department -> Organization -> DEFAULT_LEAVE_POLICY

so an organization can set broad quotas and still override them per
department, team or person.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlmodel import col

from hr_leave.exceptions import DependencyUnavailableError
from hr_leave.models.enums import PolicyLevel
from hr_leave.models.policy import LeavePolicy
from hr_leave.services.directory import get_directory_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_leave.services.directory import DirectoryService

logger = logging.getLogger(__name__)


class DefaultLeavePolicy(BaseModel):
    """Quotas applied when no policy matches at any scope."""

    model_config = ConfigDict(frozen=True)

    id: None = None
    policy_level: None = None
    casual_leave_quota: int
    medical_leave_quota: int
    annual_leave_quota: int


DEFAULT_LEAVE_POLICY = DefaultLeavePolicy(casual_leave_quota=8, medical_leave_quota=8, annual_leave_quota=0)

ApplicablePolicy = LeavePolicy | DefaultLeavePolicy

TargetLookup = Callable[["DirectoryService", uuid.UUID, uuid.UUID], Awaitable[list[uuid.UUID]]]


async def _employee_targets(
    directory: DirectoryService, organization_id: uuid.UUID, employee_id: uuid.UUID
) -> list[uuid.UUID]:
    return [employee_id]


async def _team_targets(
    directory: DirectoryService, organization_id: uuid.UUID, employee_id: uuid.UUID
) -> list[uuid.UUID]:
    return await directory.get_team_ids(organization_id, employee_id)


async def _department_targets(
    directory: DirectoryService, organization_id: uuid.UUID, employee_id: uuid.UUID
) -> list[uuid.UUID]:
    department_id = await directory.get_department_id(organization_id, employee_id)
    return [department_id] if department_id is not None else []


async def _organization_targets(
    directory: DirectoryService, organization_id: uuid.UUID, employee_id: uuid.UUID
) -> list[uuid.UUID]:
    return [organization_id]


@dataclass(frozen=True)
class ScopeRule:
    """One step of the resolution chain: a policy level and how to find its targets."""

    level: PolicyLevel
    targets: TargetLookup


# Evaluated in order; the first rule with an active matching policy wins.
RESOLUTION_CHAIN: tuple[ScopeRule, ...] = (
    ScopeRule(PolicyLevel.EMPLOYEE, _employee_targets),
    ScopeRule(PolicyLevel.TEAM, _team_targets),
    ScopeRule(PolicyLevel.DEPARTMENT, _department_targets),
    ScopeRule(PolicyLevel.ORGANIZATION, _organization_targets),
)


class PolicyResolver:
    """Find the most specific active leave policy for an employee."""

    def __init__(
        self,
        session: AsyncSession,
        directory: DirectoryService | None = None,
        chain: tuple[ScopeRule, ...] = RESOLUTION_CHAIN,
    ) -> None:
        self._session = session
        self._directory = directory if directory is not None else get_directory_service()
        self._chain = chain

    async def resolve(self, employee_id: uuid.UUID, organization_id: uuid.UUID) -> ApplicablePolicy:
        """Return the applicable policy, falling back to DEFAULT_LEAVE_POLICY.

        Only directory failures propagate, as DependencyUnavailableError.
        """
        for rule in self._chain:
            target_ids = await self._lookup_targets(rule, organization_id, employee_id)
            if not target_ids:
                continue

            policy = await self._find_active_policy(organization_id, rule.level, target_ids)
            if policy is not None:
                logger.debug(
                    "Resolved %s policy %s for employee=%s org=%s",
                    rule.level.value,
                    policy.id,
                    employee_id,
                    organization_id,
                )
                return policy

        logger.debug("No policy matched employee=%s org=%s, using defaults", employee_id, organization_id)
        return DEFAULT_LEAVE_POLICY

    async def _lookup_targets(
        self,
        rule: ScopeRule,
        organization_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> list[uuid.UUID]:
        try:
            return await rule.targets(self._directory, organization_id, employee_id)
        except Exception as exc:
            logger.exception("Directory lookup failed for %s scope of employee=%s", rule.level.value, employee_id)
            raise DependencyUnavailableError("Directory service unavailable") from exc

    async def _find_active_policy(
        self,
        organization_id: uuid.UUID,
        level: PolicyLevel,
        target_ids: list[uuid.UUID],
    ) -> LeavePolicy | None:
        # Duplicate active policies at one scope are not rejected on write;
        # the oldest one wins so the result does not depend on row order.
        result = await self._session.execute(
            select(LeavePolicy)
            .where(
                col(LeavePolicy.organization_id) == organization_id,
                col(LeavePolicy.policy_level) == level.value,
                col(LeavePolicy.target_id).in_(target_ids),
                col(LeavePolicy.active).is_(True),
            )
            .order_by(col(LeavePolicy.created_at), col(LeavePolicy.id))
            .limit(1)
        )
        return result.scalar_one_or_none()


async def resolve_policy(
    session: AsyncSession,
    employee_id: uuid.UUID,
    organization_id: uuid.UUID,
) -> ApplicablePolicy:
    """Resolve with the configured Directory Service."""
    return await PolicyResolver(session).resolve(employee_id, organization_id)
