# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from hr_leave.exceptions import DependencyUnavailableError
from hr_leave.services.identity import get_identity_service

if TYPE_CHECKING:
    from hr_leave.models.request import LeaveRequest
    from hr_leave.services.identity import IdentityService

logger = logging.getLogger(__name__)


class ApprovalAuthority:
    """Single place that decides who may act on other people's leave.

    An authority is an actor holding the system-admin or manage-users
    capability. Employees without either may only cancel their own pending
    requests.
    """

    def __init__(self, identity: IdentityService | None = None) -> None:
        self._identity = identity if identity is not None else get_identity_service()

    async def is_authority(self, organization_id: uuid.UUID, actor_id: uuid.UUID) -> bool:
        """Whether the actor may approve, reject or adjust others' leave."""
        try:
            capabilities = await self._identity.get_capabilities(organization_id, actor_id)
        except Exception as exc:
            logger.exception("Identity lookup failed for actor=%s", actor_id)
            raise DependencyUnavailableError("Identity service unavailable") from exc

        if capabilities is None:
            return False
        return capabilities.is_system_admin or capabilities.can_manage_users

    async def can_approve(self, actor_id: uuid.UUID, request: LeaveRequest) -> bool:
        """Whether the actor may approve or reject the request."""
        return await self.is_authority(request.organization_id, actor_id)

    async def can_cancel(self, actor_id: uuid.UUID, request: LeaveRequest) -> bool:
        """The owner or an authority may cancel."""
        if actor_id == request.user_id:
            return True
        return await self.is_authority(request.organization_id, actor_id)


def get_approval_authority() -> ApprovalAuthority:
    """Build an ApprovalAuthority over the configured Identity Service."""
    return ApprovalAuthority()
