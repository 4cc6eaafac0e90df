# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from hr_leave.exceptions import ForbiddenError
from hr_leave.schemas.auth import AuthContext
from hr_leave.services.authority import ApprovalAuthority, get_approval_authority


async def get_auth_context(
    x_organization_id: uuid.UUID = Header(),
    x_user_id: uuid.UUID = Header(),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(organization_id=x_organization_id, user_id=x_user_id)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_authority(
    auth: AuthDep,
    authority: ApprovalAuthority = Depends(get_approval_authority),
) -> AuthContext:
    """Require the system-admin or manage-users capability."""
    if not await authority.is_authority(auth.organization_id, auth.user_id):
        raise ForbiddenError("Insufficient permissions")
    return auth


AuthorityDep = Annotated[AuthContext, Depends(require_authority)]
