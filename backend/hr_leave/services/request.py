# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update
from sqlmodel import col

from hr_leave.exceptions import ForbiddenError, InvalidTransitionError, NotFoundError, ValidationError
from hr_leave.models.base import now_utc
from hr_leave.models.enums import AuditAction, AuditEntityType, LeaveType, RequestStatus
from hr_leave.models.request import LeaveRequest
from hr_leave.schemas.request import LeaveRequestListResponse, LeaveRequestResponse
from hr_leave.services.audit import model_to_audit_dict, write_audit_log
from hr_leave.services.authority import get_approval_authority
from hr_leave.services.balance import apply_delta, get_or_create_balance
from hr_leave.services.days import count_chargeable_days

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_leave.schemas.auth import AuthContext
    from hr_leave.schemas.request import CreateLeaveRequestPayload, DecisionPayload
    from hr_leave.services.authority import ApprovalAuthority

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason provided"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(leave_request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=leave_request.id,
        user_id=leave_request.user_id,
        organization_id=leave_request.organization_id,
        leave_type=LeaveType(leave_request.leave_type),
        start_date=leave_request.start_date,
        end_date=leave_request.end_date,
        total_days=leave_request.total_days,
        reason=leave_request.reason,
        status=RequestStatus(leave_request.status),
        approved_by=leave_request.approved_by,
        approved_at=leave_request.approved_at,
        rejected_by=leave_request.rejected_by,
        rejected_at=leave_request.rejected_at,
        rejection_reason=leave_request.rejection_reason,
        cancelled_at=leave_request.cancelled_at,
        created_at=leave_request.created_at,
        updated_at=leave_request.updated_at,
    )


async def _get_request_or_404(
    session: AsyncSession,
    organization_id: uuid.UUID,
    request_id: uuid.UUID,
) -> LeaveRequest:
    """Fetch a request by ID scoped to the organization. Raises 404 if not found."""
    result = await session.execute(
        select(LeaveRequest).where(
            col(LeaveRequest.id) == request_id,
            col(LeaveRequest.organization_id) == organization_id,
        )
    )
    leave_request = result.scalar_one_or_none()
    if leave_request is None:
        raise NotFoundError("Leave request not found")
    return leave_request


def _require_pending(leave_request: LeaveRequest, verb: str) -> None:
    if leave_request.status != RequestStatus.PENDING.value:
        raise InvalidTransitionError(f"Only pending requests can be {verb}")


async def _transition(
    session: AsyncSession,
    leave_request: LeaveRequest,
    new_status: RequestStatus,
    verb: str,
    **fields: Any,
) -> None:
    """Move a pending request to ``new_status``.

    The UPDATE only matches while the row is still Pending, so a request can
    leave Pending once even when two callers race.
    """
    result = await session.execute(
        update(LeaveRequest)
        .where(
            col(LeaveRequest.id) == leave_request.id,
            col(LeaveRequest.status) == RequestStatus.PENDING.value,
        )
        .values(status=new_status.value, updated_at=now_utc(), **fields)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:  # type: ignore[attr-defined]
        raise InvalidTransitionError(f"Only pending requests can be {verb}")
    await session.refresh(leave_request)


async def _record_transition(
    session: AsyncSession,
    auth: AuthContext,
    leave_request: LeaveRequest,
    action: AuditAction,
    before_dict: dict[str, Any],
) -> LeaveRequestResponse:
    """Audit, commit and return the transitioned request."""
    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=leave_request.id,
        action=action,
        before_json=before_dict,
        after_json=model_to_audit_dict(leave_request),
    )

    await session.commit()
    await session.refresh(leave_request)
    logger.info("Leave request %s %s by %s", leave_request.id, leave_request.status, auth.user_id)
    return _build_request_response(leave_request)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateLeaveRequestPayload,
) -> LeaveRequestResponse:
    """Submit a leave request for the caller. Balances are untouched until approval."""
    total_days = count_chargeable_days(payload.start_date, payload.end_date)

    leave_request = LeaveRequest(
        user_id=auth.user_id,
        organization_id=auth.organization_id,
        leave_type=payload.leave_type.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        total_days=total_days,
        reason=payload.reason,
        status=RequestStatus.PENDING.value,
    )
    session.add(leave_request)
    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=leave_request.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(leave_request),
    )

    await session.commit()
    await session.refresh(leave_request)
    logger.info(
        "Leave request %s created by %s: %s %s..%s (%d days)",
        leave_request.id,
        auth.user_id,
        leave_request.leave_type,
        leave_request.start_date,
        leave_request.end_date,
        total_days,
    )
    return _build_request_response(leave_request)


async def approve_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    authority: ApprovalAuthority | None = None,
) -> LeaveRequestResponse:
    """Approve a pending request and charge its days to the owner's balance.

    1. Fetch the request and check the approver's capability.
    2. Require Pending.
    3. Get or create the owner's current-year balance.
    4. Conditionally decrement the matching quota.
    5. Conditionally flip the request to Approved.
    6. Audit and commit.

    Any failure rolls the whole transaction back, leaving the request Pending
    and the balance unchanged.
    """
    if authority is None:
        authority = get_approval_authority()

    leave_request = await _get_request_or_404(session, auth.organization_id, request_id)
    if not await authority.can_approve(auth.user_id, leave_request):
        raise ForbiddenError("Not authorized to approve leave requests")
    _require_pending(leave_request, "approved")

    before_dict = model_to_audit_dict(leave_request)
    try:
        balance = await get_or_create_balance(
            session, leave_request.user_id, leave_request.organization_id, date.today().year
        )
        await apply_delta(session, balance.id, LeaveType(leave_request.leave_type), leave_request.total_days)
        await _transition(
            session,
            leave_request,
            RequestStatus.APPROVED,
            "approved",
            approved_by=auth.user_id,
            approved_at=now_utc(),
        )
    except Exception:
        await session.rollback()
        raise

    return await _record_transition(session, auth, leave_request, AuditAction.APPROVE, before_dict)


async def reject_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    reason: str | None = None,
    authority: ApprovalAuthority | None = None,
) -> LeaveRequestResponse:
    """Reject a pending request. Balances are untouched."""
    if authority is None:
        authority = get_approval_authority()

    leave_request = await _get_request_or_404(session, auth.organization_id, request_id)
    if not await authority.can_approve(auth.user_id, leave_request):
        raise ForbiddenError("Not authorized to reject leave requests")
    _require_pending(leave_request, "rejected")

    before_dict = model_to_audit_dict(leave_request)
    await _transition(
        session,
        leave_request,
        RequestStatus.REJECTED,
        "rejected",
        rejected_by=auth.user_id,
        rejected_at=now_utc(),
        rejection_reason=reason or DEFAULT_REJECTION_REASON,
    )

    return await _record_transition(session, auth, leave_request, AuditAction.REJECT, before_dict)


async def cancel_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    authority: ApprovalAuthority | None = None,
) -> LeaveRequestResponse:
    """Cancel a pending request.

    The employee who submitted the request or an authority can cancel.
    Balances are untouched.
    """
    if authority is None:
        authority = get_approval_authority()

    leave_request = await _get_request_or_404(session, auth.organization_id, request_id)
    if not await authority.can_cancel(auth.user_id, leave_request):
        raise ForbiddenError("Not authorized to cancel this request")
    _require_pending(leave_request, "cancelled")

    before_dict = model_to_audit_dict(leave_request)
    await _transition(
        session,
        leave_request,
        RequestStatus.CANCELLED,
        "cancelled",
        cancelled_at=now_utc(),
    )

    return await _record_transition(session, auth, leave_request, AuditAction.CANCEL, before_dict)


async def decide_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: DecisionPayload,
) -> LeaveRequestResponse:
    """Dispatch an approve or reject decision."""
    if payload.status == RequestStatus.APPROVED:
        return await approve_request(session, auth, request_id)
    if payload.status == RequestStatus.REJECTED:
        return await reject_request(session, auth, request_id, payload.rejection_reason)
    raise ValidationError("Invalid status: expected Approved or Rejected")


async def get_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    authority: ApprovalAuthority | None = None,
) -> LeaveRequestResponse:
    """Get a single request. Non-authorities only see their own."""
    leave_request = await _get_request_or_404(session, auth.organization_id, request_id)
    if leave_request.user_id != auth.user_id:
        if authority is None:
            authority = get_approval_authority()
        if not await authority.is_authority(auth.organization_id, auth.user_id):
            raise ForbiddenError("Not authorized to view this request")
    return _build_request_response(leave_request)


async def list_requests(
    session: AsyncSession,
    auth: AuthContext,
    user_id: uuid.UUID | None = None,
    status_filter: RequestStatus | None = None,
    authority: ApprovalAuthority | None = None,
) -> LeaveRequestListResponse:
    """List requests, newest first. Non-authorities are restricted to their own."""
    if authority is None:
        authority = get_approval_authority()

    if not await authority.is_authority(auth.organization_id, auth.user_id):
        if user_id is not None and user_id != auth.user_id:
            raise ForbiddenError("Not authorized to view other employees' requests")
        user_id = auth.user_id

    filters = [col(LeaveRequest.organization_id) == auth.organization_id]
    if user_id is not None:
        filters.append(col(LeaveRequest.user_id) == user_id)
    if status_filter is not None:
        filters.append(col(LeaveRequest.status) == status_filter.value)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest).where(*filters).order_by(col(LeaveRequest.created_at).desc(), col(LeaveRequest.id))
    )
    requests = list(result.scalars().all())

    return LeaveRequestListResponse(items=[_build_request_response(r) for r in requests], total=total)
