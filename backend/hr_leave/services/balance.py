# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from hr_leave.exceptions import ForbiddenError, InsufficientBalanceError, NotFoundError, ValidationError
from hr_leave.models.balance import LeaveBalance
from hr_leave.models.base import now_utc
from hr_leave.models.enums import AuditAction, AuditEntityType, LeaveType
from hr_leave.schemas.balance import BalanceResponse
from hr_leave.services.audit import model_to_audit_dict, write_audit_log
from hr_leave.services.authority import get_approval_authority
from hr_leave.services.resolver import PolicyResolver

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_leave.schemas.auth import AuthContext
    from hr_leave.schemas.balance import BalanceOverrideRequest
    from hr_leave.services.authority import ApprovalAuthority

logger = logging.getLogger(__name__)

# (used column, balance column) per leave type.
_QUOTA_COLUMNS: dict[LeaveType, tuple[str, str]] = {
    LeaveType.CASUAL: ("casual_leave_used", "casual_leave_balance"),
    LeaveType.MEDICAL: ("medical_leave_used", "medical_leave_balance"),
    LeaveType.ANNUAL: ("annual_leave_used", "annual_leave_balance"),
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def build_balance_response(balance: LeaveBalance) -> BalanceResponse:
    """Map a balance model to its response schema."""
    return BalanceResponse(
        id=balance.id,
        employee_id=balance.employee_id,
        organization_id=balance.organization_id,
        year=balance.year,
        casual_leave_used=balance.casual_leave_used,
        casual_leave_balance=balance.casual_leave_balance,
        medical_leave_used=balance.medical_leave_used,
        medical_leave_balance=balance.medical_leave_balance,
        annual_leave_used=balance.annual_leave_used,
        annual_leave_balance=balance.annual_leave_balance,
        carry_forward_used=balance.carry_forward_used,
        carry_forward_balance=balance.carry_forward_balance,
        policy_id=balance.policy_id,
        last_updated=balance.last_updated,
    )


async def _find_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    organization_id: uuid.UUID,
    year: int,
) -> LeaveBalance | None:
    result = await session.execute(
        select(LeaveBalance).where(
            col(LeaveBalance.employee_id) == employee_id,
            col(LeaveBalance.organization_id) == organization_id,
            col(LeaveBalance.year) == year,
        )
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Balance store
# ---------------------------------------------------------------------------


async def get_or_create_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    organization_id: uuid.UUID,
    year: int,
    resolver: PolicyResolver | None = None,
) -> LeaveBalance:
    """Return the employee's balance for the year, seeding it on first access.

    A missing row is created from the resolved policy's quotas with nothing
    used. The caller owns the transaction.
    """
    existing = await _find_balance(session, employee_id, organization_id, year)
    if existing is not None:
        return existing

    if resolver is None:
        resolver = PolicyResolver(session)
    policy = await resolver.resolve(employee_id, organization_id)

    balance = LeaveBalance(
        employee_id=employee_id,
        organization_id=organization_id,
        year=year,
        casual_leave_used=0,
        casual_leave_balance=policy.casual_leave_quota,
        medical_leave_used=0,
        medical_leave_balance=policy.medical_leave_quota,
        annual_leave_used=0,
        annual_leave_balance=policy.annual_leave_quota,
        carry_forward_used=0,
        carry_forward_balance=0,
        policy_id=policy.id,
    )

    # Savepoint so losing a concurrent first-access race only discards this insert.
    try:
        async with session.begin_nested():
            session.add(balance)
            await session.flush()
    except IntegrityError:
        existing = await _find_balance(session, employee_id, organization_id, year)
        if existing is None:
            raise
        return existing

    logger.info(
        "Created %s leave balance for employee=%s org=%s from policy=%s",
        year,
        employee_id,
        organization_id,
        policy.id or "default",
    )
    return balance


async def apply_delta(
    session: AsyncSession,
    balance_id: uuid.UUID,
    leave_type: LeaveType,
    days: int,
) -> LeaveBalance:
    """Move ``days`` of ``leave_type`` from balance to used.

    Check and decrement run as one conditional UPDATE, so concurrent
    approvals against the same row can never overdraw it. When the balance is
    short nothing is written and InsufficientBalanceError is raised.
    """
    if days < 0:
        raise ValidationError("days must not be negative")

    used_name, balance_name = _QUOTA_COLUMNS[leave_type]
    used_col = col(getattr(LeaveBalance, used_name))
    balance_col = col(getattr(LeaveBalance, balance_name))

    result = await session.execute(
        update(LeaveBalance)
        .where(col(LeaveBalance.id) == balance_id, balance_col >= days)
        .values(
            {
                balance_col: balance_col - days,
                used_col: used_col + days,
                col(LeaveBalance.last_updated): now_utc(),
            }
        )
        .execution_options(synchronize_session=False)
    )

    balance = await session.get(LeaveBalance, balance_id, populate_existing=True)
    if balance is None:
        raise NotFoundError("Leave balance not found")
    if result.rowcount != 1:  # type: ignore[attr-defined]
        available = getattr(balance, balance_name)
        raise InsufficientBalanceError(
            f"Insufficient {leave_type.value.lower()} leave balance: {available} available, {days} requested"
        )
    return balance


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_employee_balance(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID | None = None,
    authority: ApprovalAuthority | None = None,
) -> BalanceResponse:
    """Current-year balance for an employee (the caller by default)."""
    target_id = employee_id if employee_id is not None else auth.user_id

    if target_id != auth.user_id:
        if authority is None:
            authority = get_approval_authority()
        if not await authority.is_authority(auth.organization_id, auth.user_id):
            raise ForbiddenError("Not authorized to view this balance")

    balance = await get_or_create_balance(session, target_id, auth.organization_id, date.today().year)
    await session.commit()
    await session.refresh(balance)
    return build_balance_response(balance)


# ---------------------------------------------------------------------------
# Write path: administrative override
# ---------------------------------------------------------------------------


async def override_balance(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID,
    payload: BalanceOverrideRequest,
) -> BalanceResponse:
    """Overwrite balance fields on the employee's current-year row.

    Bypasses the sufficiency check used by approvals; every override is
    audited with the row before and after.
    """
    result = await session.execute(
        select(LeaveBalance)
        .where(
            col(LeaveBalance.employee_id) == employee_id,
            col(LeaveBalance.organization_id) == auth.organization_id,
            col(LeaveBalance.year) == date.today().year,
        )
        .with_for_update()
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFoundError("Leave balance not found")

    before_dict = model_to_audit_dict(balance)

    changes = payload.model_dump(exclude_none=True)
    for field_name, value in changes.items():
        setattr(balance, field_name, value)
    balance.last_updated = now_utc()

    await session.flush()

    await write_audit_log(
        session,
        organization_id=auth.organization_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BALANCE,
        entity_id=balance.id,
        action=AuditAction.OVERRIDE,
        before_json=before_dict,
        after_json=model_to_audit_dict(balance),
    )

    await session.commit()
    await session.refresh(balance)
    logger.info(
        "Balance %s overridden by %s: %s",
        balance.id,
        auth.user_id,
        ", ".join(sorted(changes)),
    )
    return build_balance_response(balance)
