# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter

from hr_leave.api.deps import AuthDep, AuthorityDep
from hr_leave.db import SessionDep
from hr_leave.schemas.balance import BalanceOverrideRequest, BalanceResponse
from hr_leave.services import balance as balance_service

balances_router = APIRouter(prefix="/balances", tags=["balances"])


@balances_router.get("", response_model=BalanceResponse)
async def get_own_balance(
    session: SessionDep,
    auth: AuthDep,
) -> BalanceResponse:
    """Get the caller's current-year balance, creating it on first access."""
    return await balance_service.get_employee_balance(session, auth)


@balances_router.get("/{user_id}", response_model=BalanceResponse)
async def get_employee_balance(
    user_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> BalanceResponse:
    """Get an employee's current-year balance, creating it on first access."""
    return await balance_service.get_employee_balance(session, auth, user_id)


@balances_router.patch("/{user_id}", response_model=BalanceResponse)
async def override_balance(
    user_id: uuid.UUID,
    payload: BalanceOverrideRequest,
    session: SessionDep,
    auth: AuthorityDep,
) -> BalanceResponse:
    """Administratively overwrite an employee's current-year balance."""
    return await balance_service.override_balance(session, auth, user_id, payload)
