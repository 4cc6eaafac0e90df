"""Tests for the balance store: lazy creation, conditional decrement, reads and overrides."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select
from sqlmodel import col

from hr_leave.exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from hr_leave.models.audit import AuditLog
from hr_leave.models.balance import LeaveBalance
from hr_leave.models.enums import LeaveType, PolicyLevel
from hr_leave.models.policy import LeavePolicy
from hr_leave.services import balance as balance_service
from hr_leave.services.balance import apply_delta, get_or_create_balance
from hr_leave.services.directory import InMemoryDirectoryService, set_directory_service
from hr_leave.services.identity import Capabilities, InMemoryIdentityService, set_identity_service

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

ORG_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()
MANAGER_ID = uuid.uuid4()
EMPLOYEE_ID = uuid.uuid4()
OTHER_EMPLOYEE_ID = uuid.uuid4()
YEAR = 2025


def _headers(user_id: uuid.UUID) -> dict[str, str]:
    return {"X-Organization-Id": str(ORG_ID), "X-User-Id": str(user_id)}


ADMIN_HEADERS = _headers(ADMIN_ID)
MANAGER_HEADERS = _headers(MANAGER_ID)
EMPLOYEE_HEADERS = _headers(EMPLOYEE_ID)
BALANCES_URL = "/hr/leaves/balances"


@pytest.fixture(autouse=True)
def _collaborators() -> Iterator[None]:
    identity = InMemoryIdentityService()
    identity.seed(Capabilities(user_id=ADMIN_ID, organization_id=ORG_ID, is_system_admin=True))
    identity.seed(Capabilities(user_id=MANAGER_ID, organization_id=ORG_ID, can_manage_users=True))
    identity.seed(Capabilities(user_id=EMPLOYEE_ID, organization_id=ORG_ID))
    set_identity_service(identity)
    set_directory_service(InMemoryDirectoryService())
    yield
    set_identity_service(InMemoryIdentityService())
    set_directory_service(InMemoryDirectoryService())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _reload(session: AsyncSession, balance_id: uuid.UUID) -> LeaveBalance:
    balance = await session.get(LeaveBalance, balance_id, populate_existing=True)
    assert balance is not None
    return balance


def _snapshot(balance: LeaveBalance) -> tuple[int, ...]:
    return (
        balance.casual_leave_used,
        balance.casual_leave_balance,
        balance.medical_leave_used,
        balance.medical_leave_balance,
        balance.annual_leave_used,
        balance.annual_leave_balance,
        balance.carry_forward_used,
        balance.carry_forward_balance,
    )


async def _count_balances(session: AsyncSession, employee_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count()).select_from(LeaveBalance).where(col(LeaveBalance.employee_id) == employee_id)
    )
    return result.scalar_one()


async def _seeded_balance(session: AsyncSession) -> LeaveBalance:
    balance = await get_or_create_balance(session, EMPLOYEE_ID, ORG_ID, YEAR)
    await session.commit()
    return balance


# ---------------------------------------------------------------------------
# get_or_create_balance
# ---------------------------------------------------------------------------


async def test_first_access_seeds_default_quotas(db_session: AsyncSession) -> None:
    balance = await _seeded_balance(db_session)

    assert balance.year == YEAR
    assert balance.policy_id is None
    assert _snapshot(balance) == (0, 8, 0, 8, 0, 0, 0, 0)


async def test_first_access_seeds_resolved_policy(db_session: AsyncSession) -> None:
    policy = LeavePolicy(
        organization_id=ORG_ID,
        name="Engineering",
        policy_level=PolicyLevel.ORGANIZATION.value,
        target_id=ORG_ID,
        casual_leave_quota=12,
        medical_leave_quota=10,
        annual_leave_quota=20,
        created_by=ADMIN_ID,
    )
    db_session.add(policy)
    await db_session.commit()

    balance = await _seeded_balance(db_session)
    assert balance.policy_id == policy.id
    assert (balance.casual_leave_balance, balance.medical_leave_balance, balance.annual_leave_balance) == (12, 10, 20)


async def test_second_access_returns_existing_row(db_session: AsyncSession) -> None:
    first = await _seeded_balance(db_session)
    second = await _seeded_balance(db_session)

    assert second.id == first.id
    assert await _count_balances(db_session, EMPLOYEE_ID) == 1


async def test_each_year_gets_its_own_row(db_session: AsyncSession) -> None:
    first = await get_or_create_balance(db_session, EMPLOYEE_ID, ORG_ID, YEAR)
    second = await get_or_create_balance(db_session, EMPLOYEE_ID, ORG_ID, YEAR + 1)
    await db_session.commit()

    assert first.id != second.id
    assert await _count_balances(db_session, EMPLOYEE_ID) == 2


async def test_existing_row_is_returned_unchanged(db_session: AsyncSession) -> None:
    existing = LeaveBalance(
        employee_id=EMPLOYEE_ID,
        organization_id=ORG_ID,
        year=YEAR,
        casual_leave_balance=3,
        casual_leave_used=5,
    )
    db_session.add(existing)
    await db_session.commit()

    balance = await get_or_create_balance(db_session, EMPLOYEE_ID, ORG_ID, YEAR)
    assert balance.id == existing.id
    assert balance.casual_leave_balance == 3


async def test_lost_insert_race_returns_winner(db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    """A row created between lookup and insert is returned instead of a duplicate."""
    winner = LeaveBalance(employee_id=EMPLOYEE_ID, organization_id=ORG_ID, year=YEAR, casual_leave_balance=2)
    db_session.add(winner)
    await db_session.commit()

    real_find = balance_service._find_balance
    calls = 0

    async def _miss_first(*args: object) -> LeaveBalance | None:
        nonlocal calls
        calls += 1
        if calls == 1:
            return None
        return await real_find(*args)  # type: ignore[arg-type]

    monkeypatch.setattr(balance_service, "_find_balance", _miss_first)

    balance = await get_or_create_balance(db_session, EMPLOYEE_ID, ORG_ID, YEAR)
    await db_session.commit()

    assert calls == 2
    assert balance.id == winner.id
    assert await _count_balances(db_session, EMPLOYEE_ID) == 1


# ---------------------------------------------------------------------------
# apply_delta
# ---------------------------------------------------------------------------


async def test_apply_delta_moves_days_from_balance_to_used(db_session: AsyncSession) -> None:
    balance = await _seeded_balance(db_session)

    updated = await apply_delta(db_session, balance.id, LeaveType.CASUAL, 5)
    await db_session.commit()

    assert updated.casual_leave_used == 5
    assert updated.casual_leave_balance == 3
    assert updated.casual_leave_used + updated.casual_leave_balance == 8


async def test_apply_delta_leaves_other_types_untouched(db_session: AsyncSession) -> None:
    balance = await _seeded_balance(db_session)

    updated = await apply_delta(db_session, balance.id, LeaveType.MEDICAL, 2)
    assert _snapshot(updated) == (0, 8, 2, 6, 0, 0, 0, 0)


async def test_apply_delta_can_drain_to_zero(db_session: AsyncSession) -> None:
    balance = await _seeded_balance(db_session)

    updated = await apply_delta(db_session, balance.id, LeaveType.CASUAL, 8)
    assert updated.casual_leave_balance == 0
    assert updated.casual_leave_used == 8


async def test_apply_delta_zero_days_is_a_no_op(db_session: AsyncSession) -> None:
    balance = await _seeded_balance(db_session)

    updated = await apply_delta(db_session, balance.id, LeaveType.ANNUAL, 0)
    assert _snapshot(updated) == (0, 8, 0, 8, 0, 0, 0, 0)


async def test_apply_delta_insufficient_changes_nothing(db_session: AsyncSession) -> None:
    balance = await _seeded_balance(db_session)
    before = _snapshot(await _reload(db_session, balance.id))

    with pytest.raises(InsufficientBalanceError, match="8 available, 9 requested"):
        await apply_delta(db_session, balance.id, LeaveType.CASUAL, 9)

    assert _snapshot(await _reload(db_session, balance.id)) == before


async def test_apply_delta_annual_with_zero_quota_fails(db_session: AsyncSession) -> None:
    balance = await _seeded_balance(db_session)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        await apply_delta(db_session, balance.id, LeaveType.ANNUAL, 1)
    assert exc_info.value.status_code == 400
    assert exc_info.value.kind == "InsufficientBalance"


async def test_apply_delta_rejects_negative_days(db_session: AsyncSession) -> None:
    balance = await _seeded_balance(db_session)

    with pytest.raises(ValidationError):
        await apply_delta(db_session, balance.id, LeaveType.CASUAL, -1)


async def test_apply_delta_unknown_balance(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await apply_delta(db_session, uuid.uuid4(), LeaveType.CASUAL, 1)


async def test_stale_reader_cannot_overdraw(db_session: AsyncSession) -> None:
    """Two approvals that both saw 8 remaining: only the first 5-day charge lands."""
    balance = await _seeded_balance(db_session)
    seen_by_both = balance.casual_leave_balance
    assert seen_by_both == 8

    await apply_delta(db_session, balance.id, LeaveType.CASUAL, 5)
    await db_session.commit()

    # The second charge still passes an application-level check against the stale 8.
    assert seen_by_both >= 5
    with pytest.raises(InsufficientBalanceError):
        await apply_delta(db_session, balance.id, LeaveType.CASUAL, 5)

    final = await _reload(db_session, balance.id)
    assert final.casual_leave_balance == 3
    assert final.casual_leave_used == 5


# ---------------------------------------------------------------------------
# GET /balances
# ---------------------------------------------------------------------------


async def test_get_own_balance_creates_default(async_client: AsyncClient) -> None:
    resp = await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["employee_id"] == str(EMPLOYEE_ID)
    assert data["organization_id"] == str(ORG_ID)
    assert data["year"] == date.today().year
    assert data["casual_leave_balance"] == 8
    assert data["medical_leave_balance"] == 8
    assert data["annual_leave_balance"] == 0
    assert data["casual_leave_used"] == 0
    assert data["policy_id"] is None


async def test_get_own_balance_is_stable(async_client: AsyncClient) -> None:
    first = await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)
    second = await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)
    assert first.json()["id"] == second.json()["id"]


async def test_employee_can_read_own_balance_by_id(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"{BALANCES_URL}/{EMPLOYEE_ID}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200


async def test_employee_cannot_read_others_balance(async_client: AsyncClient) -> None:
    resp = await async_client.get(f"{BALANCES_URL}/{OTHER_EMPLOYEE_ID}", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Forbidden"


async def test_authority_can_read_others_balance(async_client: AsyncClient) -> None:
    for headers in (ADMIN_HEADERS, MANAGER_HEADERS):
        resp = await async_client.get(f"{BALANCES_URL}/{OTHER_EMPLOYEE_ID}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["employee_id"] == str(OTHER_EMPLOYEE_ID)


async def test_balance_uses_policy_created_over_api(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        "/hr/leaves/policies",
        json={
            "name": "Personal",
            "policy_level": "Employee",
            "target_id": str(EMPLOYEE_ID),
            "casual_leave_quota": 15,
            "medical_leave_quota": 10,
            "annual_leave_quota": 20,
        },
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 201
    policy_id = resp.json()["id"]

    resp = await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)
    data = resp.json()
    assert data["policy_id"] == policy_id
    assert data["casual_leave_balance"] == 15
    assert data["annual_leave_balance"] == 20


async def test_missing_auth_headers(async_client: AsyncClient) -> None:
    resp = await async_client.get(BALANCES_URL)
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"


# ---------------------------------------------------------------------------
# PATCH /balances/{user_id}
# ---------------------------------------------------------------------------


async def test_override_balance(async_client: AsyncClient) -> None:
    await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)

    resp = await async_client.patch(
        f"{BALANCES_URL}/{EMPLOYEE_ID}",
        json={"casual_leave_balance": 20, "annual_leave_balance": 5},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["casual_leave_balance"] == 20
    assert data["annual_leave_balance"] == 5
    assert data["medical_leave_balance"] == 8

    resp = await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)
    assert resp.json()["casual_leave_balance"] == 20


async def test_override_is_audited(
    async_client: AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    created = await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)
    balance_id = uuid.UUID(created.json()["id"])

    await async_client.patch(
        f"{BALANCES_URL}/{EMPLOYEE_ID}",
        json={"medical_leave_used": 2, "medical_leave_balance": 6},
        headers=MANAGER_HEADERS,
    )

    async with session_factory() as session:
        result = await session.execute(select(AuditLog).where(col(AuditLog.entity_id) == balance_id))
        entries = list(result.scalars().all())

    assert len(entries) == 1
    entry = entries[0]
    assert entry.action == "OVERRIDE"
    assert entry.entity_type == "BALANCE"
    assert entry.actor_id == MANAGER_ID
    assert entry.before_json is not None
    assert entry.after_json is not None
    assert entry.before_json["medical_leave_balance"] == 8
    assert entry.after_json["medical_leave_balance"] == 6
    assert entry.after_json["medical_leave_used"] == 2


async def test_override_requires_authority(async_client: AsyncClient) -> None:
    await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)

    resp = await async_client.patch(
        f"{BALANCES_URL}/{EMPLOYEE_ID}",
        json={"casual_leave_balance": 100},
        headers=EMPLOYEE_HEADERS,
    )
    assert resp.status_code == 403

    resp = await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)
    assert resp.json()["casual_leave_balance"] == 8


async def test_override_missing_balance(async_client: AsyncClient) -> None:
    resp = await async_client.patch(
        f"{BALANCES_URL}/{uuid.uuid4()}",
        json={"casual_leave_balance": 1},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


async def test_override_rejects_negative_values(async_client: AsyncClient) -> None:
    await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)

    resp = await async_client.patch(
        f"{BALANCES_URL}/{EMPLOYEE_ID}",
        json={"casual_leave_balance": -1},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 400


async def test_override_requires_a_field(async_client: AsyncClient) -> None:
    await async_client.get(BALANCES_URL, headers=EMPLOYEE_HEADERS)

    resp = await async_client.patch(f"{BALANCES_URL}/{EMPLOYEE_ID}", json={}, headers=ADMIN_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"
