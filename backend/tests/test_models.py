from __future__ import annotations

import uuid
from datetime import date

import sqlalchemy as sa

from hr_leave.models import (
    AuditLog,
    LeaveBalance,
    LeavePolicy,
    LeaveRequest,
    SQLModel,
)
from hr_leave.models.enums import LeaveType, PolicyLevel, RequestStatus
from hr_leave.services.audit import model_to_audit_dict

EXPECTED_TABLES = {
    "audit_log",
    "leave_balance",
    "leave_policy",
    "leave_request",
}


def test_all_tables_registered() -> None:
    table_names = set(SQLModel.metadata.tables.keys())
    assert EXPECTED_TABLES.issubset(table_names)


def test_balance_unique_per_employee_and_year() -> None:
    table = SQLModel.metadata.tables["leave_balance"]
    unique_columns = {
        tuple(c.name for c in constraint.columns)
        for constraint in table.constraints
        if isinstance(constraint, sa.UniqueConstraint)
    }
    assert ("employee_id", "organization_id", "year") in unique_columns


def test_leave_policy_defaults() -> None:
    policy = LeavePolicy(
        organization_id=uuid.uuid4(),
        name="Default",
        policy_level=PolicyLevel.ORGANIZATION,
        target_id=uuid.uuid4(),
        created_by=uuid.uuid4(),
    )
    assert policy.id is not None
    assert policy.active is True
    assert policy.carry_forward_enabled is False
    assert policy.max_carry_forward == 0
    assert policy.description is None


def test_leave_balance_defaults() -> None:
    balance = LeaveBalance(employee_id=uuid.uuid4(), organization_id=uuid.uuid4(), year=2025)
    assert balance.casual_leave_used == 0
    assert balance.casual_leave_balance == 0
    assert balance.carry_forward_balance == 0
    assert balance.policy_id is None
    assert balance.last_updated is not None


def test_leave_request_defaults() -> None:
    request = LeaveRequest(
        user_id=uuid.uuid4(),
        organization_id=uuid.uuid4(),
        leave_type=LeaveType.CASUAL,
        start_date=date(2025, 6, 2),
        end_date=date(2025, 6, 6),
        total_days=5,
    )
    assert request.status == RequestStatus.PENDING
    assert request.reason is None
    assert request.approved_by is None
    assert request.rejection_reason is None
    assert request.cancelled_at is None


def test_audit_log_instantiation() -> None:
    log = AuditLog(
        organization_id=uuid.uuid4(),
        actor_id=uuid.uuid4(),
        entity_type="REQUEST",
        entity_id=uuid.uuid4(),
        action="CREATE",
    )
    assert log.before_json is None
    assert log.after_json is None


def test_audit_dict_is_json_safe() -> None:
    request = LeaveRequest(
        user_id=uuid.uuid4(),
        organization_id=uuid.uuid4(),
        leave_type=LeaveType.MEDICAL,
        start_date=date(2025, 6, 2),
        end_date=date(2025, 6, 2),
        total_days=1,
    )
    data = model_to_audit_dict(request)
    assert data["start_date"] == "2025-06-02"
    assert data["user_id"] == str(request.user_id)
    assert data["status"] == "Pending"
