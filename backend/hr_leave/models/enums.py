from __future__ import annotations

import enum


class PolicyLevel(enum.StrEnum):
    """Organizational scope a leave policy applies to, most specific first."""

    EMPLOYEE = "Employee"
    TEAM = "Team"
    DEPARTMENT = "Department"
    ORGANIZATION = "Organization"


class LeaveType(enum.StrEnum):
    """Kind of leave an employee can request."""

    CASUAL = "Casual"
    MEDICAL = "Medical"
    ANNUAL = "Annual"


class RequestStatus(enum.StrEnum):
    """State machine for leave requests. Everything but PENDING is terminal."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    POLICY = "POLICY"
    BALANCE = "BALANCE"
    REQUEST = "REQUEST"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
    OVERRIDE = "OVERRIDE"
