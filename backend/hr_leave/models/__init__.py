from sqlmodel import SQLModel

from hr_leave.models.audit import AuditLog
from hr_leave.models.balance import LeaveBalance
from hr_leave.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from hr_leave.models.enums import AuditAction, AuditEntityType, LeaveType, PolicyLevel, RequestStatus
from hr_leave.models.policy import LeavePolicy
from hr_leave.models.request import LeaveRequest

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "LeaveBalance",
    "LeavePolicy",
    "LeaveRequest",
    "LeaveType",
    "PolicyLevel",
    "RequestStatus",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "UpdatedAtMixin",
]
