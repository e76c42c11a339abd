"""ORM models for the salary engine."""

from salary_engine.models.attendance import (
    AttendanceRecord,
    LateEarlyKind,
    LateEarlyRequest,
    LeaveRequest,
    LeaveType,
    OvertimeRequest,
    RequestStatus,
)
from salary_engine.models.base import Base, TimestampMixin, UpdatedAtMixin
from salary_engine.models.employee import (
    Employee,
    EmployeeRoleAssignment,
    EmployeeStatus,
    Role,
)
from salary_engine.models.payroll import PaymentMethod, PayrollRecord, PayrollScheduleRun
from salary_engine.models.policy import CompensationPolicy, WorkScheduleSettings

__all__ = [
    "AttendanceRecord",
    "Base",
    "CompensationPolicy",
    "Employee",
    "EmployeeRoleAssignment",
    "EmployeeStatus",
    "LateEarlyKind",
    "LateEarlyRequest",
    "LeaveRequest",
    "LeaveType",
    "OvertimeRequest",
    "PaymentMethod",
    "PayrollRecord",
    "PayrollScheduleRun",
    "RequestStatus",
    "Role",
    "TimestampMixin",
    "UpdatedAtMixin",
    "WorkScheduleSettings",
]
