"""Salary engine services."""

from salary_engine.services.job_queue import JobKind, JobStatus, SalaryJob, SalaryJobQueue
from salary_engine.services.ledger_service import (
    ApprovalSummary,
    BatchCalculationResult,
    PayrollLedgerService,
)
from salary_engine.services.locking_service import PayrollKeyLock, payroll_lock_key
from salary_engine.services.scheduler import MonthEndSchedule, SalaryScheduler, due_period
from salary_engine.services.state_machine import (
    InvalidTransitionError,
    PayrollStateMachine,
    PayrollStatus,
)

__all__ = [
    "ApprovalSummary",
    "BatchCalculationResult",
    "InvalidTransitionError",
    "JobKind",
    "JobStatus",
    "MonthEndSchedule",
    "PayrollKeyLock",
    "PayrollLedgerService",
    "PayrollStateMachine",
    "PayrollStatus",
    "SalaryJob",
    "SalaryJobQueue",
    "SalaryScheduler",
    "due_period",
    "payroll_lock_key",
]
