"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

from salary_engine.models import PaymentMethod
from salary_engine.services.job_queue import SalaryJob


# ============================================================================
# Payroll record schemas
# ============================================================================


class SalaryResponse(BaseModel):
    """Schema for a payroll ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    payroll_record_id: int
    employee_id: int
    month: date
    base_salary: Decimal
    work_days: Decimal
    work_hours: Decimal
    approved_leave_days: Decimal
    overtime_hours: Decimal
    overtime_salary: Decimal
    allowance: Decimal
    insurance: Decimal
    deduction: Decimal
    bonus: Decimal
    total_salary: Decimal
    status: str
    pay_date: date | None = None
    payment_method: str | None = None
    calculated_at: datetime | None = None
    approved_at: datetime | None = None
    paid_at: datetime | None = None


class MarkPaidRequest(BaseModel):
    """Schema for marking an approved salary as paid."""

    pay_date: date
    payment_method: PaymentMethod


class ApprovalError(BaseModel):
    payroll_record_id: int
    error: str


class ApprovalSummaryResponse(BaseModel):
    """Schema for bulk approval outcome."""

    month: date
    approved: int
    failed: int
    errors: list[ApprovalError]


# ============================================================================
# Job schemas
# ============================================================================


class JobResponse(BaseModel):
    """Schema for a recalculation job handle."""

    job_id: str
    kind: str
    payload: dict[str, int]
    status: str
    attempts: int
    result: Any = None
    error: str | None = None
    created_at: datetime
    finished_at: datetime | None = None

    @classmethod
    def from_job(cls, job: SalaryJob) -> "JobResponse":
        return cls(
            job_id=job.job_id,
            kind=job.kind.value,
            payload=job.payload,
            status=job.status.value,
            attempts=job.attempts,
            result=job.result,
            error=job.error,
            created_at=job.created_at,
            finished_at=job.finished_at,
        )


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str
