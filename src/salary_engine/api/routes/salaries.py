"""Salary calculation and payroll ledger endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status

from salary_engine.api.dependencies import DbSession, JobQueue, Ledger
from salary_engine.api.schemas import (
    ApprovalError,
    ApprovalSummaryResponse,
    ErrorResponse,
    JobResponse,
    MarkPaidRequest,
    SalaryResponse,
)

router = APIRouter(prefix="/salaries", tags=["salaries"])

Year = Annotated[int, Query(ge=1, le=9999)]
Month = Annotated[int, Query(ge=1, le=12)]


# ============================================================================
# Calculation
# ============================================================================


@router.post(
    "/calculate/{employee_id}",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def calculate_salary(
    db: DbSession,
    ledger: Ledger,
    employee_id: Annotated[int, Path()],
    year: Year,
    month: Month,
) -> SalaryResponse:
    """Calculate one employee's salary synchronously."""
    record = await ledger.calculate_salary(employee_id, year, month)
    await db.commit()
    return SalaryResponse.model_validate(record)


@router.post(
    "/calculate/{employee_id}/enqueue",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def enqueue_calculate_salary(
    queue: JobQueue,
    employee_id: Annotated[int, Path()],
    year: Year,
    month: Month,
) -> JobResponse:
    """Queue a single-employee recalculation."""
    job = queue.enqueue_calculate_salary(employee_id, year, month)
    return JobResponse.from_job(job)


@router.post(
    "/calculate-all",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def enqueue_calculate_all(queue: JobQueue, year: Year, month: Month) -> JobResponse:
    """Queue recalculation of every active employee."""
    job = queue.enqueue_calculate_all_employees(year, month)
    return JobResponse.from_job(job)


@router.get(
    "/jobs/{job_id}",
    response_model=JobResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_job(queue: JobQueue, job_id: Annotated[str, Path()]) -> JobResponse:
    """Get the status of a recalculation job."""
    job = queue.get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )
    return JobResponse.from_job(job)


# ============================================================================
# Ledger queries
# ============================================================================


@router.get("/employee/{employee_id}", response_model=list[SalaryResponse])
async def get_employee_salaries(
    ledger: Ledger,
    employee_id: Annotated[int, Path()],
) -> list[SalaryResponse]:
    """List an employee's salaries, newest month first."""
    records = await ledger.get_employee_salaries(employee_id)
    return [SalaryResponse.model_validate(r) for r in records]


@router.get(
    "/employee/{employee_id}/month",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_salary(
    ledger: Ledger,
    employee_id: Annotated[int, Path()],
    year: Year,
    month: Month,
) -> SalaryResponse:
    """Get one employee's salary for a month."""
    record = await ledger.get_salary(employee_id, year, month)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Salary record not found",
        )
    return SalaryResponse.model_validate(record)


@router.get("/month", response_model=list[SalaryResponse])
async def get_salaries_by_month(ledger: Ledger, year: Year, month: Month) -> list[SalaryResponse]:
    """List every salary of a month, ordered by employee."""
    records = await ledger.get_salaries_by_month(year, month)
    return [SalaryResponse.model_validate(r) for r in records]


# ============================================================================
# Approval and payment
# ============================================================================


@router.post("/approve-all", response_model=ApprovalSummaryResponse)
async def approve_all_salaries(
    db: DbSession,
    ledger: Ledger,
    year: Year,
    month: Month,
) -> ApprovalSummaryResponse:
    """Approve every pending salary of a month."""
    summary = await ledger.approve_all_salaries(year, month)
    await db.commit()
    return ApprovalSummaryResponse(
        month=summary.month,
        approved=summary.approved,
        failed=summary.failed,
        errors=[
            ApprovalError(payroll_record_id=record_id, error=error)
            for record_id, error in summary.errors
        ],
    )


@router.post(
    "/{payroll_record_id}/approve",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_salary(
    db: DbSession,
    ledger: Ledger,
    payroll_record_id: Annotated[int, Path()],
) -> SalaryResponse:
    """Approve a pending salary."""
    record = await ledger.approve_salary(payroll_record_id)
    await db.commit()
    return SalaryResponse.model_validate(record)


@router.post(
    "/{payroll_record_id}/mark-paid",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_as_paid(
    db: DbSession,
    ledger: Ledger,
    payroll_record_id: Annotated[int, Path()],
    payload: MarkPaidRequest,
) -> SalaryResponse:
    """Mark an approved salary as paid."""
    record = await ledger.mark_as_paid(
        payroll_record_id, payload.pay_date, payload.payment_method
    )
    await db.commit()
    return SalaryResponse.model_validate(record)
