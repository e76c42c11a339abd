"""Salary composition from verified quantities."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from salary_engine.calculators.types import (
    LATENESS_PENALTY_RATE,
    Amount,
    EffectivePolicy,
    MonthData,
    SalaryBreakdown,
    WorkCalendar,
)
from salary_engine.calculators.verification import VerificationEngine
from salary_engine.calculators.work_calendar import is_working_day, iter_days
from salary_engine.models import LateEarlyKind

if TYPE_CHECKING:
    from salary_engine.models import LeaveRequest


def count_work_days(
    first: date,
    last: date,
    work_calendar: WorkCalendar,
    leaves: Iterable[LeaveRequest],
) -> int:
    """Count working days not lost to unpaid leave.

    A working day covered by paid leave still counts. A day covered by any
    unpaid leave is excluded, even when a paid leave overlaps it.
    """
    unpaid = [leave for leave in leaves if not leave.is_paid]
    count = 0
    for day in iter_days(first, last):
        if not is_working_day(day, work_calendar):
            continue
        if any(leave.covers(day) for leave in unpaid):
            continue
        count += 1
    return count


def lateness_penalty(
    minutes: int | None,
    tolerance_minutes: int,
    hourly_rate: Amount,
) -> Amount:
    """Half the hourly rate for each hour beyond the tolerance, pro rata."""
    excess = max(0, (minutes or 0) - tolerance_minutes)
    if excess == 0:
        return Amount.zero("deduction")
    return Amount(excess, "deduction") / 60 * hourly_rate * LATENESS_PENALTY_RATE


def compose_salary(
    policy: EffectivePolicy,
    work_calendar: WorkCalendar,
    data: MonthData,
    verifier: VerificationEngine,
) -> SalaryBreakdown:
    """Turn one month of verified data into the ledger breakdown.

    Every component passes through ``Amount``, so a non-finite input or
    intermediate raises ``ArithmeticFaultError`` for that component.
    Monetary components stay at full precision until the total is formed;
    the figures written to the ledger are then rounded half-up to cents.
    """
    work_days = count_work_days(
        data.period_start, data.period_end, work_calendar, data.approved_leaves
    )

    work_hours = Amount.zero("work hours")
    for record in data.attendance:
        work_hours += Amount.optional(record.work_hours, "work hours")

    attendance_by_date = data.attendance_by_date()
    overtime_hours = verifier.verified_overtime_hours(
        data.approved_overtimes, attendance_by_date
    )
    overtime_salary = (
        overtime_hours.named("overtime salary")
        * policy.hourly_rate
        * policy.overtime_multiplier
    )

    requests_by_date = data.late_early_by_date()
    deduction = Amount.zero("deduction")
    for record in data.attendance:
        requests = requests_by_date.get(record.work_date, [])
        if not verifier.is_excused(LateEarlyKind.LATE, record, requests):
            deduction += lateness_penalty(
                record.late_minutes,
                work_calendar.late_tolerance_minutes,
                policy.hourly_rate,
            )
        if not verifier.is_excused(LateEarlyKind.EARLY, record, requests):
            deduction += lateness_penalty(
                record.early_leave_minutes,
                work_calendar.early_leave_tolerance_minutes,
                policy.hourly_rate,
            )

    insurance = policy.base_salary.named("insurance") * policy.insurance_rate_percent / 100
    salary_per_day = policy.base_salary.named("salary per day") / work_calendar.days_per_month
    earned = salary_per_day.named("earned salary") * work_days

    total = (
        earned.named("total salary")
        + overtime_salary
        + policy.allowance
        - insurance
        - deduction
    ).quantize()

    approved_leave_days = Amount.zero("approved leave days")
    for leave in data.approved_leaves:
        approved_leave_days += Amount.optional(leave.total_days, "approved leave days")

    return SalaryBreakdown(
        employee_id=data.employee_id,
        month=data.period_start,
        base_salary=policy.base_salary.value,
        work_days=work_days,
        work_hours=work_hours.quantize().value,
        approved_leave_days=approved_leave_days.quantize().value,
        overtime_hours=overtime_hours.value,
        overtime_salary=overtime_salary.quantize().value,
        allowance=policy.allowance.quantize().value,
        insurance=insurance.quantize().value,
        deduction=deduction.quantize().value,
        total_salary=total.value,
        salary_per_day=salary_per_day.quantize().value,
        hourly_rate=policy.hourly_rate.quantize().value,
        bonus=Decimal("0"),
    )
