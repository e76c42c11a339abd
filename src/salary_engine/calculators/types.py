"""Type definitions for the salary calculation pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, DecimalException
from typing import TYPE_CHECKING, Any, Union

from salary_engine.errors import ArithmeticFaultError

if TYPE_CHECKING:
    from salary_engine.models import (
        AttendanceRecord,
        LateEarlyRequest,
        LeaveRequest,
        OvertimeRequest,
    )

TWO_PLACES = Decimal("0.01")

# Fixed payroll convention: a month is 22 working days of 8 hours
STANDARD_HOURS_PER_DAY = 8
STANDARD_DAYS_PER_MONTH = 22

# Penalty rate applied per excess late/early hour, as a fraction of hourly rate
LATENESS_PENALTY_RATE = Decimal("0.5")

Number = Union[int, str, float, Decimal]


def _to_decimal(raw: Any, component: str) -> Decimal:
    if isinstance(raw, bool) or raw is None:
        raise ArithmeticFaultError(component, raw)
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise ArithmeticFaultError(component, raw)
        raw = str(raw)
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(raw)
    except (DecimalException, TypeError, ValueError) as e:
        raise ArithmeticFaultError(component, raw) from e
    if not value.is_finite():
        raise ArithmeticFaultError(component, raw)
    return value


@dataclass(frozen=True)
class Amount:
    """A finite decimal quantity tagged with the salary component it measures.

    Construction rejects NaN and infinities, and every arithmetic result is
    itself an ``Amount``, so a non-finite intermediate surfaces as
    ``ArithmeticFaultError`` naming the component being computed.
    """

    value: Decimal
    component: str = "amount"

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _to_decimal(self.value, self.component))

    @classmethod
    def zero(cls, component: str = "amount") -> Amount:
        return cls(Decimal("0"), component)

    @classmethod
    def optional(cls, raw: Any, component: str, default: Number = 0) -> Amount:
        """Build from a figure that may be genuinely absent (``None``)."""
        return cls(default if raw is None else raw, component)

    def named(self, component: str) -> Amount:
        return Amount(self.value, component)

    def quantize(self, exp: Decimal = TWO_PLACES) -> Amount:
        """Round half-up to ``exp`` (cents by default)."""
        return Amount(self.value.quantize(exp, rounding=ROUND_HALF_UP), self.component)

    def _combine(self, other: Amount | Number, op: str) -> Amount:
        rhs = other.value if isinstance(other, Amount) else _to_decimal(other, self.component)
        try:
            if op == "+":
                result = self.value + rhs
            elif op == "-":
                result = self.value - rhs
            elif op == "*":
                result = self.value * rhs
            else:
                result = self.value / rhs
        except (DecimalException, ZeroDivisionError) as e:
            raise ArithmeticFaultError(self.component, None) from e
        return Amount(result, self.component)

    def __add__(self, other: Amount | Number) -> Amount:
        return self._combine(other, "+")

    def __sub__(self, other: Amount | Number) -> Amount:
        return self._combine(other, "-")

    def __mul__(self, other: Amount | Number) -> Amount:
        return self._combine(other, "*")

    def __truediv__(self, other: Amount | Number) -> Amount:
        return self._combine(other, "/")

    def __neg__(self) -> Amount:
        return Amount(-self.value, self.component)

    def __bool__(self) -> bool:
        return not self.value.is_zero()

    def __str__(self) -> str:
        return str(self.value)


def derive_hourly_rate(
    base_salary: Amount,
    work_calendar: WorkCalendar | None = None,
) -> Amount:
    """Hourly rate implied by a monthly base salary under ``work_calendar``.

    The rate keeps full precision; only the composed figures are rounded.
    """
    work_calendar = work_calendar or WorkCalendar()
    monthly_hours = work_calendar.hours_per_day * work_calendar.days_per_month
    return base_salary.named("hourly rate") / monthly_hours


@dataclass(frozen=True)
class WorkCalendar:
    """Business calendar in effect at calculation time."""

    working_weekdays: tuple[bool, ...] = (True, True, True, True, True, False, False)
    late_tolerance_minutes: int = 15
    early_leave_tolerance_minutes: int = 15
    hours_per_day: int = STANDARD_HOURS_PER_DAY
    days_per_month: int = STANDARD_DAYS_PER_MONTH

    def __post_init__(self) -> None:
        if len(self.working_weekdays) != 7:
            raise ValueError("working_weekdays must have one flag per weekday")
        if self.late_tolerance_minutes < 0 or self.early_leave_tolerance_minutes < 0:
            raise ValueError("Tolerance minutes cannot be negative")
        if self.hours_per_day < 1 or self.days_per_month < 1:
            raise ValueError("hours_per_day and days_per_month must be positive")


@dataclass(frozen=True)
class EffectivePolicy:
    """Compensation policy resolved for one employee, defaults applied."""

    employee_id: int
    policy_id: int
    scope: str  # "employee" or "role"
    base_salary: Amount
    allowance: Amount
    insurance_rate_percent: Amount
    hourly_rate: Amount
    overtime_multiplier: Amount
    hourly_rate_derived: bool = False


@dataclass
class MonthData:
    """Attendance and approved requests for one employee and pay period."""

    employee_id: int
    period_start: date
    period_end: date
    attendance: list[AttendanceRecord] = field(default_factory=list)
    approved_leaves: list[LeaveRequest] = field(default_factory=list)
    approved_overtimes: list[OvertimeRequest] = field(default_factory=list)
    approved_late_early: list[LateEarlyRequest] = field(default_factory=list)

    def attendance_by_date(self) -> dict[date, AttendanceRecord]:
        return {a.work_date: a for a in self.attendance}

    def late_early_by_date(self) -> dict[date, list[LateEarlyRequest]]:
        grouped: dict[date, list[LateEarlyRequest]] = {}
        for request in self.approved_late_early:
            grouped.setdefault(request.work_date, []).append(request)
        return grouped


@dataclass(frozen=True)
class SalaryBreakdown:
    """Monetary breakdown of one employee's month, ready for the ledger."""

    employee_id: int
    month: date
    base_salary: Decimal
    work_days: int
    work_hours: Decimal
    approved_leave_days: Decimal
    overtime_hours: Decimal
    overtime_salary: Decimal
    allowance: Decimal
    insurance: Decimal
    deduction: Decimal
    total_salary: Decimal
    salary_per_day: Decimal
    hourly_rate: Decimal
    bonus: Decimal = Decimal("0")

    def to_record_values(self) -> dict[str, Any]:
        """Column values for the payroll ledger row."""
        return {
            "base_salary": self.base_salary,
            "work_days": Decimal(self.work_days),
            "work_hours": self.work_hours,
            "approved_leave_days": self.approved_leave_days,
            "overtime_hours": self.overtime_hours,
            "overtime_salary": self.overtime_salary,
            "allowance": self.allowance,
            "insurance": self.insurance,
            "deduction": self.deduction,
            "bonus": self.bonus,
            "total_salary": self.total_salary,
        }
