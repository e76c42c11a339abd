"""Salary calculation pipeline."""

from salary_engine.calculators.composer import compose_salary, count_work_days
from salary_engine.calculators.engine import SalaryEngine
from salary_engine.calculators.aggregator import MonthDataLoader
from salary_engine.calculators.policy_resolver import PolicyResolver
from salary_engine.calculators.types import (
    Amount,
    EffectivePolicy,
    MonthData,
    SalaryBreakdown,
    WorkCalendar,
)
from salary_engine.calculators.verification import VerificationEngine
from salary_engine.calculators.work_calendar import (
    is_working_day,
    load_work_calendar,
    month_bounds,
    month_start,
)

__all__ = [
    "Amount",
    "EffectivePolicy",
    "MonthData",
    "MonthDataLoader",
    "PolicyResolver",
    "SalaryBreakdown",
    "SalaryEngine",
    "VerificationEngine",
    "WorkCalendar",
    "compose_salary",
    "count_work_days",
    "is_working_day",
    "load_work_calendar",
    "month_bounds",
    "month_start",
]
