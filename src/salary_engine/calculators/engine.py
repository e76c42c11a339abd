"""Salary calculation engine - main orchestrator."""

from __future__ import annotations

import logging
from datetime import tzinfo
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from salary_engine.calculators.aggregator import MonthDataLoader
from salary_engine.calculators.composer import compose_salary
from salary_engine.calculators.policy_resolver import PolicyResolver
from salary_engine.calculators.types import SalaryBreakdown
from salary_engine.calculators.verification import VerificationEngine
from salary_engine.calculators.work_calendar import load_work_calendar, month_start
from salary_engine.config import get_settings
from salary_engine.errors import EmployeeNotFoundError
from salary_engine.models import Employee

logger = logging.getLogger(__name__)


class SalaryEngine:
    """Computes one employee's monthly salary breakdown.

    Pipeline (all reads happen before any arithmetic):
    1) Check the employee exists
    2) Load the work calendar
    3) Resolve the effective compensation policy under that calendar
    4) Load attendance and approved requests for the month
    5) Verify requests and compose the breakdown

    The engine only reads; persisting the result is the ledger's job.
    """

    def __init__(self, session: AsyncSession, tz: tzinfo | None = None):
        self.session = session
        self.tz = tz or ZoneInfo(get_settings().business_timezone)
        self.policy_resolver = PolicyResolver(session)
        self.loader = MonthDataLoader(session)
        self.verifier = VerificationEngine(self.tz)

    async def calculate(self, employee_id: int, year: int, month: int) -> SalaryBreakdown:
        """Calculate the breakdown for ``(employee_id, year, month)``.

        Raises:
            ValueError: If the month is invalid
            EmployeeNotFoundError: If the employee does not exist
            PolicyNotFoundError: If no compensation policy applies
            ArithmeticFaultError: If any component is not finite
        """
        month_start(year, month)

        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)

        work_calendar = await load_work_calendar(self.session)
        policy = await self.policy_resolver.resolve_effective_policy(employee_id, work_calendar)
        data = await self.loader.load_month_data(employee_id, year, month)

        breakdown = compose_salary(policy, work_calendar, data, self.verifier)
        logger.debug(
            "Calculated salary for employee %s %04d-%02d using %s policy %s: total=%s",
            employee_id,
            year,
            month,
            policy.scope,
            policy.policy_id,
            breakdown.total_salary,
        )
        return breakdown
