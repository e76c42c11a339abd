"""Compensation policy resolution."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salary_engine.calculators.types import (
    Amount,
    EffectivePolicy,
    WorkCalendar,
    derive_hourly_rate,
)
from salary_engine.calculators.work_calendar import DEFAULT_WORK_CALENDAR
from salary_engine.errors import ArithmeticFaultError, PolicyNotFoundError
from salary_engine.models import CompensationPolicy, EmployeeRoleAssignment

DEFAULT_ALLOWANCE = Decimal("0")
DEFAULT_INSURANCE_RATE_PERCENT = Decimal("10.5")
DEFAULT_OVERTIME_MULTIPLIER = Decimal("1.5")


class PolicyResolver:
    """Resolves the effective compensation policy for an employee.

    Resolution order:
    1. Employee-specific policy
    2. Policy of the employee's first role assignment (lowest assignment id)
    3. Otherwise PolicyNotFoundError; there is no global fallback
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_effective_policy(
        self,
        employee_id: int,
        work_calendar: WorkCalendar = DEFAULT_WORK_CALENDAR,
    ) -> EffectivePolicy:
        """Resolve the policy for an employee.

        A missing hourly rate is derived from the base salary over the hours
        of ``work_calendar``.

        Raises:
            PolicyNotFoundError: If neither an employee nor a role policy exists
            ArithmeticFaultError: If the stored base salary is not a positive
                finite number
        """
        policy = await self._get_employee_policy(employee_id)
        if policy is None:
            policy = await self._get_first_role_policy(employee_id)
        if policy is None:
            raise PolicyNotFoundError(employee_id)
        return self.to_effective(employee_id, policy, work_calendar)

    async def _get_employee_policy(self, employee_id: int) -> CompensationPolicy | None:
        result = await self.session.execute(
            select(CompensationPolicy).where(CompensationPolicy.employee_id == employee_id)
        )
        return result.scalar_one_or_none()

    async def _get_first_role_policy(self, employee_id: int) -> CompensationPolicy | None:
        role_id = await self.session.scalar(
            select(EmployeeRoleAssignment.role_id)
            .where(EmployeeRoleAssignment.employee_id == employee_id)
            .order_by(EmployeeRoleAssignment.assignment_id)
            .limit(1)
        )
        if role_id is None:
            return None
        result = await self.session.execute(
            select(CompensationPolicy).where(CompensationPolicy.role_id == role_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def to_effective(
        employee_id: int,
        policy: CompensationPolicy,
        work_calendar: WorkCalendar = DEFAULT_WORK_CALENDAR,
    ) -> EffectivePolicy:
        """Apply defaults and validate numeric fields of a stored policy."""
        base_salary = Amount(policy.base_salary, "base salary")
        if base_salary.value <= 0:
            raise ArithmeticFaultError("base salary", policy.base_salary)

        if policy.hourly_rate is None:
            hourly_rate = derive_hourly_rate(base_salary, work_calendar)
        else:
            hourly_rate = Amount(policy.hourly_rate, "hourly rate")

        return EffectivePolicy(
            employee_id=employee_id,
            policy_id=policy.policy_id,
            scope=policy.scope,
            base_salary=base_salary,
            allowance=Amount.optional(policy.allowance, "allowance", DEFAULT_ALLOWANCE),
            insurance_rate_percent=Amount.optional(
                policy.insurance_rate_percent,
                "insurance rate",
                DEFAULT_INSURANCE_RATE_PERCENT,
            ),
            hourly_rate=hourly_rate,
            overtime_multiplier=Amount.optional(
                policy.overtime_multiplier,
                "overtime multiplier",
                DEFAULT_OVERTIME_MULTIPLIER,
            ),
            hourly_rate_derived=policy.hourly_rate is None,
        )
