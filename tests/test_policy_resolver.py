"""Tests for compensation policy resolution."""

from decimal import Decimal

import pytest

from salary_engine.calculators.policy_resolver import PolicyResolver
from salary_engine.calculators.types import WorkCalendar
from salary_engine.errors import PolicyNotFoundError

from tests.conftest import add_employee, add_policy, add_role, assign_role


class TestPolicyResolver:
    async def test_employee_policy_shadows_role_policy(self, session):
        employee = await add_employee(session, "E001")
        role = await add_role(session, "engineer")
        await assign_role(session, employee, role)
        await add_policy(session, role=role, base_salary="10000000")
        own = await add_policy(session, employee=employee, base_salary="15000000")

        policy = await PolicyResolver(session).resolve_effective_policy(employee.employee_id)

        assert policy.policy_id == own.policy_id
        assert policy.scope == "employee"
        assert policy.base_salary.value == Decimal("15000000")

    async def test_falls_back_to_role_policy(self, session):
        employee = await add_employee(session, "E001")
        role = await add_role(session, "engineer")
        await assign_role(session, employee, role)
        role_policy = await add_policy(session, role=role, base_salary="10000000")

        policy = await PolicyResolver(session).resolve_effective_policy(employee.employee_id)

        assert policy.policy_id == role_policy.policy_id
        assert policy.scope == "role"

    async def test_first_role_assignment_decides(self, session):
        employee = await add_employee(session, "E001")
        first = await add_role(session, "engineer")
        second = await add_role(session, "manager")
        await assign_role(session, employee, first)
        await assign_role(session, employee, second)
        await add_policy(session, role=second, base_salary="30000000")
        first_policy = await add_policy(session, role=first, base_salary="10000000")

        policy = await PolicyResolver(session).resolve_effective_policy(employee.employee_id)

        assert policy.policy_id == first_policy.policy_id

    async def test_no_policy_is_fatal(self, session):
        employee = await add_employee(session, "E001")
        role = await add_role(session, "engineer")
        await assign_role(session, employee, role)

        with pytest.raises(PolicyNotFoundError, match="Salary settings not found"):
            await PolicyResolver(session).resolve_effective_policy(employee.employee_id)

    async def test_defaults_and_derived_hourly_rate(self, session):
        employee = await add_employee(session, "E001")
        await add_policy(
            session,
            employee=employee,
            allowance=None,
            insurance_rate_percent=None,
            overtime_multiplier=None,
        )

        policy = await PolicyResolver(session).resolve_effective_policy(employee.employee_id)

        assert policy.allowance.value == Decimal("0")
        assert policy.insurance_rate_percent.value == Decimal("10.5")
        assert policy.overtime_multiplier.value == Decimal("1.5")
        assert policy.hourly_rate.value == Decimal("125000.00")
        assert policy.hourly_rate_derived is True

    async def test_derived_hourly_rate_uses_calendar_in_effect(self, session):
        employee = await add_employee(session, "E001")
        await add_policy(session, employee=employee, base_salary="22000000")
        work_calendar = WorkCalendar(hours_per_day=10, days_per_month=20)

        policy = await PolicyResolver(session).resolve_effective_policy(
            employee.employee_id, work_calendar
        )

        assert policy.hourly_rate.value == Decimal("110000")
