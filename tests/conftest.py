"""Pytest fixtures for salary engine tests."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import AsyncGenerator
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from salary_engine.config import Settings
from salary_engine.database import create_session_factory
from salary_engine.models import (
    AttendanceRecord,
    Base,
    CompensationPolicy,
    Employee,
    EmployeeRoleAssignment,
    LateEarlyRequest,
    LeaveRequest,
    OvertimeRequest,
    RequestStatus,
    Role,
)

# In-memory SQLite shared across sessions of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

UTC = ZoneInfo("UTC")

# April 2025 has exactly 22 weekdays; April 1 is a Tuesday
YEAR, MONTH = 2025, 4


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh test database engine with the schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's implicit transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    return create_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
        business_timezone="UTC",
        job_workers=1,
        job_max_attempts=3,
        job_backoff_seconds=0.0,
        job_history_size=100,
        scheduler_enabled=False,
        scheduler_tick_seconds=300,
        schedule_hour=23,
    )


# ============================================================================
# Data builders
# ============================================================================


async def add_employee(
    session: AsyncSession,
    number: str,
    status: str = "ACTIVE",
) -> Employee:
    employee = Employee(employee_number=number, full_name=f"Employee {number}", status=status)
    session.add(employee)
    await session.flush()
    return employee


async def add_policy(
    session: AsyncSession,
    *,
    employee: Employee | None = None,
    role: Role | None = None,
    base_salary: str = "22000000",
    allowance: str | None = "500000",
    insurance_rate_percent: str | None = "10.5",
    hourly_rate: str | None = None,
    overtime_multiplier: str | None = "1.5",
) -> CompensationPolicy:
    policy = CompensationPolicy(
        employee_id=employee.employee_id if employee else None,
        role_id=role.role_id if role else None,
        base_salary=Decimal(base_salary),
        allowance=None if allowance is None else Decimal(allowance),
        insurance_rate_percent=(
            None if insurance_rate_percent is None else Decimal(insurance_rate_percent)
        ),
        hourly_rate=None if hourly_rate is None else Decimal(hourly_rate),
        overtime_multiplier=None if overtime_multiplier is None else Decimal(overtime_multiplier),
    )
    session.add(policy)
    await session.flush()
    return policy


async def add_role(session: AsyncSession, code: str) -> Role:
    role = Role(code=code, name=code.title())
    session.add(role)
    await session.flush()
    return role


async def assign_role(session: AsyncSession, employee: Employee, role: Role) -> None:
    session.add(EmployeeRoleAssignment(employee_id=employee.employee_id, role_id=role.role_id))
    await session.flush()


def attendance(
    employee_id: int,
    day: date,
    check_in: time | None = time(9, 0),
    check_out: time | None = time(18, 0),
    work_hours: str | None = "8",
    late_minutes: int | None = 0,
    early_leave_minutes: int | None = 0,
) -> AttendanceRecord:
    return AttendanceRecord(
        employee_id=employee_id,
        work_date=day,
        check_in=datetime.combine(day, check_in) if check_in else None,
        check_out=datetime.combine(day, check_out) if check_out else None,
        work_hours=None if work_hours is None else Decimal(work_hours),
        late_minutes=late_minutes,
        early_leave_minutes=early_leave_minutes,
    )


def leave(
    employee_id: int,
    leave_type: str,
    start: date,
    end: date,
    total_days: str = "1",
    status: str = RequestStatus.APPROVED.value,
) -> LeaveRequest:
    return LeaveRequest(
        employee_id=employee_id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        total_days=Decimal(total_days),
        status=status,
    )


def overtime(
    employee_id: int,
    day: date,
    start: time,
    end: time,
    hours: str | None,
    status: str = RequestStatus.APPROVED.value,
) -> OvertimeRequest:
    return OvertimeRequest(
        employee_id=employee_id,
        work_date=day,
        start_time=start,
        end_time=end,
        hours=None if hours is None else Decimal(hours),
        status=status,
    )


def late_early(
    employee_id: int,
    day: date,
    kind: str,
    actual_time: time | None,
    minutes: int | None = None,
    status: str = RequestStatus.APPROVED.value,
) -> LateEarlyRequest:
    return LateEarlyRequest(
        employee_id=employee_id,
        work_date=day,
        kind=kind,
        actual_time=actual_time,
        minutes=minutes,
        status=status,
    )
