"""Payroll ledger service - computes, approves and pays monthly salaries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Callable

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from salary_engine.calculators.engine import SalaryEngine
from salary_engine.calculators.types import SalaryBreakdown
from salary_engine.calculators.work_calendar import month_start
from salary_engine.database import acquire_payroll_xact_lock, dialect_name
from salary_engine.errors import (
    PayrollError,
    PayrollRecordNotFoundError,
    RecalculationLockedError,
    is_transient,
)
from salary_engine.models import Employee, EmployeeStatus, PaymentMethod, PayrollRecord
from salary_engine.services.locking_service import PayrollKeyLock, payroll_lock_key
from salary_engine.services.state_machine import (
    InvalidTransitionError,
    PayrollStateMachine,
    PayrollStatus,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BatchCalculationResult:
    """Outcome of calculating every active employee for a month."""

    month: date
    records: list[PayrollRecord] = field(default_factory=list)
    failed: list[tuple[int, str]] = field(default_factory=list)  # (employee_id, error)

    @property
    def calculated(self) -> int:
        return len(self.records)


@dataclass
class ApprovalSummary:
    """Outcome of approving every pending record of a month."""

    month: date
    approved: int = 0
    failed: int = 0
    errors: list[tuple[int, str]] = field(default_factory=list)  # (payroll_record_id, error)


class PayrollLedgerService:
    """Service owning all writes to the payroll ledger.

    Operations:
    - calculate_salary: compute and upsert one (employee, month) entry
    - calculate_all_employees: calculate every ACTIVE employee, isolating failures
    - approve_salary / approve_all_salaries: PENDING → APPROVED
    - mark_as_paid: APPROVED → PAID with pay date and payment method

    The service never commits; callers own the transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        key_lock: PayrollKeyLock | None = None,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.key_lock = key_lock or PayrollKeyLock()
        self.engine = SalaryEngine(session, tz)
        self.clock = clock

    # ===== Queries =====

    async def get_record(self, payroll_record_id: int) -> PayrollRecord:
        """Load a ledger record by id, raising if absent."""
        record = await self.session.get(PayrollRecord, payroll_record_id)
        if record is None:
            raise PayrollRecordNotFoundError(payroll_record_id)
        return record

    async def get_salary(self, employee_id: int, year: int, month: int) -> PayrollRecord | None:
        """Ledger entry for one employee and month, if calculated."""
        result = await self.session.execute(
            select(PayrollRecord).where(
                PayrollRecord.employee_id == employee_id,
                PayrollRecord.month == month_start(year, month),
            )
        )
        return result.scalar_one_or_none()

    async def get_employee_salaries(self, employee_id: int) -> list[PayrollRecord]:
        """All ledger entries of an employee, newest month first."""
        result = await self.session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.employee_id == employee_id)
            .order_by(PayrollRecord.month.desc())
        )
        return list(result.scalars().all())

    async def get_salaries_by_month(self, year: int, month: int) -> list[PayrollRecord]:
        """All ledger entries of a month, ordered by employee."""
        result = await self.session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.month == month_start(year, month))
            .order_by(PayrollRecord.employee_id)
        )
        return list(result.scalars().all())

    # ===== Calculation =====

    async def calculate_salary(self, employee_id: int, year: int, month: int) -> PayrollRecord:
        """Compute and upsert the ledger entry for ``(employee_id, month)``.

        The in-process key lock is released on return; only the PostgreSQL
        advisory lock lasts until the caller commits.

        Raises:
            RecalculationLockedError: If the entry is already APPROVED or PAID
            EmployeeNotFoundError, PolicyNotFoundError, ArithmeticFaultError
        """
        period = month_start(year, month)

        async with self.key_lock.hold(employee_id, period):
            await acquire_payroll_xact_lock(self.session, payroll_lock_key(employee_id, period))

            existing_status = await self.session.scalar(
                select(PayrollRecord.status).where(
                    PayrollRecord.employee_id == employee_id,
                    PayrollRecord.month == period,
                )
            )
            if existing_status is not None and PayrollStateMachine.is_frozen(existing_status):
                raise RecalculationLockedError(employee_id, period, existing_status)

            breakdown = await self.engine.calculate(employee_id, year, month)
            record = await self._upsert(breakdown)

        logger.info(
            "Calculated salary for employee %s month %s: total=%s",
            employee_id,
            f"{period:%Y-%m}",
            record.total_salary,
        )
        return record

    async def _upsert(self, breakdown: SalaryBreakdown) -> PayrollRecord:
        """Insert or overwrite a PENDING entry; never touches frozen rows."""
        values: dict[str, Any] = {
            "employee_id": breakdown.employee_id,
            "month": breakdown.month,
            **breakdown.to_record_values(),
            "status": PayrollStatus.PENDING.value,
            "calculated_at": self.clock(),
        }

        dialect = dialect_name(self.session)
        if dialect == "postgresql":
            stmt = pg_insert(PayrollRecord).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite_insert(PayrollRecord).values(**values)
        else:
            return await self._upsert_orm(breakdown, values)

        set_ = {
            key: stmt.excluded[key]
            for key in values
            if key not in ("employee_id", "month")
        }
        set_["updated_at"] = self.clock()
        stmt = stmt.on_conflict_do_update(
            index_elements=["employee_id", "month"],
            set_=set_,
            where=PayrollRecord.status == PayrollStatus.PENDING.value,
        ).returning(PayrollRecord.payroll_record_id)

        record_id = (await self.session.execute(stmt)).scalar_one_or_none()
        if record_id is None:
            # The guard lost a race with an approval that committed meanwhile
            status = await self.session.scalar(
                select(PayrollRecord.status).where(
                    PayrollRecord.employee_id == breakdown.employee_id,
                    PayrollRecord.month == breakdown.month,
                )
            )
            raise RecalculationLockedError(
                breakdown.employee_id, breakdown.month, status or PayrollStatus.APPROVED.value
            )

        record = await self.session.get(PayrollRecord, record_id, populate_existing=True)
        assert record is not None
        return record

    async def _upsert_orm(self, breakdown: SalaryBreakdown, values: dict[str, Any]) -> PayrollRecord:
        result = await self.session.execute(
            select(PayrollRecord)
            .where(
                PayrollRecord.employee_id == breakdown.employee_id,
                PayrollRecord.month == breakdown.month,
            )
            .with_for_update()
        )
        record = result.scalar_one_or_none()
        if record is None:
            record = PayrollRecord(**values)
            self.session.add(record)
        elif PayrollStateMachine.is_frozen(record.status):
            raise RecalculationLockedError(breakdown.employee_id, breakdown.month, record.status)
        else:
            for key, value in values.items():
                setattr(record, key, value)
        await self.session.flush()
        return record

    async def get_active_employee_ids(self) -> list[int]:
        result = await self.session.execute(
            select(Employee.employee_id)
            .where(Employee.status == EmployeeStatus.ACTIVE.value)
            .order_by(Employee.employee_id)
        )
        return list(result.scalars().all())

    async def calculate_all_employees(self, year: int, month: int) -> BatchCalculationResult:
        """Calculate every ACTIVE employee, one savepoint per employee.

        Business failures are logged and reported per employee without
        aborting the batch. Transient storage failures propagate so the
        whole job can be retried.
        """
        batch = BatchCalculationResult(month=month_start(year, month))
        employee_ids = await self.get_active_employee_ids()

        for employee_id in employee_ids:
            try:
                async with self.session.begin_nested():
                    record = await self.calculate_salary(employee_id, year, month)
            except PayrollError as e:
                if is_transient(e):
                    raise
                logger.warning(
                    "Skipping salary calculation for employee %s: %s", employee_id, e
                )
                batch.failed.append((employee_id, str(e)))
            except Exception as e:
                if is_transient(e):
                    raise
                logger.exception(
                    "Unexpected error calculating salary for employee %s", employee_id
                )
                batch.failed.append((employee_id, str(e)))
            else:
                batch.records.append(record)

        logger.info(
            "Calculated %d of %d active employees for %s (%d failed)",
            batch.calculated,
            len(employee_ids),
            f"{batch.month:%Y-%m}",
            len(batch.failed),
        )
        return batch

    # ===== Transitions =====

    async def _transition(
        self,
        payroll_record_id: int,
        to_status: PayrollStatus,
        **values: Any,
    ) -> PayrollRecord:
        record = await self.get_record(payroll_record_id)
        from_status = record.status
        PayrollStateMachine.validate_transition(from_status, to_status)

        # Conditional update so a concurrent transition cannot be overwritten
        result = await self.session.execute(
            update(PayrollRecord)
            .where(
                PayrollRecord.payroll_record_id == payroll_record_id,
                PayrollRecord.status == from_status,
            )
            .values(status=to_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransitionError(
                from_status, to_status.value, "record was modified concurrently"
            )

        await self.session.refresh(record)
        return record

    async def approve_salary(self, payroll_record_id: int) -> PayrollRecord:
        """Approve a PENDING record, freezing its figures."""
        record = await self._transition(
            payroll_record_id, PayrollStatus.APPROVED, approved_at=self.clock()
        )
        logger.info("Approved payroll record %s", payroll_record_id)
        return record

    async def approve_all_salaries(self, year: int, month: int) -> ApprovalSummary:
        """Approve every PENDING record of a month, isolating failures."""
        summary = ApprovalSummary(month=month_start(year, month))
        result = await self.session.execute(
            select(PayrollRecord.payroll_record_id)
            .where(
                PayrollRecord.month == summary.month,
                PayrollRecord.status == PayrollStatus.PENDING.value,
            )
            .order_by(PayrollRecord.employee_id)
        )

        for payroll_record_id in result.scalars().all():
            try:
                async with self.session.begin_nested():
                    await self.approve_salary(payroll_record_id)
            except PayrollError as e:
                if is_transient(e):
                    raise
                logger.warning("Could not approve payroll record %s: %s", payroll_record_id, e)
                summary.failed += 1
                summary.errors.append((payroll_record_id, str(e)))
            except Exception as e:
                if is_transient(e):
                    raise
                logger.exception("Unexpected error approving payroll record %s", payroll_record_id)
                summary.failed += 1
                summary.errors.append((payroll_record_id, str(e)))
            else:
                summary.approved += 1

        logger.info(
            "Approved %d payroll records for %s (%d failed)",
            summary.approved,
            f"{summary.month:%Y-%m}",
            summary.failed,
        )
        return summary

    async def mark_as_paid(
        self,
        payroll_record_id: int,
        pay_date: date,
        payment_method: PaymentMethod | str,
    ) -> PayrollRecord:
        """Mark an APPROVED record as paid.

        Raises:
            ValueError: If pay_date or payment_method is missing or invalid
        """
        if pay_date is None:
            raise ValueError("pay_date is required to mark a salary as paid")
        if not payment_method:
            raise ValueError("payment_method is required to mark a salary as paid")
        method = PaymentMethod(payment_method)

        record = await self._transition(
            payroll_record_id,
            PayrollStatus.PAID,
            pay_date=pay_date,
            payment_method=method.value,
            paid_at=self.clock(),
        )
        logger.info(
            "Marked payroll record %s as paid on %s via %s",
            payroll_record_id,
            pay_date,
            method.value,
        )
        return record
