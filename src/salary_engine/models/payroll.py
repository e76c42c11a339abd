"""Payroll ledger and schedule run models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from salary_engine.models.base import Base, TimestampMixin, UpdatedAtMixin


class PaymentMethod(str, Enum):
    """How an approved salary was paid out."""

    BANK_TRANSFER = "BANK_TRANSFER"
    CASH = "CASH"
    CHEQUE = "CHEQUE"
    OTHER = "OTHER"


class PayrollRecord(Base, UpdatedAtMixin):
    """Monthly salary result for one employee.

    ``month`` is always the first calendar day of the pay period. The pair
    ``(employee_id, month)`` is the ledger key.
    """

    __tablename__ = "payroll_record"

    payroll_record_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[date] = mapped_column(Date, nullable=False)

    # Calculation outputs
    base_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    work_days: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    work_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=0)
    approved_leave_days: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=0
    )
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=0)
    overtime_salary: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=0
    )
    allowance: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    insurance: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    total_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    # Lifecycle
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    pay_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    calculated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "month", name="payroll_record_employee_month_unique"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'PAID')",
            name="payroll_record_status_check",
        ),
        CheckConstraint(
            "payment_method IS NULL OR payment_method IN "
            "('BANK_TRANSFER', 'CASH', 'CHEQUE', 'OTHER')",
            name="payroll_record_payment_method_check",
        ),
        CheckConstraint(
            "status <> 'PAID' OR (pay_date IS NOT NULL AND payment_method IS NOT NULL)",
            name="payroll_record_paid_fields_check",
        ),
    )


class PayrollScheduleRun(Base, TimestampMixin):
    """Marker that a scheduled bulk calculation fired for a pay period."""

    __tablename__ = "payroll_schedule_run"

    schedule_run_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    schedule_name: Mapped[str] = mapped_column(String, nullable=False)
    period: Mapped[date] = mapped_column(Date, nullable=False)
    fired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    job_id: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("schedule_name", "period", name="payroll_schedule_run_unique"),
    )
