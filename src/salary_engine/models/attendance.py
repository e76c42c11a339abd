"""Attendance and exception request models.

Attendance rows come from time tracking; requests come from the approval
workflows. The salary engine reads only their approved snapshot.
"""

from __future__ import annotations

from datetime import date, datetime, time
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
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from salary_engine.models.base import Base, TimestampMixin, UpdatedAtMixin


class RequestStatus(str, Enum):
    """Approval status shared by leave, overtime, and late/early requests."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveType(str, Enum):
    """Leave categories."""

    ANNUAL = "ANNUAL"
    SICK = "SICK"
    PERSONAL = "PERSONAL"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    UNPAID = "UNPAID"
    OTHER = "OTHER"

    @property
    def is_paid(self) -> bool:
        """Paid categories count toward work days despite the absence."""
        return self is not LeaveType.UNPAID


class LateEarlyKind(str, Enum):
    """Which side of the shift a late/early request excuses."""

    LATE = "LATE"
    EARLY = "EARLY"


_REQUEST_STATUS_CHECK = "status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED')"


class AttendanceRecord(Base, TimestampMixin):
    """One attendance row per employee per day."""

    __tablename__ = "attendance"

    attendance_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_in: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    check_out: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    work_hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    late_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0)
    early_leave_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="attendance_employee_date_unique"),
    )


class LeaveRequest(Base, UpdatedAtMixin):
    """Leave request spanning one or more days."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_days: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=RequestStatus.PENDING.value
    )

    __table_args__ = (
        CheckConstraint(
            "leave_type IN ('ANNUAL', 'SICK', 'PERSONAL', 'MATERNITY', "
            "'PATERNITY', 'UNPAID', 'OTHER')",
            name="leave_request_type_check",
        ),
        CheckConstraint(_REQUEST_STATUS_CHECK, name="leave_request_status_check"),
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
    )

    @property
    def is_paid(self) -> bool:
        return LeaveType(self.leave_type).is_paid

    def covers(self, day: date) -> bool:
        """Check if the leave includes a calendar day."""
        return self.start_date <= day <= self.end_date


class OvertimeRequest(Base, UpdatedAtMixin):
    """Overtime request for a single shift.

    ``end_time <= start_time`` means the shift ends on the following day.
    """

    __tablename__ = "overtime_request"

    overtime_request_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=RequestStatus.PENDING.value
    )

    __table_args__ = (
        CheckConstraint(_REQUEST_STATUS_CHECK, name="overtime_request_status_check"),
    )

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time <= self.start_time


class LateEarlyRequest(Base, UpdatedAtMixin):
    """Request excusing a late arrival or an early departure."""

    __tablename__ = "late_early_request"

    late_early_request_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    # Claimed check-in (LATE) or check-out (EARLY) wall-clock time
    actual_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=RequestStatus.PENDING.value
    )

    __table_args__ = (
        CheckConstraint("kind IN ('LATE', 'EARLY')", name="late_early_request_kind_check"),
        CheckConstraint(_REQUEST_STATUS_CHECK, name="late_early_request_status_check"),
    )
