"""Work calendar settings and compensation policy models.

Both are administered outside the salary engine and read at calculation time.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from salary_engine.models.base import Base, UpdatedAtMixin


class WorkScheduleSettings(Base, UpdatedAtMixin):
    """Business calendar: working weekdays and lateness tolerances.

    The most recently created row is the effective configuration.
    """

    __tablename__ = "work_schedule_settings"

    settings_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    monday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tuesday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    wednesday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    thursday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    friday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    saturday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sunday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    late_tolerance_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    early_leave_tolerance_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=15
    )

    __table_args__ = (
        CheckConstraint("late_tolerance_minutes >= 0", name="wss_late_tolerance_check"),
        CheckConstraint(
            "early_leave_tolerance_minutes >= 0", name="wss_early_tolerance_check"
        ),
    )

    def weekday_mask(self) -> tuple[bool, ...]:
        """Working flags indexed by ``date.weekday()`` (Monday = 0)."""
        return (
            self.monday,
            self.tuesday,
            self.wednesday,
            self.thursday,
            self.friday,
            self.saturday,
            self.sunday,
        )


class CompensationPolicy(Base, UpdatedAtMixin):
    """Pay policy keyed by exactly one of employee or role."""

    __tablename__ = "compensation_policy"

    policy_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )
    role_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("role.role_id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )
    base_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    allowance: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True, default=Decimal("0")
    )
    insurance_rate_percent: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2), nullable=True, default=Decimal("10.5")
    )
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    overtime_multiplier: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2), nullable=True, default=Decimal("1.5")
    )

    __table_args__ = (
        CheckConstraint(
            "(employee_id IS NULL) <> (role_id IS NULL)",
            name="compensation_policy_owner_check",
        ),
        CheckConstraint("base_salary > 0", name="compensation_policy_base_salary_check"),
    )

    @property
    def scope(self) -> str:
        return "employee" if self.employee_id is not None else "role"
