"""Loads one employee's attendance and approved requests for a pay period."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salary_engine.calculators.types import MonthData
from salary_engine.calculators.work_calendar import month_bounds
from salary_engine.models import (
    AttendanceRecord,
    LateEarlyRequest,
    LeaveRequest,
    OvertimeRequest,
    RequestStatus,
)


class MonthDataLoader:
    """Reads the approved snapshot of the time and request streams.

    Only ``APPROVED`` requests are returned; pending, rejected and cancelled
    ones never reach the calculation.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_month_data(self, employee_id: int, year: int, month: int) -> MonthData:
        first, last = month_bounds(year, month)
        approved = RequestStatus.APPROVED.value

        attendance = await self.session.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.work_date >= first,
                AttendanceRecord.work_date <= last,
            )
            .order_by(AttendanceRecord.work_date)
        )

        # Leaves spanning a month boundary still cover days inside the period
        leaves = await self.session.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == approved,
                LeaveRequest.start_date <= last,
                LeaveRequest.end_date >= first,
            )
            .order_by(LeaveRequest.start_date, LeaveRequest.leave_request_id)
        )

        overtimes = await self.session.execute(
            select(OvertimeRequest)
            .where(
                OvertimeRequest.employee_id == employee_id,
                OvertimeRequest.status == approved,
                OvertimeRequest.work_date >= first,
                OvertimeRequest.work_date <= last,
            )
            .order_by(OvertimeRequest.work_date, OvertimeRequest.overtime_request_id)
        )

        late_early = await self.session.execute(
            select(LateEarlyRequest)
            .where(
                LateEarlyRequest.employee_id == employee_id,
                LateEarlyRequest.status == approved,
                LateEarlyRequest.work_date >= first,
                LateEarlyRequest.work_date <= last,
            )
            .order_by(LateEarlyRequest.work_date, LateEarlyRequest.late_early_request_id)
        )

        return MonthData(
            employee_id=employee_id,
            period_start=first,
            period_end=last,
            attendance=list(attendance.scalars().all()),
            approved_leaves=list(leaves.scalars().all()),
            approved_overtimes=list(overtimes.scalars().all()),
            approved_late_early=list(late_early.scalars().all()),
        )
