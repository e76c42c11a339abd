"""Work calendar resolution and pay period arithmetic."""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salary_engine.calculators.types import WorkCalendar
from salary_engine.models import WorkScheduleSettings

DEFAULT_WORK_CALENDAR = WorkCalendar()


def is_working_day(day: date, work_calendar: WorkCalendar) -> bool:
    """Check if a date falls on a working weekday."""
    if not isinstance(day, date):
        raise TypeError(f"Expected a date, got {type(day).__name__}")
    return work_calendar.working_weekdays[day.weekday()]


def month_start(year: int, month: int) -> date:
    """First day of a pay period; the canonical ledger month value."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month {month}: must be between 1 and 12")
    if not 1 <= year <= 9999:
        raise ValueError(f"Invalid year {year}")
    return date(year, month, 1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Inclusive first and last calendar day of a month."""
    first = month_start(year, month)
    last = date(year, month, calendar.monthrange(year, month)[1])
    return first, last


def iter_days(first: date, last: date) -> Iterator[date]:
    """Yield every calendar day in ``[first, last]``."""
    day = first
    while day <= last:
        yield day
        day += timedelta(days=1)


def calendar_from_settings(row: WorkScheduleSettings) -> WorkCalendar:
    return WorkCalendar(
        working_weekdays=row.weekday_mask(),
        late_tolerance_minutes=row.late_tolerance_minutes,
        early_leave_tolerance_minutes=row.early_leave_tolerance_minutes,
    )


async def load_work_calendar(session: AsyncSession) -> WorkCalendar:
    """Load the effective work calendar, falling back to Monday to Friday."""
    result = await session.execute(
        select(WorkScheduleSettings)
        .order_by(WorkScheduleSettings.settings_id.desc())
        .limit(1)
    )
    row = result.scalar_one_or_none()
    if row is None:
        return DEFAULT_WORK_CALENDAR
    return calendar_from_settings(row)
