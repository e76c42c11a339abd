"""Month-end trigger for bulk salary calculation."""

from __future__ import annotations

import asyncio
import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Callable
from zoneinfo import ZoneInfo

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from salary_engine.models import PayrollScheduleRun
from salary_engine.services.ledger_service import utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from salary_engine.services.job_queue import SalaryJob, SalaryJobQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthEndSchedule:
    """Fire once per month on its last calendar day at ``hour:minute`` local."""

    name: str = "month-end-salaries"
    hour: int = 23
    minute: int = 0
    timezone: str = "UTC"
    max_lateness: timedelta = timedelta(days=3)

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError("Schedule time must be a valid hour and minute")
        if self.max_lateness < timedelta(0):
            raise ValueError("max_lateness cannot be negative")

    def trigger_at(self, year: int, month: int) -> datetime:
        """Trigger instant for the pay period ``year-month``."""
        last_day = calendar.monthrange(year, month)[1]
        return datetime.combine(
            date(year, month, last_day),
            time(self.hour, self.minute),
            tzinfo=ZoneInfo(self.timezone),
        )


def _previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def due_period(schedule: MonthEndSchedule, now: datetime) -> date | None:
    """Pay period whose trigger has passed within the lateness window.

    Returns the first day of that month, or None when nothing is due. The
    previous month is considered too, so a trigger missed while the process
    was down still fires early in the following month.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    local = now.astimezone(ZoneInfo(schedule.timezone))
    for year, month in ((local.year, local.month), _previous_month(local.year, local.month)):
        trigger = schedule.trigger_at(year, month)
        if trigger <= now and now - trigger <= schedule.max_lateness:
            return date(year, month, 1)
    return None


class SalaryScheduler:
    """Enqueues the all-employee job when a pay period becomes due.

    A ``PayrollScheduleRun`` row is committed before enqueuing; its unique
    ``(schedule_name, period)`` key makes each period fire at most once across
    restarts and processes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        queue: SalaryJobQueue,
        schedule: MonthEndSchedule,
        tick_seconds: float = 300,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self.queue = queue
        self.schedule = schedule
        self.tick_seconds = tick_seconds
        self.clock = clock

    async def tick(self) -> SalaryJob | None:
        """Fire the schedule if due and not yet fired; return the job if enqueued."""
        now = self.clock()
        period = due_period(self.schedule, now)
        if period is None:
            return None

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    run = PayrollScheduleRun(
                        schedule_name=self.schedule.name,
                        period=period,
                        fired_at=now,
                    )
                    session.add(run)
                    await session.flush()
                    schedule_run_id = run.schedule_run_id
        except IntegrityError:
            logger.debug(
                "Schedule %s already fired for %s", self.schedule.name, f"{period:%Y-%m}"
            )
            return None

        # Only a committed run row may enqueue work
        job = self.queue.enqueue_calculate_all_employees(period.year, period.month)
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(PayrollScheduleRun)
                    .where(PayrollScheduleRun.schedule_run_id == schedule_run_id)
                    .values(job_id=job.job_id)
                )

        logger.info(
            "Schedule %s fired for %s: job %s",
            self.schedule.name,
            f"{period:%Y-%m}",
            job.job_id,
        )
        return job

    async def run_forever(self, stop: asyncio.Event | None = None) -> None:
        """Poll ``tick`` until ``stop`` is set."""
        stop = stop or asyncio.Event()
        logger.info(
            "Scheduler %s polling every %ss", self.schedule.name, self.tick_seconds
        )
        while not stop.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Scheduler tick failed for %s", self.schedule.name)
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.tick_seconds)
            except asyncio.TimeoutError:
                pass
