"""Tests for month-end scheduling."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.exc import OperationalError

from salary_engine.models import PayrollScheduleRun
from salary_engine.services.job_queue import JobKind, SalaryJobQueue
from salary_engine.services.scheduler import MonthEndSchedule, SalaryScheduler, due_period

from tests.conftest import UTC

SCHEDULE = MonthEndSchedule(hour=23, timezone="UTC", max_lateness=timedelta(days=3))


def at(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


class TestDuePeriod:
    def test_not_due_before_trigger(self):
        assert due_period(SCHEDULE, at(2025, 4, 30, 22, 59)) is None
        assert due_period(SCHEDULE, at(2025, 4, 15, 12, 0)) is None

    def test_due_at_trigger(self):
        assert due_period(SCHEDULE, at(2025, 4, 30, 23, 0)) == date(2025, 4, 1)

    def test_missed_trigger_fires_next_month_within_lateness(self):
        assert due_period(SCHEDULE, at(2025, 5, 2, 8, 0)) == date(2025, 4, 1)
        assert due_period(SCHEDULE, at(2025, 5, 4, 0, 0)) is None

    def test_year_boundary(self):
        assert due_period(SCHEDULE, at(2026, 1, 1, 1, 0)) == date(2025, 12, 1)

    def test_february_leap_year(self):
        assert due_period(SCHEDULE, at(2024, 2, 28, 23, 30)) is None
        assert due_period(SCHEDULE, at(2024, 2, 29, 23, 30)) == date(2024, 2, 1)

    def test_trigger_uses_schedule_timezone(self):
        schedule = MonthEndSchedule(hour=23, timezone="Asia/Ho_Chi_Minh")
        # 16:00 UTC on April 30 is 23:00 in UTC+7
        assert due_period(schedule, at(2025, 4, 30, 15, 59)) is None
        assert due_period(schedule, at(2025, 4, 30, 16, 0)) == date(2025, 4, 1)
        assert schedule.trigger_at(2025, 4).tzinfo == ZoneInfo("Asia/Ho_Chi_Minh")

    def test_naive_now_rejected(self):
        with pytest.raises(ValueError):
            due_period(SCHEDULE, datetime(2025, 4, 30, 23, 0))

    def test_schedule_validation(self):
        with pytest.raises(ValueError):
            MonthEndSchedule(hour=24)


class TestSalaryScheduler:
    @pytest.fixture
    def queue(self, session_factory) -> SalaryJobQueue:
        # Workers are never started; jobs only accumulate
        return SalaryJobQueue(session_factory, workers=1, tz=UTC)

    async def test_fires_once_per_period(self, session_factory, queue):
        now = at(2025, 4, 30, 23, 5)
        scheduler = SalaryScheduler(session_factory, queue, SCHEDULE, clock=lambda: now)

        job = await scheduler.tick()
        again = await scheduler.tick()

        assert job is not None
        assert job.kind == JobKind.CALCULATE_ALL
        assert job.payload == {"year": 2025, "month": 4}
        assert again is None

        async with session_factory() as session:
            runs = (await session.execute(select(PayrollScheduleRun))).scalars().all()
        assert len(runs) == 1
        assert runs[0].period == date(2025, 4, 1)
        assert runs[0].job_id == job.job_id

    async def test_restarted_scheduler_does_not_refire(self, session_factory, queue):
        now = at(2025, 5, 1, 9, 0)
        await SalaryScheduler(session_factory, queue, SCHEDULE, clock=lambda: now).tick()

        restarted = SalaryScheduler(session_factory, queue, SCHEDULE, clock=lambda: now)
        assert await restarted.tick() is None

    async def test_failed_commit_enqueues_nothing(self, session_factory, queue):
        def lose_connection(session):
            raise OperationalError("COMMIT", {}, Exception("connection lost"))

        def failing_factory():
            session = session_factory()
            event.listen(session.sync_session, "before_commit", lose_connection)
            return session

        scheduler = SalaryScheduler(
            failing_factory, queue, SCHEDULE, clock=lambda: at(2025, 4, 30, 23, 5)
        )
        with pytest.raises(OperationalError):
            await scheduler.tick()

        assert queue._queue.qsize() == 0
        async with session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(PayrollScheduleRun))
        assert count == 0

    async def test_nothing_due(self, session_factory, queue):
        scheduler = SalaryScheduler(
            session_factory, queue, SCHEDULE, clock=lambda: at(2025, 4, 10, 12, 0)
        )
        assert await scheduler.tick() is None

        async with session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(PayrollScheduleRun))
        assert count == 0

    async def test_run_forever_stops(self, session_factory, queue):
        scheduler = SalaryScheduler(
            session_factory,
            queue,
            SCHEDULE,
            tick_seconds=0.01,
            clock=lambda: datetime(2025, 4, 30, 23, 30, tzinfo=timezone.utc),
        )
        stop = asyncio.Event()
        task = asyncio.create_task(scheduler.run_forever(stop))
        await asyncio.sleep(0.05)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert queue._queue.qsize() == 1
