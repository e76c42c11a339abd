"""Asynchronous worker pool for salary recalculation jobs."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable
from uuid import uuid4
from zoneinfo import ZoneInfo

from salary_engine.calculators.work_calendar import month_start
from salary_engine.errors import is_transient
from salary_engine.services.ledger_service import PayrollLedgerService, utcnow
from salary_engine.services.locking_service import PayrollKeyLock

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from salary_engine.config import Settings

logger = logging.getLogger(__name__)


class JobKind(str, Enum):
    """Recalculation job kinds."""

    CALCULATE_SINGLE = "calculate-single-salary"
    CALCULATE_ALL = "calculate-all-salaries"


class JobStatus(str, Enum):
    """Job lifecycle status."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    RETRYING = "RETRYING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class SalaryJob:
    """Handle for an enqueued job; callers may poll it or await completion."""

    job_id: str
    kind: JobKind
    payload: dict[str, int]
    status: JobStatus = JobStatus.QUEUED
    attempts: int = 0
    result: Any = None
    error: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    _done: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def done(self) -> bool:
        return self.status in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    async def wait(self, timeout: float | None = None) -> SalaryJob:
        """Wait until the job succeeds or fails terminally."""
        await asyncio.wait_for(self._done.wait(), timeout)
        return self


class SalaryJobQueue:
    """In-process job queue driving single and bulk recalculation.

    Each attempt runs in its own session and transaction. Transient failures
    (storage unavailable, timeouts) are retried up to ``max_attempts`` with
    exponential backoff; business failures are terminal on the first attempt.

    Only the most recent ``history_size`` finished jobs stay available to
    ``get_job``. Stopping the queue fails every job that has not finished.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        workers: int = 4,
        max_attempts: int = 3,
        backoff_seconds: float = 5.0,
        history_size: int = 1000,
        key_lock: PayrollKeyLock | None = None,
        tz: tzinfo | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if history_size < 1:
            raise ValueError("history_size must be at least 1")
        self._session_factory = session_factory
        self.workers = workers
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.history_size = history_size
        self.key_lock = key_lock or PayrollKeyLock()
        self.tz = tz
        self._sleep = sleep
        self._queue: asyncio.Queue[SalaryJob] = asyncio.Queue()
        self._jobs: dict[str, SalaryJob] = {}
        self._finished: deque[str] = deque()
        self._stopped = False
        self._tasks: list[asyncio.Task[None]] = []

    @classmethod
    def from_settings(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> SalaryJobQueue:
        return cls(
            session_factory,
            workers=settings.job_workers,
            max_attempts=settings.job_max_attempts,
            backoff_seconds=settings.job_backoff_seconds,
            history_size=settings.job_history_size,
            tz=ZoneInfo(settings.business_timezone),
        )

    # ===== Lifecycle =====

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return
        self._stopped = False
        self._tasks = [
            asyncio.create_task(self._worker(n), name=f"salary-worker-{n}")
            for n in range(self.workers)
        ]
        logger.info("Started %d salary job workers", self.workers)

    async def stop(self) -> None:
        """Cancel the workers and fail every job left unfinished."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._stopped = True

        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        abandoned = [job for job in self._jobs.values() if not job.done]
        for job in abandoned:
            job.status = JobStatus.FAILED
            job.error = "Job queue stopped before the job finished"
            self._finish(job)
        if abandoned:
            logger.warning("Failed %d unfinished job(s) on shutdown", len(abandoned))
        logger.info("Stopped salary job workers")

    async def join(self) -> None:
        """Wait until every enqueued job has finished."""
        await self._queue.join()

    # ===== Enqueue =====

    def enqueue_calculate_salary(self, employee_id: int, year: int, month: int) -> SalaryJob:
        month_start(year, month)
        return self._enqueue(
            JobKind.CALCULATE_SINGLE,
            {"employee_id": employee_id, "year": year, "month": month},
        )

    def enqueue_calculate_all_employees(self, year: int, month: int) -> SalaryJob:
        month_start(year, month)
        return self._enqueue(JobKind.CALCULATE_ALL, {"year": year, "month": month})

    def _enqueue(self, kind: JobKind, payload: dict[str, int]) -> SalaryJob:
        if self._stopped:
            raise RuntimeError("Salary job queue is stopped")
        job = SalaryJob(job_id=str(uuid4()), kind=kind, payload=payload)
        self._jobs[job.job_id] = job
        self._queue.put_nowait(job)
        logger.info("Enqueued %s job %s %s", kind.value, job.job_id, payload)
        return job

    def get_job(self, job_id: str) -> SalaryJob | None:
        return self._jobs.get(job_id)

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retrying after the ``attempt``-th failure."""
        return self.backoff_seconds * 2 ** (attempt - 1)

    # ===== Execution =====

    async def _worker(self, n: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.run_job(job)
            finally:
                self._queue.task_done()

    async def run_job(self, job: SalaryJob) -> SalaryJob:
        """Run a job to completion, retrying transient failures."""
        while True:
            job.attempts += 1
            job.status = JobStatus.RUNNING
            try:
                job.result = await self._execute(job)
            except Exception as e:
                job.error = str(e)
                if is_transient(e) and job.attempts < self.max_attempts:
                    delay = self.backoff_delay(job.attempts)
                    logger.warning(
                        "Job %s attempt %d/%d failed, retrying in %.1fs: %s",
                        job.job_id,
                        job.attempts,
                        self.max_attempts,
                        delay,
                        e,
                    )
                    job.status = JobStatus.RETRYING
                    await self._sleep(delay)
                    continue
                logger.exception(
                    "Job %s (%s) failed after %d attempt(s)",
                    job.job_id,
                    job.kind.value,
                    job.attempts,
                )
                job.status = JobStatus.FAILED
            else:
                job.error = None
                job.status = JobStatus.SUCCEEDED
                logger.info("Job %s (%s) succeeded", job.job_id, job.kind.value)

            self._finish(job)
            return job

    def _finish(self, job: SalaryJob) -> None:
        job.finished_at = utcnow()
        job._done.set()
        self._finished.append(job.job_id)
        while len(self._finished) > self.history_size:
            self._jobs.pop(self._finished.popleft(), None)

    async def _execute(self, job: SalaryJob) -> dict[str, Any]:
        payload = job.payload
        async with self._session_factory() as session:
            async with session.begin():
                service = PayrollLedgerService(session, key_lock=self.key_lock, tz=self.tz)
                if job.kind == JobKind.CALCULATE_SINGLE:
                    record = await service.calculate_salary(
                        payload["employee_id"], payload["year"], payload["month"]
                    )
                    return {
                        "payroll_record_id": record.payroll_record_id,
                        "total_salary": str(record.total_salary),
                    }

                batch = await service.calculate_all_employees(payload["year"], payload["month"])
                return {
                    "calculated": batch.calculated,
                    "failed": [
                        {"employee_id": employee_id, "error": error}
                        for employee_id, error in batch.failed
                    ],
                }
