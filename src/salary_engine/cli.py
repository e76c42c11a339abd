"""Salary engine command line interface.

Provides operator tools for:
- Calculating one employee's salary
- Calculating every active employee for a month
- Approving every pending salary of a month
- Running one month-end scheduler tick (for external cron)

Usage:
    python -m salary_engine.cli calculate --employee-id 7 --year 2025 --month 1
    python -m salary_engine.cli calculate-all --year 2025 --month 1
    python -m salary_engine.cli approve-all --year 2025 --month 1
    python -m salary_engine.cli run-schedule-tick
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from zoneinfo import ZoneInfo

from salary_engine.config import Settings, get_settings
from salary_engine.database import dispose_db, get_session, init_db
from salary_engine.errors import PayrollError
from salary_engine.services.job_queue import JobStatus, SalaryJobQueue
from salary_engine.services.ledger_service import PayrollLedgerService
from salary_engine.services.scheduler import MonthEndSchedule, SalaryScheduler

logger = logging.getLogger(__name__)


def _default_period() -> tuple[int, int]:
    today = date.today()
    return today.year, today.month


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser."""
    year, month = _default_period()
    parser = argparse.ArgumentParser(
        prog="python -m salary_engine.cli",
        description="Salary engine operational tools",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    def add_period(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--year", type=int, default=year, help="Pay period year")
        sub.add_argument("--month", type=int, default=month, help="Pay period month (1-12)")

    calculate = subparsers.add_parser("calculate", help="Calculate one employee's salary")
    calculate.add_argument("--employee-id", type=int, required=True, help="Employee ID")
    add_period(calculate)

    calculate_all = subparsers.add_parser(
        "calculate-all", help="Calculate salaries for every active employee"
    )
    add_period(calculate_all)

    approve_all = subparsers.add_parser(
        "approve-all", help="Approve every pending salary of a month"
    )
    add_period(approve_all)

    subparsers.add_parser(
        "run-schedule-tick",
        help="Fire the month-end bulk calculation if due, and wait for it",
    )

    return parser


async def cmd_calculate(args: argparse.Namespace, settings: Settings) -> int:
    async with get_session() as session:
        service = PayrollLedgerService(session, tz=ZoneInfo(settings.business_timezone))
        record = await service.calculate_salary(args.employee_id, args.year, args.month)
    print(
        f"Employee {record.employee_id} {record.month:%Y-%m}: "
        f"total={record.total_salary} status={record.status}"
    )
    return 0


async def cmd_calculate_all(args: argparse.Namespace, settings: Settings) -> int:
    async with get_session() as session:
        service = PayrollLedgerService(session, tz=ZoneInfo(settings.business_timezone))
        batch = await service.calculate_all_employees(args.year, args.month)
    print(f"Calculated {batch.calculated} salaries for {batch.month:%Y-%m}")
    for employee_id, error in batch.failed:
        print(f"  employee {employee_id}: {error}")
    return 1 if batch.failed else 0


async def cmd_approve_all(args: argparse.Namespace, settings: Settings) -> int:
    async with get_session() as session:
        service = PayrollLedgerService(session, tz=ZoneInfo(settings.business_timezone))
        summary = await service.approve_all_salaries(args.year, args.month)
    print(f"Approved {summary.approved}, failed {summary.failed} for {summary.month:%Y-%m}")
    for record_id, error in summary.errors:
        print(f"  record {record_id}: {error}")
    return 1 if summary.failed else 0


async def cmd_run_schedule_tick(args: argparse.Namespace, settings: Settings) -> int:
    _, session_factory = init_db()
    queue = SalaryJobQueue.from_settings(session_factory, settings)
    scheduler = SalaryScheduler(
        session_factory,
        queue,
        MonthEndSchedule(hour=settings.schedule_hour, timezone=settings.business_timezone),
    )
    await queue.start()
    try:
        job = await scheduler.tick()
        if job is None:
            print("Nothing due")
            return 0
        await job.wait()
    finally:
        await queue.stop()

    print(f"Job {job.job_id} {job.status.value}: {job.result or job.error}")
    return 0 if job.status == JobStatus.SUCCEEDED else 1


COMMANDS = {
    "calculate": cmd_calculate,
    "calculate-all": cmd_calculate_all,
    "approve-all": cmd_approve_all,
    "run-schedule-tick": cmd_run_schedule_tick,
}


async def run(args: argparse.Namespace, settings: Settings) -> int:
    try:
        return await COMMANDS[args.command](args, settings)
    finally:
        await dispose_db()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(run(args, settings))
    except (PayrollError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
