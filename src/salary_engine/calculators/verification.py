"""Matches approved requests against actual attendance.

Both procedures are all-or-nothing: a request either matches the attendance
record within its tolerance window and counts in full, or it is discarded.

Request times (overtime end, claimed arrival/departure) are business-local
wall-clock times. Attendance instants are converted to the business timezone
before comparison; naive attendance timestamps are taken as already local.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import TYPE_CHECKING, Iterable

from salary_engine.calculators.types import Amount
from salary_engine.models import LateEarlyKind

if TYPE_CHECKING:
    from salary_engine.models import AttendanceRecord, LateEarlyRequest, OvertimeRequest

logger = logging.getLogger(__name__)

OVERTIME_MATCH_TOLERANCE = timedelta(minutes=60)
CLAIM_MATCH_TOLERANCE_MINUTES = 30


def to_local(instant: datetime, tz: tzinfo) -> datetime:
    """Express an attendance instant in the business timezone."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def minute_of_day(value: time | datetime) -> int:
    return value.hour * 60 + value.minute


def expected_overtime_end(request: OvertimeRequest, tz: tzinfo) -> datetime:
    """Local instant the overtime shift was declared to end.

    ``end_time <= start_time`` means the shift ran past midnight.
    """
    end_date: date = request.work_date
    if request.crosses_midnight:
        end_date += timedelta(days=1)
    return datetime.combine(end_date, request.end_time, tzinfo=tz)


def declared_overtime_hours(request: OvertimeRequest) -> Amount:
    """Hours the request claims; derived from its time span if not stored."""
    if request.hours is not None:
        return Amount(request.hours, "overtime hours")
    start = datetime.combine(request.work_date, request.start_time)
    end = datetime.combine(request.work_date, request.end_time)
    if request.crosses_midnight:
        end += timedelta(days=1)
    return Amount(int((end - start).total_seconds()), "overtime hours") / 3600


class VerificationEngine:
    """Verifies overtime and late/early requests against attendance."""

    def __init__(self, tz: tzinfo):
        self.tz = tz

    def is_overtime_verified(
        self,
        request: OvertimeRequest,
        attendance: AttendanceRecord | None,
    ) -> bool:
        """Check an overtime request against that day's actual checkout."""
        if attendance is None or attendance.check_in is None or attendance.check_out is None:
            return False
        expected = expected_overtime_end(request, self.tz)
        actual = to_local(attendance.check_out, self.tz)
        return abs(actual - expected) <= OVERTIME_MATCH_TOLERANCE

    def verified_overtime_hours(
        self,
        overtimes: Iterable[OvertimeRequest],
        attendance_by_date: dict[date, AttendanceRecord],
    ) -> Amount:
        """Sum declared hours of every verified overtime request."""
        total = Amount.zero("overtime hours")
        for request in overtimes:
            if not self.is_overtime_verified(request, attendance_by_date.get(request.work_date)):
                logger.debug(
                    "Discarding overtime request %s on %s: checkout does not match",
                    request.overtime_request_id,
                    request.work_date,
                )
                continue
            total += declared_overtime_hours(request)
        return total.quantize()

    def is_claim_verified(
        self,
        request: LateEarlyRequest,
        attendance: AttendanceRecord,
    ) -> bool:
        """Check a late/early claim against actual check-in or check-out."""
        if request.actual_time is None:
            return True
        if request.kind == LateEarlyKind.LATE:
            actual = attendance.check_in
        else:
            actual = attendance.check_out
        if actual is None:
            return False
        delta = abs(minute_of_day(to_local(actual, self.tz)) - minute_of_day(request.actual_time))
        return delta <= CLAIM_MATCH_TOLERANCE_MINUTES

    def is_excused(
        self,
        kind: LateEarlyKind,
        attendance: AttendanceRecord,
        requests: Iterable[LateEarlyRequest],
    ) -> bool:
        """Whether any approved request of ``kind`` verifiably covers the day."""
        for request in requests:
            if request.kind != kind:
                continue
            if self.is_claim_verified(request, attendance):
                return True
            logger.debug(
                "%s request %s on %s does not match attendance; penalty stands",
                kind.value,
                request.late_early_request_id,
                request.work_date,
            )
        return False
