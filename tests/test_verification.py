"""Tests for overtime and late/early verification against attendance."""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from salary_engine.calculators.verification import (
    VerificationEngine,
    declared_overtime_hours,
    expected_overtime_end,
)
from salary_engine.models import LateEarlyKind

from tests.conftest import UTC, attendance, late_early, overtime

DAY = date(2025, 4, 2)


@pytest.fixture
def verifier() -> VerificationEngine:
    return VerificationEngine(UTC)


class TestOvertimeVerification:
    """Overtime is credited in full or not at all."""

    def test_checkout_exactly_sixty_minutes_off_is_credited(self, verifier):
        request = overtime(1, DAY, time(18, 0), time(20, 0), "2")
        record = attendance(1, DAY, check_out=time(21, 0))

        total = verifier.verified_overtime_hours([request], {DAY: record})

        assert total.value == Decimal("2.00")

    def test_checkout_sixty_one_minutes_off_is_discarded(self, verifier):
        request = overtime(1, DAY, time(18, 0), time(20, 0), "2")
        record = attendance(1, DAY, check_out=time(21, 1))

        total = verifier.verified_overtime_hours([request], {DAY: record})

        assert total.value == Decimal("0")

    def test_early_checkout_is_symmetric(self, verifier):
        request = overtime(1, DAY, time(18, 0), time(20, 0), "2")
        assert verifier.is_overtime_verified(request, attendance(1, DAY, check_out=time(19, 0)))
        assert not verifier.is_overtime_verified(request, attendance(1, DAY, check_out=time(18, 59)))

    def test_missing_attendance_or_punches_discard(self, verifier):
        request = overtime(1, DAY, time(18, 0), time(20, 0), "2")
        assert not verifier.is_overtime_verified(request, None)
        assert not verifier.is_overtime_verified(request, attendance(1, DAY, check_in=None))
        assert not verifier.is_overtime_verified(request, attendance(1, DAY, check_out=None))

    def test_overnight_shift_ends_next_day(self, verifier):
        request = overtime(1, DAY, time(22, 0), time(1, 0), "3")
        assert request.crosses_midnight
        assert not overtime(1, DAY, time(18, 0), time(20, 0), "2").crosses_midnight
        assert expected_overtime_end(request, UTC) == datetime(2025, 4, 3, 1, 0, tzinfo=UTC)

        record = attendance(1, DAY, check_out=time(23, 59))
        record.check_out = datetime(2025, 4, 3, 1, 30)
        assert verifier.is_overtime_verified(request, record)

    def test_hours_derived_from_span_when_not_stored(self):
        assert declared_overtime_hours(
            overtime(1, DAY, time(18, 0), time(20, 30), None)
        ).value == Decimal("2.5")
        assert declared_overtime_hours(
            overtime(1, DAY, time(23, 0), time(1, 0), None)
        ).value == Decimal("2")

    def test_sum_is_rounded(self, verifier):
        first = overtime(1, DAY, time(18, 0), time(19, 0), "1.005")
        second = overtime(1, date(2025, 4, 3), time(18, 0), time(19, 0), "1")
        records = {
            DAY: attendance(1, DAY, check_out=time(19, 0)),
            date(2025, 4, 3): attendance(1, date(2025, 4, 3), check_out=time(19, 0)),
        }

        assert verifier.verified_overtime_hours([first, second], records).value == Decimal("2.01")

    def test_aware_checkout_is_read_in_business_timezone(self):
        verifier = VerificationEngine(ZoneInfo("Asia/Ho_Chi_Minh"))
        request = overtime(1, DAY, time(18, 0), time(20, 0), "2")
        record = attendance(1, DAY)
        # 13:00 UTC is 20:00 in UTC+7
        record.check_out = datetime(2025, 4, 2, 13, 0, tzinfo=timezone.utc)

        assert verifier.is_overtime_verified(request, record)


class TestLateEarlyVerification:
    """Approved claims excuse a penalty only when they match attendance."""

    def test_claim_within_thirty_minutes_is_verified(self, verifier):
        record = attendance(1, DAY, check_in=time(9, 40))
        assert verifier.is_claim_verified(late_early(1, DAY, "LATE", time(9, 10)), record)
        assert not verifier.is_claim_verified(late_early(1, DAY, "LATE", time(9, 9)), record)

    def test_early_claim_uses_checkout(self, verifier):
        record = attendance(1, DAY, check_out=time(16, 0))
        assert verifier.is_claim_verified(late_early(1, DAY, "EARLY", time(16, 20)), record)
        assert not verifier.is_claim_verified(late_early(1, DAY, "EARLY", time(17, 0)), record)

    def test_claim_without_time_is_verified(self, verifier):
        record = attendance(1, DAY, check_in=None)
        assert verifier.is_claim_verified(late_early(1, DAY, "LATE", None), record)

    def test_claim_without_matching_punch_is_not_verified(self, verifier):
        record = attendance(1, DAY, check_in=None)
        assert not verifier.is_claim_verified(late_early(1, DAY, "LATE", time(9, 30)), record)

    def test_only_requests_of_the_right_kind_excuse(self, verifier):
        record = attendance(1, DAY, check_in=time(9, 30), check_out=time(16, 0))
        requests = [late_early(1, DAY, "EARLY", time(16, 0))]

        assert verifier.is_excused(LateEarlyKind.EARLY, record, requests)
        assert not verifier.is_excused(LateEarlyKind.LATE, record, requests)

    def test_any_matching_request_excuses(self, verifier):
        record = attendance(1, DAY, check_in=time(10, 0))
        requests = [
            late_early(1, DAY, "LATE", time(8, 0)),
            late_early(1, DAY, "LATE", time(10, 5)),
        ]
        assert verifier.is_excused(LateEarlyKind.LATE, record, requests)
