"""Tests for the validated Amount value type."""

from decimal import Decimal

import pytest

from salary_engine.calculators.types import Amount, WorkCalendar, derive_hourly_rate
from salary_engine.errors import ArithmeticFaultError


class TestAmountConstruction:
    """Non-finite values are rejected when an Amount is built."""

    @pytest.mark.parametrize("raw", [Decimal("NaN"), Decimal("Infinity"), float("nan"), float("-inf")])
    def test_rejects_non_finite(self, raw):
        with pytest.raises(ArithmeticFaultError) as exc_info:
            Amount(raw, "overtime salary")

        assert exc_info.value.component == "overtime salary"
        assert str(exc_info.value) == "Error calculating overtime salary"

    def test_rejects_none_and_garbage(self):
        with pytest.raises(ArithmeticFaultError):
            Amount(None, "base salary")
        with pytest.raises(ArithmeticFaultError):
            Amount("not-a-number", "base salary")

    def test_float_goes_through_str(self):
        assert Amount(0.1, "x").value == Decimal("0.1")

    def test_optional_defaults_only_when_absent(self):
        assert Amount.optional(None, "allowance").value == Decimal("0")
        assert Amount.optional(Decimal("7"), "allowance").value == Decimal("7")
        with pytest.raises(ArithmeticFaultError):
            Amount.optional(Decimal("NaN"), "allowance")


class TestAmountArithmetic:
    """Arithmetic stays inside the finite domain."""

    def test_operations_keep_component(self):
        result = Amount("10", "insurance") * 3 / 4 + 1 - Amount("0.5", "other")
        assert result.value == Decimal("8")
        assert result.component == "insurance"

    def test_division_by_zero_is_a_fault(self):
        with pytest.raises(ArithmeticFaultError) as exc_info:
            Amount("10", "salary per day") / 0

        assert exc_info.value.component == "salary per day"

    def test_quantize_rounds_half_up(self):
        assert Amount("1041.665", "deduction").quantize().value == Decimal("1041.67")
        assert Amount("2.345", "x").quantize().value == Decimal("2.35")
        assert Amount("-2.345", "x").quantize().value == Decimal("-2.35")

    def test_derived_hourly_rate(self):
        """Hourly rate is base / (8 * 22), kept at full precision."""
        assert derive_hourly_rate(Amount("22000000", "base salary")).value == Decimal("125000")
        rate = derive_hourly_rate(Amount("1000", "base salary"))
        assert rate.value == Decimal("1000") / Decimal("176")
        assert rate.quantize().value == Decimal("5.68")

    def test_derived_hourly_rate_follows_calendar(self):
        work_calendar = WorkCalendar(hours_per_day=10, days_per_month=20)
        rate = derive_hourly_rate(Amount("22000000", "base salary"), work_calendar)
        assert rate.value == Decimal("110000")
