"""Tests for duration parsing and elapsed-time formatting."""

import pytest

from cafe_ops.utils.durations import (
    MILLIS_PER_DAY,
    format_elapsed,
    millis_to_minutes,
    parse_period,
    validate_period,
)


class TestParsePeriod:
    @pytest.mark.parametrize(
        "period,expected",
        [
            ("P1D", MILLIS_PER_DAY),
            ("P7D", 7 * MILLIS_PER_DAY),
            ("P2W", 14 * MILLIS_PER_DAY),
            ("P1M", 30 * MILLIS_PER_DAY),
            ("P2M", 60 * MILLIS_PER_DAY),
            ("P1Y", 365 * MILLIS_PER_DAY),
        ],
    )
    def test_supported_periods(self, period, expected):
        assert parse_period(period) == expected

    def test_lowercase_and_whitespace(self):
        assert parse_period(" p30d ") == 30 * MILLIS_PER_DAY

    def test_number_defaults_to_one(self):
        assert parse_period("PW") == 7 * MILLIS_PER_DAY

    @pytest.mark.parametrize("period", ["", None, "7D", "P", "P0D", "PT1H", "P1D2H", "P-1D"])
    def test_invalid_periods(self, period):
        with pytest.raises(ValueError):
            parse_period(period)

    def test_validate_period(self):
        assert validate_period("P30D")
        assert not validate_period("thirty days")


class TestFormatElapsed:
    @pytest.mark.parametrize(
        "millis,expected",
        [
            (0, "00:00:00"),
            (999, "00:00:00"),
            (70_000, "00:01:10"),
            (3_600_000, "01:00:00"),
            (45 * 60_000 + 5_000, "00:45:05"),
            (90_061_000, "25:01:01"),
        ],
    )
    def test_formats(self, millis, expected):
        assert format_elapsed(millis) == expected

    def test_negative_clamped(self):
        assert format_elapsed(-5_000) == "00:00:00"

    def test_millis_to_minutes(self):
        assert millis_to_minutes(90_000) == 1.5
