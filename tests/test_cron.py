# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Tests for upgrade schedule expressions."""

import pytest

from npa_gateway.errors import FormatError, NPAErrorCode
from npa_gateway.utils.cron import (
    describe,
    human_to_cron,
    normalize,
    normalize_day_of_week,
    parse_cron,
    parse_schedule,
)


class TestNormalize:
    """Test normalize()."""

    def test_numeric_day_becomes_name(self):
        assert normalize("10 0 * * 2") == "10 0 * * TUE"

    def test_sunday_is_zero(self):
        assert normalize("0 2 * * 0") == "0 2 * * SUN"

    def test_named_day_uppercased(self):
        assert normalize("0 2 * * sun") == "0 2 * * SUN"

    def test_full_day_name(self):
        assert normalize("0 2 * * Saturday") == "0 2 * * SAT"

    def test_leading_zeros_dropped(self):
        assert normalize("05 03 * * MON") == "5 3 * * MON"

    def test_wildcard_minute_and_hour(self):
        assert normalize("* * * * FRI") == "* * * * FRI"

    def test_comma_list_of_days(self):
        assert normalize("0 1 * * 1,WED,5") == "0 1 * * MON,WED,FRI"

    def test_extra_whitespace(self):
        assert normalize("  10   0 *  * 2 ") == "10 0 * * TUE"

    def test_idempotent(self):
        once = normalize("10 0 * * 2")
        assert normalize(once) == once

    @pytest.mark.parametrize("expr", ["0 2 * *", "0 2 * * SUN extra", ""])
    def test_wrong_part_count(self, expr):
        with pytest.raises(FormatError) as exc_info:
            normalize(expr)
        assert exc_info.value.message == (
            "Invalid cron format. Must have exactly 5 parts: minute hour day month dayOfWeek"
        )

    @pytest.mark.parametrize("minute", ["60", "-1", "x", "1.5"])
    def test_invalid_minute(self, minute):
        with pytest.raises(FormatError) as exc_info:
            normalize(f"{minute} 0 * * SUN")
        assert exc_info.value.message == "Invalid minute. Must be '*' or a number between 0 and 59"

    def test_invalid_hour(self):
        with pytest.raises(FormatError) as exc_info:
            normalize("0 24 * * SUN")
        assert exc_info.value.message == "Invalid hour. Must be '*' or a number between 0 and 23"

    def test_day_must_be_wildcard(self):
        with pytest.raises(FormatError, match="Day must be \\*"):
            normalize("0 2 1 * SUN")

    def test_month_must_be_wildcard(self):
        with pytest.raises(FormatError, match="Month must be \\*"):
            normalize("0 2 * 6 SUN")

    @pytest.mark.parametrize("dow", ["7", "FUNDAY", "*"])
    def test_invalid_day_of_week(self, dow):
        with pytest.raises(FormatError) as exc_info:
            normalize(f"0 2 * * {dow}")
        assert exc_info.value.message == "Invalid day of week. Must be 0-6 or SUN-SAT"

    def test_format_error_code(self):
        with pytest.raises(FormatError) as exc_info:
            normalize("bad")
        assert exc_info.value.code == NPAErrorCode.INVALID_FORMAT
        assert exc_info.value.retryable is False


class TestHumanToCron:
    """Test human_to_cron()."""

    def test_basic(self):
        assert human_to_cron("TUE", "10:00") == "0 10 * * TUE"

    def test_lowercase_day(self):
        assert human_to_cron("tue", "00:10") == "10 0 * * TUE"

    def test_single_digit_hour(self):
        assert human_to_cron("SUN", "2:30") == "30 2 * * SUN"

    @pytest.mark.parametrize("time", ["10", "10:0", "ten:00", "10:00:00"])
    def test_invalid_time_format(self, time):
        with pytest.raises(FormatError) as exc_info:
            human_to_cron("MON", time)
        assert exc_info.value.message == "Invalid time format. Expected: HH:MM"

    def test_hour_out_of_range(self):
        with pytest.raises(FormatError) as exc_info:
            human_to_cron("MON", "24:00")
        assert exc_info.value.message == "Hour must be between 0 and 23"

    def test_minute_out_of_range(self):
        with pytest.raises(FormatError) as exc_info:
            human_to_cron("MON", "10:60")
        assert exc_info.value.message == "Minute must be between 0 and 59"

    @pytest.mark.parametrize("day", ["MONDAY", "2", "XYZ"])
    def test_invalid_day(self, day):
        with pytest.raises(FormatError) as exc_info:
            human_to_cron(day, "10:00")
        assert exc_info.value.message == "Invalid day format. Must be SUN-SAT"

    def test_output_is_normalized(self):
        result = human_to_cron("fri", "23:59")
        assert normalize(result) == result


class TestParseSchedule:
    """Test parse_schedule() dispatch between cron and shorthand."""

    def test_cron(self):
        assert parse_schedule("10 0 * * 2") == "10 0 * * TUE"

    def test_shorthand(self):
        assert parse_schedule("TUE 10:00") == "0 10 * * TUE"

    @pytest.mark.parametrize("value", ["TUE", "TUE at 10:00", "1 2 3"])
    def test_unrecognized(self, value):
        with pytest.raises(FormatError, match="Invalid schedule format"):
            parse_schedule(value)


class TestHelpers:
    """Test parse_cron(), normalize_day_of_week() and describe()."""

    def test_parse_cron_fields(self):
        schedule = parse_cron("10 0 * * 2")
        assert schedule.minute == "10"
        assert schedule.hour == "0"
        assert schedule.day_of_week == "TUE"
        assert str(schedule) == "10 0 * * TUE"

    def test_duplicate_days_collapsed(self):
        assert normalize_day_of_week("1,MON,monday") == "MON"

    def test_describe(self):
        assert describe("10 0 * * 2") == "TUE at 00:10"
