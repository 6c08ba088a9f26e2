# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Schedule expressions for publisher upgrade profiles.

Upgrade profiles only support a fixed weekly cadence, so the day and month
fields of the 5-field cron expression must be wildcards and the day of week
is always emitted as uppercase three-letter names:

    normalize("10 0 * * 2")        -> "10 0 * * TUE"
    human_to_cron("tue", "10:00")  -> "10 0 * * TUE"
    parse_schedule("TUE 10:00")    -> "10 0 * * TUE"

All functions here are pure.
"""

import re
from dataclasses import dataclass

from ..errors import FormatError

DAYS = ("SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT")

_FULL_DAY_NAMES = {
    "SUNDAY": "SUN",
    "MONDAY": "MON",
    "TUESDAY": "TUE",
    "WEDNESDAY": "WED",
    "THURSDAY": "THU",
    "FRIDAY": "FRI",
    "SATURDAY": "SAT",
}

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


@dataclass(frozen=True)
class ScheduleExpression:
    """A validated weekly schedule."""

    minute: str
    hour: str
    day: str
    month: str
    day_of_week: str

    def __str__(self) -> str:
        return f"{self.minute} {self.hour} {self.day} {self.month} {self.day_of_week}"


def _validate_number(value: str, name: str, maximum: int) -> str:
    if value == "*":
        return value
    if not value.isdecimal() or int(value) > maximum:
        raise FormatError(
            f"Invalid {name}. Must be '*' or a number between 0 and {maximum}",
            value=value,
        )
    return str(int(value))


def _normalize_day_token(token: str) -> str:
    upper = token.strip().upper()
    if upper.isdecimal() and int(upper) < len(DAYS):
        return DAYS[int(upper)]
    if upper in DAYS:
        return upper
    if upper in _FULL_DAY_NAMES:
        return _FULL_DAY_NAMES[upper]
    raise FormatError("Invalid day of week. Must be 0-6 or SUN-SAT", value=token)


def normalize_day_of_week(value: str) -> str:
    """Map numeric or named days (comma-joined allowed) to canonical names."""
    tokens = [t for t in value.split(",") if t.strip()]
    if not tokens:
        raise FormatError("Invalid day of week. Must be 0-6 or SUN-SAT", value=value)
    days: list[str] = []
    for token in tokens:
        day = _normalize_day_token(token)
        if day not in days:
            days.append(day)
    return ",".join(days)


def parse_cron(expr: str) -> ScheduleExpression:
    """Validate a 5-field expression and return its normalized fields."""
    parts = expr.split() if isinstance(expr, str) else []
    if len(parts) != 5:
        raise FormatError(
            "Invalid cron format. Must have exactly 5 parts: minute hour day month dayOfWeek",
            value=str(expr),
        )
    minute, hour, day, month, day_of_week = parts

    minute = _validate_number(minute, "minute", 59)
    hour = _validate_number(hour, "hour", 23)
    if day != "*":
        raise FormatError("Day must be *", value=day)
    if month != "*":
        raise FormatError("Month must be *", value=month)

    return ScheduleExpression(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=normalize_day_of_week(day_of_week),
    )


def normalize(expr: str) -> str:
    """Return the canonical form of a weekly cron expression.

    Raises:
        FormatError: if the expression is not a fixed weekly cadence
    """
    return str(parse_cron(expr))


def human_to_cron(day: str, time: str) -> str:
    """Convert a day name and "HH:MM" into a canonical cron expression."""
    match = _TIME_RE.match(time.strip()) if isinstance(time, str) else None
    if not match:
        raise FormatError("Invalid time format. Expected: HH:MM", value=str(time))
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23:
        raise FormatError("Hour must be between 0 and 23", value=time)
    if minute > 59:
        raise FormatError("Minute must be between 0 and 59", value=time)

    day_name = day.strip().upper() if isinstance(day, str) else ""
    if day_name not in DAYS:
        raise FormatError("Invalid day format. Must be SUN-SAT", value=str(day))

    return normalize(f"{minute} {hour} * * {day_name}")


def parse_schedule(value: str) -> str:
    """Accept a cron expression or the "DAY HH:MM" shorthand."""
    if not isinstance(value, str):
        raise FormatError('Invalid schedule format. Expected: "DAY HH:MM" or cron format')
    parts = value.split()
    if len(parts) == 5:
        return normalize(value)
    if len(parts) == 2:
        return human_to_cron(parts[0], parts[1])
    raise FormatError(
        'Invalid schedule format. Expected: "DAY HH:MM" or cron format',
        value=value,
    )


def describe(expr: str) -> str:
    """Render a canonical expression as "TUE at 00:10"."""
    schedule = parse_cron(expr)
    hour = schedule.hour if schedule.hour == "*" else f"{int(schedule.hour):02d}"
    minute = schedule.minute if schedule.minute == "*" else f"{int(schedule.minute):02d}"
    return f"{schedule.day_of_week} at {hour}:{minute}"
