"""Pure helpers shared by tools and services."""

from .cron import (
    DAYS,
    ScheduleExpression,
    describe,
    human_to_cron,
    normalize,
    normalize_day_of_week,
    parse_cron,
    parse_schedule,
)

__all__ = [
    "DAYS",
    "ScheduleExpression",
    "describe",
    "human_to_cron",
    "normalize",
    "normalize_day_of_week",
    "parse_cron",
    "parse_schedule",
]
