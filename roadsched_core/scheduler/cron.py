"""RoadSched Cron Parser - Cron Expression Parser.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, List, Optional, Tuple

from roadsched_core.errors import ConfigError

_NAME = re.compile(r"[a-z]+")

WEEKDAY_NAMES = {"sun": 0, "mon": 1, "tue": 2, "wed": 3, "thu": 4, "fri": 5, "sat": 6}
MONTH_NAMES = {"jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
               "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12}

# (label, lowest, highest, names)
_FIELDS: Tuple[Tuple[str, int, int, Optional[Dict[str, int]]], ...] = (
    ("minute", 0, 59, None),
    ("hour", 0, 23, None),
    ("day", 1, 31, None),
    ("month", 1, 12, MONTH_NAMES),
    ("weekday", 0, 7, WEEKDAY_NAMES),
)

# Longest day each month can reach, leap years included
_MONTH_LENGTHS = {1: 31, 2: 29, 3: 31, 4: 30, 5: 31, 6: 30,
                  7: 31, 8: 31, 9: 30, 10: 31, 11: 30, 12: 31}

# One 400-year Gregorian cycle
_SEARCH_DAYS = 146097


@dataclass(frozen=True)
class CronSchedule:
    """Allowed values for each cron field.

    Weekdays use cron numbering: 0 is Sunday.
    """

    minutes: FrozenSet[int]
    hours: FrozenSet[int]
    days: FrozenSet[int]
    months: FrozenSet[int]
    weekdays: FrozenSet[int]

    def matches_day(self, dt: datetime) -> bool:
        return (
            dt.month in self.months
            and dt.day in self.days
            and (dt.weekday() + 1) % 7 in self.weekdays
        )

    def matches(self, dt: datetime) -> bool:
        """Check if datetime matches schedule."""
        return dt.minute in self.minutes and dt.hour in self.hours and self.matches_day(dt)


def _resolve_names(term: str, names: Optional[Dict[str, int]], field: str) -> str:
    def replace(match: "re.Match[str]") -> str:
        word = match.group(0)
        if not names or word[:3] not in names:
            raise ConfigError(f"Unknown name {word!r} in cron {field} field")
        return str(names[word[:3]])

    return _NAME.sub(replace, term.lower())


def _expand(
    term: str,
    field: str,
    low: int,
    high: int,
    names: Optional[Dict[str, int]],
) -> range:
    term = _resolve_names(term, names, field)
    base, _, step_text = term.partition("/")

    try:
        step = int(step_text) if step_text else 1
        if base == "*":
            start, end = low, high
        elif "-" in base:
            first, last = base.split("-", 1)
            start, end = int(first), int(last)
        else:
            start = int(base)
            end = high if step_text else start
    except ValueError as e:
        raise ConfigError(f"Invalid cron {field} term {term!r}") from e

    if step <= 0:
        raise ConfigError(f"Cron {field} step must be positive: {term!r}")
    if start > end:
        raise ConfigError(f"Cron {field} range is reversed: {term!r}")
    if start < low or end > high:
        raise ConfigError(f"Cron {field} term {term!r} outside {low}-{high}")
    return range(start, end + 1, step)


class CronParser:
    """Cron expression parser.

    Accepts five fields (minute, hour, day of month, month, day of week)
    or six, where a leading seconds field is ignored. Fields support
    ``*``, lists, ranges, steps and three-letter month and day names.
    Day of week 0 and 7 both mean Sunday. Malformed expressions raise
    ConfigError.
    """

    def __init__(self, expression: str):
        self.expression = expression
        self.schedule = self._parse(expression)

    def _parse(self, expression: str) -> CronSchedule:
        if not isinstance(expression, str):
            raise ConfigError(f"Invalid cron expression: {expression!r}")

        parts = expression.split()
        if len(parts) == 6:
            parts = parts[1:]
        if len(parts) != 5:
            raise ConfigError(
                f"Cron expression needs 5 or 6 fields, got {len(parts)}: {expression!r}"
            )

        allowed: List[FrozenSet[int]] = []
        for text, (field, low, high, names) in zip(parts, _FIELDS):
            values = set()
            for term in text.split(","):
                values.update(_expand(term, field, low, high, names))
            allowed.append(frozenset(values))

        minutes, hours, days, months, weekdays = allowed
        if 7 in weekdays:
            weekdays = (weekdays - {7}) | {0}

        if not any(day <= _MONTH_LENGTHS[month] for month in months for day in days):
            raise ConfigError(f"Cron expression {expression!r} never matches: no such calendar day")

        return CronSchedule(minutes, hours, days, months, weekdays)

    def matches(self, dt: datetime) -> bool:
        """Check if datetime matches schedule."""
        return self.schedule.matches(dt)

    def next_run(self, from_time: Optional[datetime] = None) -> datetime:
        """First matching minute strictly after ``from_time``.

        Raises:
            ConfigError: if the expression can never match (e.g. Feb 30)
        """
        start = (from_time or datetime.now()).replace(second=0, microsecond=0)
        start += timedelta(minutes=1)
        day = start.replace(hour=0, minute=0)

        for _ in range(_SEARCH_DAYS):
            if self.schedule.matches_day(day):
                for hour in sorted(self.schedule.hours):
                    for minute in sorted(self.schedule.minutes):
                        candidate = day.replace(hour=hour, minute=minute)
                        if candidate >= start:
                            return candidate
            day += timedelta(days=1)

        raise ConfigError(f"Cron expression {self.expression!r} never matches")

    def get_next_runs(self, count: int, from_time: Optional[datetime] = None) -> List[datetime]:
        """Get next N run times."""
        runs: List[datetime] = []
        current = from_time
        while len(runs) < count:
            current = self.next_run(current)
            runs.append(current)
        return runs


__all__ = ["CronParser", "CronSchedule", "WEEKDAY_NAMES", "MONTH_NAMES"]
