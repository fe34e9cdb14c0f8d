"""RoadSched Cadence - Deciding When a Schedule Entry Is Due.

A cadence is either a cron expression or an "every" interval. Interval
cadences may carry fixed offsets which hold back the first fire until
each offset has elapsed since the registry was loaded.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, List, Optional, Sequence, Tuple, Union

from roadsched_core.errors import ConfigError
from roadsched_core.scheduler.cron import CronParser

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([smhdw])")
_DURATION_FULL = re.compile(r"^(?:\d+(?:\.\d+)?\s*[smhdw]\s*)+$")

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def parse_duration(raw: Union[str, int, float]) -> timedelta:
    """Parse a duration such as ``"30s"``, ``"5m"``, ``"1h30m"`` or ``"every 2d"``.

    Bare numbers are seconds.
    """
    if isinstance(raw, bool):
        raise ConfigError(f"Invalid duration: {raw!r}")
    if isinstance(raw, (int, float)):
        seconds = float(raw)
    elif isinstance(raw, str):
        text = raw.strip().lower()
        if text.startswith("every "):
            text = text[6:].strip()
        if re.fullmatch(r"\d+(?:\.\d+)?", text):
            seconds = float(text)
        elif _DURATION_FULL.match(text):
            seconds = sum(
                float(value) * _UNIT_SECONDS[unit]
                for value, unit in _DURATION_PART.findall(text)
            )
        else:
            raise ConfigError(f"Invalid duration: {raw!r}")
    else:
        raise ConfigError(f"Invalid duration: {raw!r}")

    if seconds <= 0:
        raise ConfigError(f"Duration must be positive: {raw!r}")
    return timedelta(seconds=seconds)


def minute_bucket(dt: datetime) -> datetime:
    """Truncate a datetime to the start of its minute."""
    return dt.replace(second=0, microsecond=0)


class CadenceSpec(ABC):
    """Decision procedure for "is this entry due at instant T"."""

    @abstractmethod
    def is_due_at(
        self,
        now: datetime,
        last_fired: Optional[datetime],
        loaded_at: Optional[datetime] = None,
    ) -> bool:
        """Check whether the entry should fire at ``now``."""
        pass

    @abstractmethod
    def next_due(
        self,
        now: datetime,
        last_fired: Optional[datetime],
        loaded_at: Optional[datetime] = None,
    ) -> datetime:
        """Earliest instant at or after ``now`` when the entry becomes due."""
        pass

    @abstractmethod
    def to_config(self) -> Tuple[str, Any]:
        """Return the ``(key, value)`` config pair this cadence came from."""
        pass


class CronCadence(CadenceSpec):
    """Cron cadence with minute granularity."""

    def __init__(self, expression: str):
        self.expression = expression
        self.parser = CronParser(expression)

    def is_due_at(
        self,
        now: datetime,
        last_fired: Optional[datetime],
        loaded_at: Optional[datetime] = None,
    ) -> bool:
        bucket = minute_bucket(now)
        if not self.parser.matches(bucket):
            return False
        return last_fired is None or minute_bucket(last_fired) != bucket

    def next_due(
        self,
        now: datetime,
        last_fired: Optional[datetime],
        loaded_at: Optional[datetime] = None,
    ) -> datetime:
        if self.is_due_at(now, last_fired, loaded_at):
            return minute_bucket(now)
        return self.parser.next_run(now)

    def to_config(self) -> Tuple[str, Any]:
        return "cron", self.expression

    def __repr__(self) -> str:
        return f"CronCadence({self.expression!r})"


class IntervalCadence(CadenceSpec):
    """Fixed interval cadence, optionally gated by offsets."""

    def __init__(
        self,
        interval: timedelta,
        offsets: Sequence[timedelta] = (),
        raw: Any = None,
    ):
        self.interval = interval
        self.offsets: List[timedelta] = list(offsets)
        self.raw = raw

    @property
    def eligibility_delay(self) -> timedelta:
        """Longest offset; the entry may not fire before it has elapsed."""
        return max(self.offsets, default=timedelta(0))

    def _eligible_from(self, loaded_at: Optional[datetime]) -> Optional[datetime]:
        if not self.offsets or loaded_at is None:
            return None
        return loaded_at + self.eligibility_delay

    def is_due_at(
        self,
        now: datetime,
        last_fired: Optional[datetime],
        loaded_at: Optional[datetime] = None,
    ) -> bool:
        eligible_from = self._eligible_from(loaded_at)
        if eligible_from is not None and now < eligible_from:
            return False
        if last_fired is None:
            return True
        return now - last_fired >= self.interval

    def next_due(
        self,
        now: datetime,
        last_fired: Optional[datetime],
        loaded_at: Optional[datetime] = None,
    ) -> datetime:
        candidate = now if last_fired is None else max(now, last_fired + self.interval)
        eligible_from = self._eligible_from(loaded_at)
        if eligible_from is not None:
            candidate = max(candidate, eligible_from)
        return candidate

    def to_config(self) -> Tuple[str, Any]:
        return "every", self.raw

    def __repr__(self) -> str:
        return f"IntervalCadence({self.interval!r}, offsets={self.offsets!r})"


def _parse_every(raw: Any) -> IntervalCadence:
    if isinstance(raw, (list, tuple)):
        if not raw or len(raw) > 2:
            raise ConfigError(f"Invalid every spec: {raw!r}")
        interval = parse_duration(raw[0])
        offsets: List[timedelta] = []
        if len(raw) == 2:
            raw_offsets = raw[1]
            if isinstance(raw_offsets, (str, int, float)):
                raw_offsets = [raw_offsets]
            if not isinstance(raw_offsets, (list, tuple)):
                raise ConfigError(f"Invalid every offsets: {raw_offsets!r}")
            offsets = [parse_duration(o) for o in raw_offsets]
        return IntervalCadence(interval, offsets, raw=list(raw))

    return IntervalCadence(parse_duration(raw), raw=raw)


def parse_cadence(cron: Any = None, every: Any = None) -> CadenceSpec:
    """Parse exactly one of a cron expression or an every value.

    Raises:
        ConfigError: if both or neither are given, or either is malformed
    """
    if cron is not None and every is not None:
        raise ConfigError("Schedule entry cannot have both 'cron' and 'every'")
    if cron is not None:
        return CronCadence(cron)
    if every is not None:
        return _parse_every(every)
    raise ConfigError("Schedule entry needs either 'cron' or 'every'")


__all__ = [
    "CadenceSpec",
    "CronCadence",
    "IntervalCadence",
    "parse_cadence",
    "parse_duration",
    "minute_bucket",
]
