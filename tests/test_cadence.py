"""Tests for cron parsing and cadence evaluation."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from roadsched_core.errors import ConfigError
from roadsched_core.scheduler.cadence import (
    CronCadence,
    IntervalCadence,
    parse_cadence,
    parse_duration,
)
from roadsched_core.scheduler.cron import CronParser


class TestCronParser:
    """Cron expression parsing."""

    def test_every_minute(self):
        parser = CronParser("* * * * *")
        assert parser.matches(datetime(2026, 3, 10, 12, 0))
        assert parser.matches(datetime(2026, 3, 10, 23, 59))

    def test_lists_ranges_and_steps(self):
        parser = CronParser("0,30 9-17/2 * * *")
        assert parser.schedule.minutes == {0, 30}
        assert parser.schedule.hours == {9, 11, 13, 15, 17}

    def test_names(self):
        parser = CronParser("0 9 * jan-mar mon-fri")
        assert parser.schedule.months == {1, 2, 3}
        assert parser.schedule.weekdays == {1, 2, 3, 4, 5}

    def test_weekday_zero_is_sunday(self):
        parser = CronParser("0 0 * * 0")
        assert parser.matches(datetime(2026, 3, 8, 0, 0))  # Sunday
        assert not parser.matches(datetime(2026, 3, 9, 0, 0))  # Monday

    def test_weekday_seven_is_sunday(self):
        assert CronParser("0 0 * * 7").schedule.weekdays == {0}

    def test_six_fields_ignore_seconds(self):
        assert CronParser("30 15 * * * *").schedule.minutes == {15}

    def test_next_run(self):
        parser = CronParser("0 * * * *")
        assert parser.next_run(datetime(2026, 3, 10, 12, 0, 30)) == datetime(2026, 3, 10, 13, 0)

    def test_leap_day_resolves(self):
        parser = CronParser("0 0 29 2 *")
        assert parser.next_run(datetime(2026, 3, 10)) == datetime(2028, 2, 29, 0, 0)

    @pytest.mark.parametrize(
        "expression",
        ["", "* * * *", "61 * * * *", "* 24 * * *", "a b c d e", "*/0 * * * *", "5-1 * * * *", 42],
    )
    def test_malformed(self, expression):
        with pytest.raises(ConfigError):
            CronParser(expression)

    @pytest.mark.parametrize("expression", ["0 0 30 2 *", "0 0 31 4,6,9,11 *", "0 0 30-31 feb *"])
    def test_impossible_calendar_day_rejected(self, expression):
        with pytest.raises(ConfigError, match="never matches"):
            CronParser(expression)


class TestParseDuration:
    """Interval durations."""

    @pytest.mark.parametrize(
        "raw,seconds",
        [
            ("30s", 30),
            ("1m", 60),
            ("every 5m", 300),
            ("1h30m", 5400),
            ("2d", 172800),
            ("1w", 604800),
            ("90", 90),
            (45, 45),
        ],
    )
    def test_valid(self, raw, seconds):
        assert parse_duration(raw) == timedelta(seconds=seconds)

    @pytest.mark.parametrize("raw", ["", "abc", "5x", "0m", -1, None, True])
    def test_invalid(self, raw):
        with pytest.raises(ConfigError):
            parse_duration(raw)


class TestCronCadence:
    """Cron cadences fire once per matching minute."""

    def test_due_on_first_evaluation(self, now):
        assert CronCadence("* * * * *").is_due_at(now, None)

    def test_not_due_twice_in_same_minute(self, now):
        cadence = CronCadence("* * * * *")
        assert not cadence.is_due_at(now + timedelta(seconds=20), now)

    def test_due_in_next_minute(self, now):
        cadence = CronCadence("* * * * *")
        assert cadence.is_due_at(now + timedelta(minutes=1), now)

    def test_not_due_when_fields_mismatch(self, now):
        assert not CronCadence("15 * * * *").is_due_at(now, None)

    def test_next_due(self, now):
        cadence = CronCadence("15 * * * *")
        assert cadence.next_due(now, None) == datetime(2026, 3, 10, 12, 15)


class TestIntervalCadence:
    """Interval cadences."""

    def test_due_when_never_fired(self, now):
        assert IntervalCadence(timedelta(minutes=1)).is_due_at(now, None)

    def test_due_after_interval(self, now):
        cadence = IntervalCadence(timedelta(minutes=1))
        assert not cadence.is_due_at(now + timedelta(seconds=59), now)
        assert cadence.is_due_at(now + timedelta(seconds=60), now)

    def test_offsets_gate_eligibility(self, now):
        cadence = IntervalCadence(timedelta(minutes=1), [timedelta(hours=1)])
        assert not cadence.is_due_at(now + timedelta(minutes=59), None, loaded_at=now)
        assert cadence.is_due_at(now + timedelta(hours=1), None, loaded_at=now)

    def test_every_offset_must_elapse(self, now):
        cadence = IntervalCadence(
            timedelta(minutes=1), [timedelta(minutes=5), timedelta(minutes=30)]
        )
        assert not cadence.is_due_at(now + timedelta(minutes=10), None, loaded_at=now)
        assert cadence.is_due_at(now + timedelta(minutes=30), None, loaded_at=now)

    def test_next_due_respects_floor(self, now):
        cadence = IntervalCadence(timedelta(minutes=1), [timedelta(hours=1)])
        assert cadence.next_due(now, None, loaded_at=now) == now + timedelta(hours=1)


class TestParseCadence:
    """Choosing between cron and every."""

    def test_cron(self):
        assert isinstance(parse_cadence(cron="* * * * *"), CronCadence)

    def test_bare_every(self):
        cadence = parse_cadence(every="1m")
        assert isinstance(cadence, IntervalCadence)
        assert cadence.offsets == []

    def test_single_element_list(self):
        cadence = parse_cadence(every=["1m"])
        assert cadence.interval == timedelta(minutes=1)
        assert cadence.offsets == []

    def test_offsets(self):
        cadence = parse_cadence(every=["1m", ["1h"]])
        assert cadence.offsets == [timedelta(hours=1)]
        assert cadence.to_config() == ("every", ["1m", ["1h"]])

    def test_both_rejected(self):
        with pytest.raises(ConfigError):
            parse_cadence(cron="* * * * *", every="1m")

    def test_neither_rejected(self):
        with pytest.raises(ConfigError):
            parse_cadence()

    @pytest.mark.parametrize("raw", [[], ["1m", ["1h"], "extra"], ["1m", {"first_in": "1h"}]])
    def test_malformed_every(self, raw):
        with pytest.raises(ConfigError):
            parse_cadence(every=raw)
