"""Tests for schedule entries and the schedule registry."""

from __future__ import annotations

import json
from datetime import date, timedelta

import pytest

from conftest import PARAM_SCHEDULE, SCHEDULE
from roadsched_core.config import load_schedule_file
from roadsched_core.errors import ConfigError, NotFoundError, SchedulePermissionError
from roadsched_core.protocol.args import Named, Positional
from roadsched_core.scheduler.cadence import CronCadence, IntervalCadence
from roadsched_core.scheduler.entry import ParameterDef, ScheduleEntry
from roadsched_core.scheduler.registry import DynamicMode, ScheduleRegistry


class TestScheduleEntry:
    """Building entries from config."""

    def test_cron_entry(self):
        entry = ScheduleEntry.from_config("some_ivar_job", SCHEDULE["some_ivar_job"])
        assert isinstance(entry.cadence, CronCadence)
        assert entry.job_class == "SomeIvarJob"
        assert entry.args == Positional(["/tmp"])
        assert entry.queue is None
        assert entry.environment_filter == frozenset({"production"})

    def test_custom_job_class_and_offsets(self):
        entry = ScheduleEntry.from_config("some_other_job", SCHEDULE["some_other_job"])
        assert entry.job_class == "SomeOtherJob"
        assert entry.queue == "high"
        assert entry.args == Named({"b": "blah"})
        assert isinstance(entry.cadence, IntervalCadence)
        assert entry.cadence.offsets == [timedelta(hours=1)]
        assert entry.environment_filter == frozenset()

    def test_comma_separated_environments(self):
        entry = ScheduleEntry.from_config("shared_env_job", SCHEDULE["shared_env_job"])
        assert entry.environment_filter == frozenset({"fancy", "production"})

    def test_parameters(self):
        entry = ScheduleEntry.from_config("job_with_params", PARAM_SCHEDULE["job_with_params"])
        assert entry.requires_parameters
        assert entry.parameter_defs == {
            "log_level": ParameterDef(description="The level of logging", default="warn")
        }

    def test_empty_parameters_rejected(self):
        config = dict(PARAM_SCHEDULE["job_with_params"], parameters={})
        with pytest.raises(ConfigError):
            ScheduleEntry.from_config("job_with_params", config)

    def test_missing_class_rejected(self):
        with pytest.raises(ConfigError):
            ScheduleEntry.from_config("broken", {"cron": "* * * * *"})

    def test_both_cadences_rejected(self):
        with pytest.raises(ConfigError, match="broken"):
            ScheduleEntry.from_config("broken", {"cron": "* * * * *", "every": "1m", "class": "X"})

    def test_to_config_round_trips(self):
        for name, config in SCHEDULE.items():
            entry = ScheduleEntry.from_config(name, config)
            rebuilt = ScheduleEntry.from_config(name, entry.to_config())
            assert rebuilt.to_config() == entry.to_config()
            assert rebuilt.environment_filter == entry.environment_filter


class TestRegistryLoad:
    """Loading and listing."""

    def test_list_filters_by_environment(self, registry):
        registry.load(SCHEDULE)
        names = [e.name for e in registry.list("production")]
        assert names == ["some_ivar_job", "some_other_job", "shared_env_job"]

    def test_list_other_environment(self, registry):
        registry.load(SCHEDULE)
        names = [e.name for e in registry.list("fancy")]
        assert names == ["some_other_job", "some_fancy_job", "shared_env_job"]

    def test_list_without_environment_shows_unfiltered_only(self, registry):
        registry.load(SCHEDULE)
        assert [e.name for e in registry.list(None)] == ["some_other_job"]

    def test_all_ignores_environment(self, registry):
        registry.load(SCHEDULE)
        assert len(registry.all()) == 4

    def test_fetch(self, registry):
        registry.load(SCHEDULE)
        assert registry.fetch("some_fancy_job").job_class == "SomeFancyJob"

    def test_fetch_unknown(self, registry):
        registry.load(SCHEDULE)
        with pytest.raises(NotFoundError):
            registry.fetch("nope")
        assert registry.get("nope") is None

    def test_bad_load_keeps_previous_state(self, registry, backend):
        registry.load(SCHEDULE)
        broken = dict(SCHEDULE, broken={"cron": "not a cron", "class": "X"})
        with pytest.raises(ConfigError):
            registry.load(broken)
        assert len(registry) == 4
        assert "broken" not in backend.all_schedules()

    def test_impossible_cron_rejected_at_load(self, registry, backend):
        registry.load(SCHEDULE)
        with pytest.raises(ConfigError, match="feb30"):
            registry.load({"feb30": {"cron": "0 0 30 2 *", "class": "SomeIvarJob"}})
        assert registry.get("feb30") is None
        assert list(backend.all_schedules()) == list(SCHEDULE)

    def test_unencodable_args_rejected_at_load(self, registry, backend):
        registry.load(SCHEDULE)
        with pytest.raises(ConfigError, match="'dated'"):
            registry.load({"dated": {"every": "1m", "class": "X", "args": date(2024, 1, 1)}})
        assert len(registry) == 4
        assert "dated" not in backend.all_schedules()

    def test_yaml_date_args_rejected_at_load(self, registry, tmp_path):
        path = tmp_path / "schedule.yml"
        path.write_text("dated:\n  every: 1m\n  class: X\n  args: 2024-01-01\n")
        with pytest.raises(ConfigError):
            registry.load(load_schedule_file(path))
        assert len(registry) == 0

    def test_load_allowed_when_static(self, registry, dynamic):
        assert not dynamic()
        registry.load(PARAM_SCHEDULE)
        assert "job_with_params" in registry

    def test_load_persists_in_order(self, registry, backend):
        registry.load(SCHEDULE)
        stored = backend.all_schedules()
        assert list(stored) == list(SCHEDULE)
        assert json.loads(stored["some_ivar_job"])["class"] == "SomeIvarJob"

    def test_reload_replaces_entries(self, registry):
        registry.load(SCHEDULE)
        registry.load(PARAM_SCHEDULE)
        assert [e.name for e in registry.all()] == ["job_without_params", "job_with_params"]

    def test_loaded_at_recorded(self, registry, now):
        registry.load(SCHEDULE, now=now)
        assert registry.loaded_at == now

    def test_teardown(self, registry):
        registry.load(SCHEDULE)
        registry.teardown()
        assert registry.all() == []
        assert registry.loaded_at is None


class TestRegistryMutation:
    """Dynamic-mode gated mutation."""

    def test_remove_when_dynamic(self, registry, dynamic, backend):
        registry.load(PARAM_SCHEDULE)
        dynamic.enable()
        registry.remove("job_with_params")
        assert registry.get("job_with_params") is None
        assert backend.fetch_schedule("job_with_params") is None
        assert [e.name for e in registry.list("production")] == ["job_without_params"]

    def test_remove_when_static(self, registry, backend):
        registry.load(PARAM_SCHEDULE)
        with pytest.raises(SchedulePermissionError):
            registry.remove("job_with_params")
        assert registry.fetch("job_with_params")
        assert backend.fetch_schedule("job_with_params") is not None

    def test_permission_error_is_builtin_permission_error(self, registry):
        registry.load(PARAM_SCHEDULE)
        with pytest.raises(PermissionError):
            registry.remove("job_with_params")

    def test_remove_unknown(self, registry, dynamic):
        registry.load(PARAM_SCHEDULE)
        dynamic.enable()
        with pytest.raises(NotFoundError):
            registry.remove("nope")

    def test_dynamic_checked_per_call(self, backend):
        calls = []

        def flag():
            calls.append(True)
            return len(calls) > 1

        registry = ScheduleRegistry(backend, dynamic=flag)
        registry.load(PARAM_SCHEDULE)
        with pytest.raises(SchedulePermissionError):
            registry.remove("job_with_params")
        registry.remove("job_with_params")
        assert len(calls) == 2

    def test_set_appends_when_dynamic(self, registry, dynamic):
        registry.load(PARAM_SCHEDULE)
        dynamic.enable()
        registry.set("late_job", {"every": "5m", "class": "SomeQuickJob"})
        assert [e.name for e in registry.all()][-1] == "late_job"

    def test_set_replaces_in_place(self, registry, dynamic):
        registry.load(PARAM_SCHEDULE)
        dynamic.enable()
        registry.set("job_without_params", {"every": "5m", "class": "SomeQuickJob"})
        assert [e.name for e in registry.all()] == ["job_without_params", "job_with_params"]
        assert registry.fetch("job_without_params").job_class == "SomeQuickJob"

    def test_set_unencodable_args(self, registry, dynamic, backend):
        dynamic.enable()
        with pytest.raises(ConfigError):
            registry.set("dated", {"every": "1m", "class": "X", "args": {"on": date(2024, 1, 1)}})
        assert registry.get("dated") is None
        assert backend.fetch_schedule("dated") is None

    def test_set_when_static(self, registry):
        with pytest.raises(SchedulePermissionError):
            registry.set("late_job", {"every": "5m", "class": "SomeQuickJob"})

    def test_reload_from_store_sees_other_writers(self, backend):
        writer = ScheduleRegistry(backend, dynamic=DynamicMode(True))
        reader = ScheduleRegistry(backend)
        writer.load(PARAM_SCHEDULE)
        writer.set("late_job", {"every": "5m", "class": "SomeQuickJob"})

        reader.reload()
        assert [e.name for e in reader.all()] == ["job_without_params", "job_with_params", "late_job"]
        assert reader.fetch("job_with_params").parameter_defs["log_level"].default == "warn"
