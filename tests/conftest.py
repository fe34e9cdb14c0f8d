"""Shared fixtures for RoadSched tests."""

from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Any, List, Optional, Set, Tuple

import pytest

from roadsched_core.dispatch.dispatcher import Dispatcher, DispatchReceipt, JobClassRegistry
from roadsched_core.dispatch.transport import MemoryTransport
from roadsched_core.errors import DispatchError
from roadsched_core.protocol.args import JobArgs
from roadsched_core.scheduler.registry import DynamicMode, ScheduleRegistry
from roadsched_core.storage.memory import MemoryBackend
from roadsched_core.storage.sql import SQLBackend


SCHEDULE = {
    "some_ivar_job": {
        "cron": "* * * * *",
        "class": "SomeIvarJob",
        "args": "/tmp",
        "rails_env": "production",
    },
    "some_other_job": {
        "every": ["1m", ["1h"]],
        "queue": "high",
        "custom_job_class": "SomeOtherJob",
        "args": {"b": "blah"},
    },
    "some_fancy_job": {
        "every": ["1m"],
        "queue": "fancy",
        "class": "SomeFancyJob",
        "args": "sparkles",
        "rails_env": "fancy",
    },
    "shared_env_job": {
        "cron": "* * * * *",
        "class": "SomeSharedEnvJob",
        "args": "/tmp",
        "rails_env": "fancy, production",
    },
}

PARAM_SCHEDULE = {
    "job_without_params": {
        "cron": "* * * * *",
        "class": "JobWithoutParams",
        "args": {"host": "localhost"},
        "rails_env": "production",
    },
    "job_with_params": {
        "every": "1m",
        "class": "JobWithParams",
        "args": {"host": "localhost"},
        "parameters": {
            "log_level": {
                "description": "The level of logging",
                "default": "warn",
            },
        },
    },
}


class RecordingDispatcher:
    """Dispatcher fake that records calls instead of pushing jobs."""

    def __init__(self, fail_for: Optional[Set[str]] = None):
        self.calls: List[Tuple[Optional[str], str, JobArgs]] = []
        self.fail_for = set(fail_for or ())
        self.attempts: List[str] = []
        self._lock = threading.Lock()

    def dispatch_now(self, queue: Optional[str], job_class: str, args: Any = None) -> DispatchReceipt:
        with self._lock:
            self.attempts.append(job_class)
        if job_class in self.fail_for:
            raise DispatchError(f"transport down for {job_class}", job_class=job_class)
        job_args = JobArgs.coerce(args)
        with self._lock:
            self.calls.append((queue, job_class, job_args))
        return DispatchReceipt(
            job_id=str(uuid.uuid4()),
            queue=queue or "default",
            job_class=job_class,
            args=job_args,
        )

    def dispatch_entry(self, entry, args: Optional[JobArgs] = None) -> DispatchReceipt:
        return self.dispatch_now(entry.queue, entry.job_class, entry.args if args is None else args)

    @property
    def job_classes(self) -> List[str]:
        return [job_class for _, job_class, _ in self.calls]


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 10, 12, 0, 30)


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture(params=["memory", "sqlite"])
def any_backend(request):
    """Each in-process storage backend."""
    if request.param == "memory":
        yield MemoryBackend()
    else:
        sql = SQLBackend(":memory:")
        yield sql
        sql.close()


@pytest.fixture
def transport() -> MemoryTransport:
    return MemoryTransport()


@pytest.fixture
def job_classes() -> JobClassRegistry:
    registry = JobClassRegistry()
    registry.register("SomeIvarJob", queue="ivar")
    registry.register("SomeQuickJob", queue="quick")
    registry.register("SomeFancyJob", queue="fancy")
    registry.register("SomeOtherJob", queue="other")
    registry.register("SomeSharedEnvJob", queue="shared")
    registry.register("FakePHPClass", queue="php")
    registry.register("Foo::Bar", queue="bar")
    registry.register("JobWithParams", queue="params")
    registry.register("JobWithoutParams", queue="params")
    return registry


@pytest.fixture
def dispatcher(transport, job_classes) -> Dispatcher:
    return Dispatcher(transport, job_classes)


@pytest.fixture
def recorder() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def dynamic() -> DynamicMode:
    return DynamicMode(False)


@pytest.fixture
def registry(backend, dynamic) -> ScheduleRegistry:
    return ScheduleRegistry(backend, dynamic=dynamic)
