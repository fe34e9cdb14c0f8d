"""Tests against a live Redis server.

Set ROADSCHED_TEST_REDIS_URL (e.g. ``redis://localhost:6379/15``) to run.
"""

from __future__ import annotations

import os
import uuid

import pytest

from conftest import PARAM_SCHEDULE
from roadsched_core.dispatch.dispatcher import Dispatcher
from roadsched_core.dispatch.transport import RedisTransport
from roadsched_core.queue.delayed import DelayedQueue
from roadsched_core.scheduler.registry import DynamicMode, ScheduleRegistry
from roadsched_core.storage.redis import RedisBackend

REDIS_URL = os.environ.get("ROADSCHED_TEST_REDIS_URL")

pytestmark = pytest.mark.skipif(not REDIS_URL, reason="ROADSCHED_TEST_REDIS_URL not set")


@pytest.fixture
def redis_backend():
    prefix = f"roadsched-test-{uuid.uuid4().hex[:8]}:"
    backend = RedisBackend(url=REDIS_URL, prefix=prefix)
    yield backend
    for key in backend.client.scan_iter(f"{prefix}*"):
        backend.client.delete(key)
    backend.close()


@pytest.fixture
def redis_delayed(redis_backend, job_classes):
    transport = RedisTransport(redis_backend.client, prefix=redis_backend.prefix)
    return DelayedQueue(redis_backend, Dispatcher(transport, job_classes), transport=transport)


class TestRedisSchedules:
    """Persisted schedule entries."""

    def test_load_and_reload(self, redis_backend):
        ScheduleRegistry(redis_backend).load(PARAM_SCHEDULE)
        reader = ScheduleRegistry(redis_backend)
        reader.reload()
        assert [e.name for e in reader.all()] == ["job_without_params", "job_with_params"]

    def test_remove(self, redis_backend):
        registry = ScheduleRegistry(redis_backend, dynamic=DynamicMode(True))
        registry.load(PARAM_SCHEDULE)
        registry.remove("job_with_params")
        assert redis_backend.fetch_schedule("job_with_params") is None
        assert list(redis_backend.all_schedules()) == ["job_without_params"]


class TestRedisDelayed:
    """Delayed jobs in Redis buckets."""

    def test_enqueue_peek_cancel(self, redis_delayed):
        redis_delayed.enqueue_at(2000000000, "SomeIvarJob", ["arg"])
        redis_delayed.enqueue_at(2000000000, "SomeQuickJob")
        redis_delayed.enqueue_at(1900000000, "SomeFancyJob")

        assert [j.job_class for j in redis_delayed.peek(0, 10)] == [
            "SomeFancyJob",
            "SomeIvarJob",
            "SomeQuickJob",
        ]
        assert redis_delayed.cancel(2000000000, "SomeIvarJob", ["arg"])
        assert not redis_delayed.cancel(2000000000, "SomeIvarJob", ["arg"])
        assert redis_delayed.schedule_size() == 2

    def test_poll_pushes_to_work_queue(self, redis_delayed, redis_backend):
        redis_delayed.enqueue_at(1000, "SomeIvarJob", ["late"])
        receipts = redis_delayed.poll(2000)
        assert [r.queue for r in receipts] == ["ivar"]
        assert redis_delayed.count() == 0
        assert [j.job_class for j in redis_delayed.search("ivar")] == ["SomeIvarJob"]
        assert redis_backend.client.llen(f"{redis_backend.prefix}queue:ivar") == 1

    def test_clear(self, redis_delayed):
        redis_delayed.enqueue_at(1000, "A")
        redis_delayed.enqueue_at(1001, "B")
        assert redis_delayed.clear() == 2
        assert redis_delayed.peek(0, 10) == []
