"""RoadSched Service - Operator Facade.

Single entry point for the presentation layer: schedule inspection and
removal, delayed job management, and manual requeue.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional

from roadsched_core.config import (
    SchedulerConfig,
    create_backend,
    create_transport,
    load_schedule_file,
)
from roadsched_core.dispatch.dispatcher import Dispatcher, DispatchReceipt, JobClassRegistry
from roadsched_core.dispatch.transport import Transport
from roadsched_core.errors import NotFoundError, SchedulePermissionError
from roadsched_core.queue.delayed import DelayedQueue
from roadsched_core.queue.job import DelayedJob, Timestamp
from roadsched_core.scheduler.entry import ScheduleEntry
from roadsched_core.scheduler.registry import DynamicMode, ScheduleRegistry
from roadsched_core.scheduler.requeue import RequeueService
from roadsched_core.scheduler.scheduler import CronScheduler
from roadsched_core.storage.backend import StorageBackend

logger = logging.getLogger(__name__)


class SchedulerService:
    """Composes registry, delayed queue, requeue and tick loop."""

    def __init__(
        self,
        backend: StorageBackend,
        dispatcher: Dispatcher,
        transport: Optional[Transport] = None,
        config: Optional[SchedulerConfig] = None,
        dynamic: Optional[Callable[[], bool]] = None,
    ):
        self.config = config or SchedulerConfig()
        self.backend = backend
        self.dispatcher = dispatcher
        self.dynamic = dynamic or DynamicMode(self.config.dynamic)

        self.registry = ScheduleRegistry(backend, dynamic=self.dynamic)
        self.delayed = DelayedQueue(backend, dispatcher, transport=transport)
        self.requeuer = RequeueService(self.registry, dispatcher, env=self.config.env)
        self.scheduler = CronScheduler(
            self.registry, dispatcher, delayed=self.delayed, config=self.config
        )

    @classmethod
    def from_config(
        cls,
        config: SchedulerConfig,
        job_classes: Optional[JobClassRegistry] = None,
    ) -> "SchedulerService":
        """Wire a service from configuration, loading the schedule file if set."""
        backend = create_backend(config)
        transport = create_transport(config, backend)
        dispatcher = Dispatcher(transport, job_classes or JobClassRegistry())
        service = cls(backend, dispatcher, transport=transport, config=config)
        if config.schedule_file:
            service.registry.load(load_schedule_file(config.schedule_file))
        return service

    # Schedules

    def is_dynamic(self) -> bool:
        return bool(self.dynamic())

    def load_schedule(self, entries: Mapping[str, Any]) -> None:
        self.registry.load(entries)

    def list_schedule(self, env: Optional[str] = None) -> List[ScheduleEntry]:
        """Entries visible in ``env`` (defaults to the configured env)."""
        return self.registry.list(env if env is not None else self.config.env)

    def fetch_schedule(self, name: str) -> Optional[ScheduleEntry]:
        return self.registry.get(name)

    def remove_schedule(self, name: str) -> bool:
        """Remove an entry; False when static or unknown."""
        try:
            self.registry.remove(name)
        except (SchedulePermissionError, NotFoundError) as e:
            logger.warning(f"Schedule {name} not removed: {e}")
            return False
        return True

    # Delayed jobs

    def peek_delayed(self, offset: int = 0, limit: int = 10) -> List[DelayedJob]:
        return self.delayed.peek(offset, limit)

    def search_delayed(self, text: str) -> List[DelayedJob]:
        return self.delayed.search(text)

    def cancel_delayed(self, due_at: Timestamp, job_class: str, args: Any = None) -> bool:
        return self.delayed.cancel(due_at, job_class, args)

    def clear_delayed(self) -> int:
        return self.delayed.clear()

    def force_run_now(self, due_at: Timestamp) -> List[DispatchReceipt]:
        return self.delayed.force_run_now(due_at)

    # Requeue

    def requeue(self, name: str) -> DispatchReceipt:
        return self.requeuer.requeue(name)

    def requeue_with_params(self, name: str, params: Optional[Mapping[str, Any]] = None) -> DispatchReceipt:
        return self.requeuer.requeue_with_params(name, params)

    # Lifecycle

    def start(self) -> None:
        self.scheduler.start()

    def stop(self) -> None:
        """Stop ticking; the loaded schedule stays in place for a restart."""
        self.scheduler.stop()

    def close(self) -> None:
        self.stop()
        self.registry.teardown()
        self.backend.close()

    def __enter__(self) -> "SchedulerService":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = ["SchedulerService"]
