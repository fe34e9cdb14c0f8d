"""RoadSched Scheduler - Cron-like Tick Loop.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from roadsched_core.config import SchedulerConfig
from roadsched_core.dispatch.dispatcher import Dispatcher, DispatchReceipt
from roadsched_core.errors import DispatchError
from roadsched_core.queue.delayed import DelayedQueue
from roadsched_core.scheduler.entry import ScheduleEntry
from roadsched_core.scheduler.registry import ScheduleRegistry

logger = logging.getLogger(__name__)


class EntryState(Enum):
    """Per-entry firing state."""

    IDLE = auto()
    DUE = auto()
    DISPATCHED = auto()


@dataclass
class EntryStatus:
    """Firing bookkeeping for one schedule entry."""

    name: str
    state: EntryState = EntryState.IDLE
    last_fired: Optional[datetime] = None
    fire_count: int = 0
    failure_count: int = 0
    last_error: Optional[str] = None


class CronScheduler:
    """Cron-like scheduler for registry entries.

    Each tick evaluates every entry visible in the current environment,
    dispatches the due ones through a bounded worker pool, and then hands
    due delayed jobs to the work queues. A failing entry is logged and
    never stops the rest of the tick.
    """

    def __init__(
        self,
        registry: ScheduleRegistry,
        dispatcher: Dispatcher,
        delayed: Optional[DelayedQueue] = None,
        config: Optional[SchedulerConfig] = None,
    ):
        self.registry = registry
        self.dispatcher = dispatcher
        self.delayed = delayed
        self.config = config or SchedulerConfig()

        self._status: Dict[str, EntryStatus] = {}
        self._status_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._pool: Optional[ThreadPoolExecutor] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        self._tick_count = 0
        self._dispatch_count = 0
        self._failure_count = 0

    @property
    def env(self) -> Optional[str]:
        return self.config.env

    def _get_pool(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=max(1, self.config.dispatch_workers),
                thread_name_prefix=f"Dispatch-{self.config.name}",
            )
        return self._pool

    def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            return

        self._running = True
        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._scheduler_loop,
            daemon=True,
            name=f"Scheduler-{self.config.name}",
        )
        self._thread.start()
        logger.info(f"Scheduler {self.config.name} started in env {self.env}")

    def stop(self, wait: bool = True) -> None:
        """Stop the scheduler."""
        self._running = False
        self._stop_event.set()

        if wait and self._thread:
            self._thread.join(timeout=5.0)
        self._thread = None

        if self._pool is not None:
            self._pool.shutdown(wait=wait)
            self._pool = None

        logger.info(f"Scheduler {self.config.name} stopped")

    @property
    def running(self) -> bool:
        return self._running

    def _scheduler_loop(self) -> None:
        """Main scheduler loop."""
        while self._running and not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Scheduler tick failed")

            self._stop_event.wait(self.config.check_interval_ms / 1000)

    def tick(self, now: Optional[datetime] = None) -> List["Future[DispatchReceipt]"]:
        """Run one evaluation pass.

        Ticks never overlap; a second caller waits for the first.

        Returns:
            Futures for the schedule dispatches submitted in this tick
        """
        with self._tick_lock:
            now = now or datetime.now()
            self._tick_count += 1
            futures = self._check_entries(now)

            if self.delayed is not None:
                try:
                    self.delayed.poll(now)
                except Exception:
                    logger.exception("Failed to process delayed jobs")

            return futures

    def _check_entries(self, now: datetime) -> List["Future[DispatchReceipt]"]:
        entries = self.registry.list(self.env)
        visible = {entry.name for entry in entries}
        loaded_at = self.registry.loaded_at
        futures: List[Future] = []

        with self._status_lock:
            # Forget entries that were removed or reloaded away
            for name in list(self._status):
                if name not in visible:
                    del self._status[name]

        for entry in entries:
            status = self._status_for(entry.name)

            if status.state == EntryState.DISPATCHED:
                status.state = EntryState.IDLE

            try:
                due = entry.cadence.is_due_at(now, status.last_fired, loaded_at)
            except Exception as e:
                logger.error(f"Failed to evaluate schedule {entry.name}: {e}")
                continue

            if not due:
                continue

            status.state = EntryState.DUE
            futures.append(self._fire(entry, status, now))

        return futures

    def _status_for(self, name: str) -> EntryStatus:
        with self._status_lock:
            status = self._status.get(name)
            if status is None:
                status = self._status[name] = EntryStatus(name=name)
            return status

    def _fire(self, entry: ScheduleEntry, status: EntryStatus, now: datetime) -> "Future[DispatchReceipt]":
        status.state = EntryState.DISPATCHED
        status.last_fired = now
        status.fire_count += 1
        logger.debug(f"Firing schedule {entry.name} at {now}")

        future = self._get_pool().submit(self.dispatcher.dispatch_entry, entry)
        future.add_done_callback(lambda f: self._on_dispatched(entry, status, f))
        return future

    def _on_dispatched(self, entry: ScheduleEntry, status: EntryStatus, future: Future) -> None:
        error = future.exception()
        if error is None:
            with self._status_lock:
                self._dispatch_count += 1
            logger.info(f"Queued {entry.job_class} for schedule {entry.name}")
            return

        with self._status_lock:
            self._failure_count += 1
            status.failure_count += 1
            status.last_error = str(error)

        if isinstance(error, DispatchError):
            logger.error(f"Failed to dispatch schedule {entry.name}: {error}")
        else:
            logger.error(
                f"Unexpected error dispatching schedule {entry.name}: {error}",
                exc_info=error,
            )

    def get_status(self, name: str) -> Optional[EntryStatus]:
        """Get firing bookkeeping for an entry."""
        return self._status.get(name)

    def next_due(self, name: str, now: Optional[datetime] = None) -> datetime:
        """Next instant an entry becomes due.

        Raises:
            NotFoundError: if the entry does not exist
        """
        entry = self.registry.fetch(name)
        status = self._status.get(name)
        return entry.cadence.next_due(
            now or datetime.now(),
            status.last_fired if status else None,
            self.registry.loaded_at,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get scheduler statistics."""
        with self._status_lock:
            return {
                "running": self._running,
                "env": self.env,
                "ticks": self._tick_count,
                "entries": len(self.registry.list(self.env)),
                "dispatched": self._dispatch_count,
                "failures": self._failure_count,
            }

    def __enter__(self) -> "CronScheduler":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


__all__ = ["CronScheduler", "EntryState", "EntryStatus"]
