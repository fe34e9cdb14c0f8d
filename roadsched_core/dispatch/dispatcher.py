"""RoadSched Dispatcher - Pushing Jobs onto Work Queues.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from roadsched_core.dispatch.transport import Transport
from roadsched_core.errors import DispatchError, UnknownJobClassError
from roadsched_core.protocol.args import JobArgs

if TYPE_CHECKING:
    from roadsched_core.scheduler.entry import ScheduleEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobClass:
    """A dispatchable job class.

    Attributes:
        name: Identifier used in schedules and delayed jobs
        queue: Queue used when a dispatch names none
        description: Free text for operators
    """

    name: str
    queue: Optional[str] = None
    description: Optional[str] = None


class JobClassRegistry:
    """Explicit map of job class identifiers to job classes."""

    def __init__(self, job_classes: Optional[List[JobClass]] = None):
        self._classes: Dict[str, JobClass] = {}
        self._lock = threading.Lock()
        for job_class in job_classes or []:
            self.add(job_class)

    def add(self, job_class: JobClass) -> JobClass:
        with self._lock:
            self._classes[job_class.name] = job_class
        return job_class

    def register(
        self,
        name: str,
        queue: Optional[str] = None,
        description: Optional[str] = None,
    ) -> JobClass:
        """Register a job class identifier."""
        return self.add(JobClass(name=name, queue=queue, description=description))

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._classes.pop(name, None) is not None

    def get(self, name: str) -> Optional[JobClass]:
        return self._classes.get(name)

    def resolve(self, name: str) -> JobClass:
        """Get a job class or raise UnknownJobClassError."""
        job_class = self._classes.get(name)
        if job_class is None:
            raise UnknownJobClassError(name)
        return job_class

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._classes)

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def __len__(self) -> int:
        return len(self._classes)


@dataclass(frozen=True)
class DispatchReceipt:
    """Proof that a job was pushed onto a queue."""

    job_id: str
    queue: str
    job_class: str
    args: JobArgs
    dispatched_at: datetime = field(default_factory=datetime.now)


class Dispatcher:
    """Converts job requests into transport pushes.

    There are no retries here; transport failures surface as DispatchError
    and the caller decides whether to log and continue.
    """

    def __init__(self, transport: Transport, job_classes: JobClassRegistry):
        self.transport = transport
        self.job_classes = job_classes

    def dispatch_now(
        self,
        queue: Optional[str],
        job_class: str,
        args: Any = None,
    ) -> DispatchReceipt:
        """Push a job onto a queue.

        Args:
            queue: Destination queue, or None for the job class default
            job_class: Registered job class identifier
            args: Job arguments (anything JobArgs.coerce accepts)

        Returns:
            DispatchReceipt for the pushed job

        Raises:
            UnknownJobClassError: if the job class is not registered
            DispatchError: if no queue can be resolved or the push fails
        """
        resolved = self.job_classes.resolve(job_class)
        target = queue or resolved.queue
        if not target:
            raise DispatchError(f"No queue for job class {job_class}", job_class=job_class)

        job_args = JobArgs.coerce(args)
        receipt = DispatchReceipt(
            job_id=str(uuid.uuid4()),
            queue=target,
            job_class=job_class,
            args=job_args,
        )
        payload = {
            "class": job_class,
            "args": job_args.to_payload(),
            "id": receipt.job_id,
            "enqueued_at": receipt.dispatched_at.timestamp(),
        }

        try:
            self.transport.push(target, payload)
        except Exception as e:
            raise DispatchError(
                f"Failed to push {job_class} onto {target}: {e}", job_class=job_class
            ) from e

        logger.debug(f"Dispatched {job_class} to {target} ({receipt.job_id})")
        return receipt

    def dispatch_entry(
        self,
        entry: "ScheduleEntry",
        args: Optional[JobArgs] = None,
    ) -> DispatchReceipt:
        """Dispatch a schedule entry, optionally with overridden args."""
        return self.dispatch_now(
            entry.queue,
            entry.job_class,
            entry.args if args is None else args,
        )


__all__ = ["Dispatcher", "DispatchReceipt", "JobClass", "JobClassRegistry"]
