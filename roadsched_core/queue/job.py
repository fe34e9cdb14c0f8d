"""RoadSched Delayed Job - Job Deferred to a Future Instant.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union

from roadsched_core.protocol.args import JobArgs, canonical_dumps

Timestamp = Union[int, float, datetime]


def to_timestamp(value: Timestamp) -> int:
    """Normalise a datetime or epoch number to an integer-second bucket."""
    if isinstance(value, datetime):
        return int(value.timestamp())
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected datetime or epoch seconds, got {value!r}")
    return int(value)


def encode_record(job_class: str, args: Any = None) -> str:
    """Canonical storage record for a delayed job."""
    return canonical_dumps({"class": job_class, "args": JobArgs.coerce(args).to_payload()})


@dataclass(frozen=True)
class DelayedJob:
    """A job waiting in the delayed store.

    Attributes:
        due_at: Epoch-second bucket, or None for a job already queued
        job_class: Job class identifier
        args: Job arguments
        queue: Work queue name when the job is already queued
    """

    due_at: Optional[int]
    job_class: str
    args: JobArgs = field(default_factory=lambda: JobArgs.coerce(None))
    queue: Optional[str] = None

    @property
    def due_datetime(self) -> Optional[datetime]:
        if self.due_at is None:
            return None
        return datetime.fromtimestamp(self.due_at)

    @property
    def is_queued(self) -> bool:
        return self.due_at is None

    def record(self) -> str:
        return encode_record(self.job_class, self.args)

    @classmethod
    def from_record(cls, due_at: int, record: str) -> "DelayedJob":
        data = json.loads(record)
        return cls(
            due_at=int(due_at),
            job_class=data["class"],
            args=JobArgs.from_payload(data.get("args")),
        )

    @classmethod
    def from_queued(cls, queue: str, payload: Dict[str, Any]) -> "DelayedJob":
        return cls(
            due_at=None,
            job_class=str(payload.get("class", "")),
            args=JobArgs.from_payload(payload.get("args")),
            queue=queue,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "class": self.job_class,
            "args": self.args.to_payload(),
        }
        if self.due_at is not None:
            result["timestamp"] = self.due_at
        if self.queue is not None:
            result["queue"] = self.queue
        return result


__all__ = ["DelayedJob", "Timestamp", "to_timestamp", "encode_record"]
