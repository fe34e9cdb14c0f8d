"""RoadSched Delayed Queue - Jobs Scheduled for a Future Instant.

Delayed jobs live in timestamp buckets until they are due. A bucket is an
integer epoch second; jobs sharing a bucket keep insertion order. When a
bucket comes due its jobs are claimed from storage and dispatched onto
their work queues.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, List, Optional, Tuple

from roadsched_core.dispatch.dispatcher import Dispatcher, DispatchReceipt
from roadsched_core.dispatch.transport import Transport
from roadsched_core.errors import DispatchError
from roadsched_core.queue.job import DelayedJob, Timestamp, encode_record, to_timestamp

logger = logging.getLogger(__name__)


class DelayedQueue:
    """Time-ordered store of delayed jobs.

    Features:
    - Insert at an instant or after a delay
    - Global paginated peek in due order
    - Case-insensitive search across delayed and queued jobs
    - Exact-match cancel
    - Forced run of a whole bucket
    - Due-time polling for the scheduler loop
    """

    def __init__(
        self,
        backend,
        dispatcher: Dispatcher,
        transport: Optional[Transport] = None,
    ):
        """Initialize delayed queue.

        Args:
            backend: StorageBackend holding the delayed records
            dispatcher: Dispatcher used when jobs come due
            transport: Transport whose queued jobs are included in search
        """
        self.backend = backend
        self.dispatcher = dispatcher
        self.transport = transport

    @staticmethod
    def _check_window(offset: int, limit: int) -> None:
        if offset < 0 or limit < 0:
            raise ValueError(f"offset and limit must be non-negative, got {offset}, {limit}")

    def enqueue_at(self, due_at: Timestamp, job_class: str, args: Any = None) -> DelayedJob:
        """Schedule a job for a future instant.

        Duplicates are allowed and kept as distinct jobs.
        """
        if not job_class:
            raise ValueError("job_class is required")
        timestamp = to_timestamp(due_at)
        record = encode_record(job_class, args)
        self.backend.add_delayed(timestamp, record)
        logger.debug(f"Delayed {job_class} until {timestamp}")
        return DelayedJob.from_record(timestamp, record)

    def enqueue_in(self, seconds: float, job_class: str, args: Any = None) -> DelayedJob:
        """Schedule a job ``seconds`` from now."""
        return self.enqueue_at(time.time() + seconds, job_class, args)

    def peek(self, offset: int = 0, limit: int = 10) -> List[DelayedJob]:
        """Get up to ``limit`` jobs in due order after skipping ``offset``."""
        self._check_window(offset, limit)
        return [
            DelayedJob.from_record(timestamp, record)
            for timestamp, record in self.backend.peek_delayed(offset, limit)
        ]

    def peek_timestamps(self, offset: int = 0, limit: int = 10) -> List[int]:
        """Get non-empty buckets in ascending order."""
        self._check_window(offset, limit)
        return self.backend.delayed_timestamps(offset, limit)

    def timestamp_peek(self, due_at: Timestamp, offset: int = 0, limit: int = 10) -> List[DelayedJob]:
        """Get jobs in one bucket in insertion order."""
        self._check_window(offset, limit)
        timestamp = to_timestamp(due_at)
        return [
            DelayedJob.from_record(timestamp, record)
            for record in self.backend.timestamp_items(timestamp, offset, limit)
        ]

    def timestamp_size(self, due_at: Timestamp) -> int:
        return self.backend.timestamp_size(to_timestamp(due_at))

    def schedule_size(self) -> int:
        """Number of non-empty buckets."""
        return len(self.backend.delayed_timestamps())

    def count(self) -> int:
        """Number of delayed jobs."""
        return self.backend.count_delayed()

    def search(self, text: str) -> List[DelayedJob]:
        """Find jobs whose class name contains ``text``, ignoring case.

        Delayed jobs come first in due order, followed by jobs already
        waiting in work queues. Values are returned unmodified.
        """
        needle = (text or "").lower()
        results = [
            DelayedJob.from_record(timestamp, record)
            for timestamp, record in self.backend.scan_delayed()
        ]
        results = [job for job in results if needle in job.job_class.lower()]

        if self.transport is not None:
            for queue, payload in self.transport.queued_jobs():
                job = DelayedJob.from_queued(queue, payload)
                if needle in job.job_class.lower():
                    results.append(job)

        return results

    def scheduled_at(self, job_class: str, args: Any = None) -> List[int]:
        """Buckets holding a job with this class and args."""
        record = encode_record(job_class, args)
        timestamps: List[int] = []
        for timestamp, stored in self.backend.scan_delayed():
            if stored == record and (not timestamps or timestamps[-1] != timestamp):
                timestamps.append(timestamp)
        return timestamps

    def cancel(self, due_at: Timestamp, job_class: str, args: Any = None) -> bool:
        """Remove the first job exactly matching the triple.

        Args are compared by canonical encoding; omitting them only matches
        a job stored without args.

        Returns:
            True if a job was removed
        """
        timestamp = to_timestamp(due_at)
        removed = self.backend.remove_delayed(timestamp, encode_record(job_class, args))
        if removed:
            logger.info(f"Cancelled delayed {job_class} at {timestamp}")
        else:
            logger.debug(f"No delayed {job_class} at {timestamp} matched cancel")
        return removed

    def remove_delayed(self, job_class: str, args: Any = None) -> int:
        """Remove every matching job from every bucket."""
        record = encode_record(job_class, args)
        removed = 0
        for timestamp in self.scheduled_at(job_class, args):
            while self.backend.remove_delayed(timestamp, record):
                removed += 1
        if removed:
            logger.info(f"Removed {removed} delayed {job_class} jobs")
        return removed

    def _dispatch_claimed(
        self,
        claimed: List[Tuple[int, str]],
    ) -> List[DispatchReceipt]:
        """Dispatch claimed records once each.

        A record that fails to dispatch has already left the store; it is
        logged with its full record and not retried.
        """
        receipts: List[DispatchReceipt] = []

        for timestamp, record in claimed:
            job = DelayedJob.from_record(timestamp, record)
            try:
                receipts.append(self.dispatcher.dispatch_now(None, job.job_class, job.args))
            except DispatchError as e:
                logger.error(
                    f"Dropped delayed {job.job_class} at {timestamp} after dispatch failure: "
                    f"{e} (record {record})"
                )

        return receipts

    def force_run_now(self, due_at: Timestamp) -> List[DispatchReceipt]:
        """Dispatch every job in a bucket immediately, ignoring its schedule."""
        timestamp = to_timestamp(due_at)
        records = self.backend.take_delayed(timestamp)
        if records:
            logger.info(f"Forcing {len(records)} delayed jobs at {timestamp}")
        return self._dispatch_claimed([(timestamp, record) for record in records])

    def next_due_timestamp(self, now: Optional[Timestamp] = None) -> Optional[int]:
        """Earliest bucket that is due at ``now``."""
        at = to_timestamp(now if now is not None else datetime.now())
        return self.backend.next_delayed_timestamp(at)

    def claim_due(self, now: Optional[Timestamp] = None) -> List[Tuple[int, str]]:
        """Atomically claim every due record, one at a time."""
        at = to_timestamp(now if now is not None else datetime.now())
        claimed: List[Tuple[int, str]] = []
        while True:
            timestamp = self.backend.next_delayed_timestamp(at)
            if timestamp is None:
                break
            record = self.backend.pop_delayed(timestamp)
            if record is not None:
                claimed.append((timestamp, record))
        return claimed

    def poll(self, now: Optional[Timestamp] = None) -> List[DispatchReceipt]:
        """Claim and dispatch every job that is due."""
        claimed = self.claim_due(now)
        if not claimed:
            return []
        logger.debug(f"Dispatching {len(claimed)} due delayed jobs")
        return self._dispatch_claimed(claimed)

    def clear(self) -> int:
        """Remove every delayed job."""
        count = self.backend.clear_delayed()
        logger.info(f"Cleared {count} delayed jobs")
        return count

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"DelayedQueue(jobs={self.count()})"


__all__ = ["DelayedQueue"]
