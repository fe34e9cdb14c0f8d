"""RoadSched Memory Backend - In-Memory Storage.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import bisect
import threading
from typing import Dict, Iterator, List, Optional, Tuple

from roadsched_core.storage.backend import StorageBackend


class MemoryBackend(StorageBackend):
    """In-memory storage backend."""

    def __init__(self):
        self._schedules: Dict[str, str] = {}
        self._buckets: Dict[int, List[str]] = {}
        self._timestamps: List[int] = []
        self._lock = threading.RLock()

    def replace_schedules(self, schedules: Dict[str, str]) -> None:
        with self._lock:
            self._schedules = dict(schedules)

    def save_schedule(self, name: str, data: str) -> None:
        with self._lock:
            self._schedules[name] = data

    def fetch_schedule(self, name: str) -> Optional[str]:
        with self._lock:
            return self._schedules.get(name)

    def delete_schedule(self, name: str) -> bool:
        with self._lock:
            return self._schedules.pop(name, None) is not None

    def all_schedules(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._schedules)

    def add_delayed(self, timestamp: int, record: str) -> None:
        with self._lock:
            bucket = self._buckets.get(timestamp)
            if bucket is None:
                bucket = self._buckets[timestamp] = []
                bisect.insort(self._timestamps, timestamp)
            bucket.append(record)

    def _drop_if_empty(self, timestamp: int) -> None:
        if not self._buckets.get(timestamp):
            self._buckets.pop(timestamp, None)
            index = bisect.bisect_left(self._timestamps, timestamp)
            if index < len(self._timestamps) and self._timestamps[index] == timestamp:
                del self._timestamps[index]

    def peek_delayed(self, offset: int, limit: int) -> List[Tuple[int, str]]:
        with self._lock:
            result: List[Tuple[int, str]] = []
            skip = max(offset, 0)
            for timestamp in self._timestamps:
                if len(result) >= limit:
                    break
                bucket = self._buckets[timestamp]
                if skip >= len(bucket):
                    skip -= len(bucket)
                    continue
                for record in bucket[skip:]:
                    if len(result) >= limit:
                        break
                    result.append((timestamp, record))
                skip = 0
            return result

    def delayed_timestamps(self, offset: int = 0, limit: Optional[int] = None) -> List[int]:
        with self._lock:
            end = None if limit is None else offset + limit
            return self._timestamps[offset:end]

    def timestamp_items(self, timestamp: int, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        with self._lock:
            bucket = self._buckets.get(timestamp, [])
            end = None if limit is None else offset + limit
            return bucket[offset:end]

    def timestamp_size(self, timestamp: int) -> int:
        with self._lock:
            return len(self._buckets.get(timestamp, []))

    def count_delayed(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._buckets.values())

    def scan_delayed(self) -> Iterator[Tuple[int, str]]:
        with self._lock:
            snapshot = [
                (timestamp, record)
                for timestamp in self._timestamps
                for record in self._buckets[timestamp]
            ]
        return iter(snapshot)

    def remove_delayed(self, timestamp: int, record: str) -> bool:
        with self._lock:
            bucket = self._buckets.get(timestamp)
            if not bucket or record not in bucket:
                return False
            bucket.remove(record)
            self._drop_if_empty(timestamp)
            return True

    def pop_delayed(self, timestamp: int) -> Optional[str]:
        with self._lock:
            bucket = self._buckets.get(timestamp)
            if not bucket:
                return None
            record = bucket.pop(0)
            self._drop_if_empty(timestamp)
            return record

    def take_delayed(self, timestamp: int) -> List[str]:
        with self._lock:
            bucket = self._buckets.get(timestamp)
            if not bucket:
                return []
            records = list(bucket)
            bucket.clear()
            self._drop_if_empty(timestamp)
            return records

    def next_delayed_timestamp(self, at_or_before: int) -> Optional[int]:
        with self._lock:
            if self._timestamps and self._timestamps[0] <= at_or_before:
                return self._timestamps[0]
            return None

    def clear_delayed(self) -> int:
        with self._lock:
            count = sum(len(bucket) for bucket in self._buckets.values())
            self._buckets.clear()
            self._timestamps.clear()
            return count


__all__ = ["MemoryBackend"]
