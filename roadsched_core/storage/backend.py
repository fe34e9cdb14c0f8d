"""RoadSched Storage Backend - Abstract Storage Interface.

A backend persists two things: schedule definitions keyed by name, and
delayed job records grouped into integer-second timestamp buckets.
Records are canonical JSON strings; the backend compares them byte for
byte and never decodes them.

Every mutating delayed-store operation is atomic with respect to the
others, so a claim and a cancel of the same record have one winner.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Optional, Tuple


class StorageBackend(ABC):
    """Abstract storage backend for schedules and delayed jobs."""

    # Schedules

    @abstractmethod
    def replace_schedules(self, schedules: Dict[str, str]) -> None:
        """Atomically replace every stored schedule, keeping order."""
        pass

    @abstractmethod
    def save_schedule(self, name: str, data: str) -> None:
        """Store one schedule, replacing in place or appending."""
        pass

    @abstractmethod
    def fetch_schedule(self, name: str) -> Optional[str]:
        """Get a stored schedule by name."""
        pass

    @abstractmethod
    def delete_schedule(self, name: str) -> bool:
        """Delete a stored schedule."""
        pass

    @abstractmethod
    def all_schedules(self) -> Dict[str, str]:
        """Get every stored schedule in order."""
        pass

    # Delayed jobs

    @abstractmethod
    def add_delayed(self, timestamp: int, record: str) -> None:
        """Append a record to a timestamp bucket."""
        pass

    @abstractmethod
    def peek_delayed(self, offset: int, limit: int) -> List[Tuple[int, str]]:
        """Get records in (timestamp, insertion) order, globally paginated."""
        pass

    @abstractmethod
    def delayed_timestamps(self, offset: int = 0, limit: Optional[int] = None) -> List[int]:
        """Get non-empty timestamp buckets in ascending order."""
        pass

    @abstractmethod
    def timestamp_items(self, timestamp: int, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        """Get records in one bucket in insertion order."""
        pass

    @abstractmethod
    def timestamp_size(self, timestamp: int) -> int:
        """Count records in one bucket."""
        pass

    @abstractmethod
    def count_delayed(self) -> int:
        """Count all delayed records."""
        pass

    @abstractmethod
    def scan_delayed(self) -> Iterator[Tuple[int, str]]:
        """Iterate every record in order."""
        pass

    @abstractmethod
    def remove_delayed(self, timestamp: int, record: str) -> bool:
        """Remove the first matching record from a bucket."""
        pass

    @abstractmethod
    def pop_delayed(self, timestamp: int) -> Optional[str]:
        """Claim and remove the oldest record in a bucket."""
        pass

    @abstractmethod
    def take_delayed(self, timestamp: int) -> List[str]:
        """Claim and remove every record in a bucket."""
        pass

    @abstractmethod
    def next_delayed_timestamp(self, at_or_before: int) -> Optional[int]:
        """Get the earliest bucket not later than ``at_or_before``."""
        pass

    @abstractmethod
    def clear_delayed(self) -> int:
        """Remove every delayed record."""
        pass

    def close(self) -> None:
        """Close the backend connection."""
        pass


__all__ = ["StorageBackend"]
