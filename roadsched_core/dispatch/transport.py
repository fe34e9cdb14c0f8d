"""RoadSched Transport - Work Queue Transport Interface.

The transport carries dispatched jobs to the workers that execute them.
The scheduler only pushes payloads and, for search, lists what is still
waiting in the work queues.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple

import redis

from roadsched_core.protocol.args import canonical_dumps

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract work queue transport."""

    @abstractmethod
    def push(self, queue: str, payload: Dict[str, Any]) -> None:
        """Push a job payload onto a queue."""
        pass

    @abstractmethod
    def queued_jobs(self) -> Iterator[Tuple[str, Dict[str, Any]]]:
        """Iterate ``(queue, payload)`` for jobs waiting in any queue."""
        pass

    def close(self) -> None:
        """Release transport resources."""
        pass


class MemoryTransport(Transport):
    """In-process work queues."""

    def __init__(self):
        self._queues: Dict[str, Deque[Dict[str, Any]]] = defaultdict(deque)
        self._lock = threading.Lock()

    def push(self, queue: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self._queues[queue].append(payload)

    def pop(self, queue: str) -> Optional[Dict[str, Any]]:
        """Take the oldest job from a queue."""
        with self._lock:
            jobs = self._queues.get(queue)
            return jobs.popleft() if jobs else None

    def size(self, queue: str) -> int:
        with self._lock:
            return len(self._queues.get(queue, ()))

    def queues(self) -> List[str]:
        with self._lock:
            return sorted(name for name, jobs in self._queues.items() if jobs)

    def queued_jobs(self) -> Iterator[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            snapshot = [
                (name, payload)
                for name in sorted(self._queues)
                for payload in self._queues[name]
            ]
        return iter(snapshot)


class RedisTransport(Transport):
    """Redis list-based work queues.

    Jobs are JSON payloads pushed onto ``queue:<name>``; known queue names
    are kept in the ``queues`` set.
    """

    def __init__(self, client: redis.Redis, prefix: str = "roadsched:"):
        self.client = client
        self.prefix = prefix

    def _queue_key(self, queue: str) -> str:
        return f"{self.prefix}queue:{queue}"

    @property
    def _queues_key(self) -> str:
        return f"{self.prefix}queues"

    def push(self, queue: str, payload: Dict[str, Any]) -> None:
        pipe = self.client.pipeline(transaction=True)
        pipe.sadd(self._queues_key, queue)
        pipe.rpush(self._queue_key(queue), canonical_dumps(payload))
        pipe.execute()

    def queued_jobs(self) -> Iterator[Tuple[str, Dict[str, Any]]]:
        for queue in sorted(self.client.smembers(self._queues_key)):
            for raw in self.client.lrange(self._queue_key(queue), 0, -1):
                try:
                    yield queue, json.loads(raw)
                except ValueError:
                    logger.warning(f"Skipping undecodable job in queue {queue}")


__all__ = ["Transport", "MemoryTransport", "RedisTransport"]
