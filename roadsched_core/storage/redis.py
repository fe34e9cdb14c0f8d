"""RoadSched Redis Backend - Redis-Based Persistence.

Layout (all keys carry the configured prefix):

- ``schedules``: hash of schedule name -> canonical JSON entry
- ``schedule_order``: list of schedule names in config order
- ``delayed_queue_schedule``: sorted set of timestamp buckets
- ``delayed:<timestamp>``: list of canonical JSON job records

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple

import redis

from roadsched_core.storage.backend import StorageBackend

logger = logging.getLogger(__name__)


class RedisBackend(StorageBackend):
    """Redis-based storage backend.

    Claims and cancels rely on LPOP, LREM and MULTI transactions, which
    Redis executes atomically.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        prefix: str = "roadsched:",
        password: Optional[str] = None,
        url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
    ):
        self.host = host
        self.port = port
        self.db = db
        self.prefix = prefix
        self.password = password
        self.url = url
        self._client = client

    @property
    def client(self) -> redis.Redis:
        """Lazy connect to Redis."""
        if self._client is None:
            if self.url:
                self._client = redis.Redis.from_url(self.url, decode_responses=True)
            else:
                self._client = redis.Redis(
                    host=self.host,
                    port=self.port,
                    db=self.db,
                    password=self.password,
                    decode_responses=True,
                )
            logger.debug(f"Connected Redis backend with prefix {self.prefix!r}")
        return self._client

    def _key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    @property
    def _schedules_key(self) -> str:
        return self._key("schedules")

    @property
    def _order_key(self) -> str:
        return self._key("schedule_order")

    @property
    def _timestamps_key(self) -> str:
        return self._key("delayed_queue_schedule")

    def _bucket_key(self, timestamp: int) -> str:
        return self._key(f"delayed:{int(timestamp)}")

    @staticmethod
    def _range_end(offset: int, limit: Optional[int]) -> int:
        return -1 if limit is None else offset + limit - 1

    # Schedules

    def replace_schedules(self, schedules: Dict[str, str]) -> None:
        pipe = self.client.pipeline(transaction=True)
        pipe.delete(self._schedules_key, self._order_key)
        if schedules:
            pipe.hset(self._schedules_key, mapping=schedules)
            pipe.rpush(self._order_key, *schedules.keys())
        pipe.execute()

    def save_schedule(self, name: str, data: str) -> None:
        def _save(pipe):
            exists = pipe.hexists(self._schedules_key, name)
            pipe.multi()
            pipe.hset(self._schedules_key, name, data)
            if not exists:
                pipe.rpush(self._order_key, name)

        self.client.transaction(_save, self._schedules_key)

    def fetch_schedule(self, name: str) -> Optional[str]:
        return self.client.hget(self._schedules_key, name)

    def delete_schedule(self, name: str) -> bool:
        pipe = self.client.pipeline(transaction=True)
        pipe.hdel(self._schedules_key, name)
        pipe.lrem(self._order_key, 0, name)
        deleted, _ = pipe.execute()
        return deleted > 0

    def all_schedules(self) -> Dict[str, str]:
        names = self.client.lrange(self._order_key, 0, -1)
        if not names:
            return {}
        values = self.client.hmget(self._schedules_key, names)
        return {name: data for name, data in zip(names, values) if data is not None}

    # Delayed jobs

    def add_delayed(self, timestamp: int, record: str) -> None:
        pipe = self.client.pipeline(transaction=True)
        pipe.rpush(self._bucket_key(timestamp), record)
        pipe.zadd(self._timestamps_key, {str(int(timestamp)): int(timestamp)})
        pipe.execute()

    def _clean_up_timestamp(self, timestamp: int) -> None:
        key = self._bucket_key(timestamp)

        def _clean(pipe):
            if pipe.llen(key) == 0:
                pipe.multi()
                pipe.delete(key)
                pipe.zrem(self._timestamps_key, str(int(timestamp)))

        self.client.transaction(_clean, key)

    def peek_delayed(self, offset: int, limit: int) -> List[Tuple[int, str]]:
        result: List[Tuple[int, str]] = []
        if limit <= 0:
            return result
        skip = max(offset, 0)
        for timestamp in self.delayed_timestamps():
            size = self.timestamp_size(timestamp)
            if skip >= size:
                skip -= size
                continue
            wanted = limit - len(result)
            for record in self.timestamp_items(timestamp, skip, wanted):
                result.append((timestamp, record))
            skip = 0
            if len(result) >= limit:
                break
        return result

    def delayed_timestamps(self, offset: int = 0, limit: Optional[int] = None) -> List[int]:
        if limit == 0:
            return []
        members = self.client.zrange(
            self._timestamps_key, offset, self._range_end(offset, limit)
        )
        return [int(m) for m in members]

    def timestamp_items(self, timestamp: int, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        if limit == 0:
            return []
        return self.client.lrange(
            self._bucket_key(timestamp), offset, self._range_end(offset, limit)
        )

    def timestamp_size(self, timestamp: int) -> int:
        return self.client.llen(self._bucket_key(timestamp))

    def count_delayed(self) -> int:
        timestamps = self.delayed_timestamps()
        if not timestamps:
            return 0
        pipe = self.client.pipeline(transaction=False)
        for timestamp in timestamps:
            pipe.llen(self._bucket_key(timestamp))
        return sum(pipe.execute())

    def scan_delayed(self) -> Iterator[Tuple[int, str]]:
        for timestamp in self.delayed_timestamps():
            for record in self.timestamp_items(timestamp):
                yield timestamp, record

    def remove_delayed(self, timestamp: int, record: str) -> bool:
        removed = self.client.lrem(self._bucket_key(timestamp), 1, record)
        if removed:
            self._clean_up_timestamp(timestamp)
        return removed > 0

    def pop_delayed(self, timestamp: int) -> Optional[str]:
        record = self.client.lpop(self._bucket_key(timestamp))
        self._clean_up_timestamp(timestamp)
        return record

    def take_delayed(self, timestamp: int) -> List[str]:
        key = self._bucket_key(timestamp)
        pipe = self.client.pipeline(transaction=True)
        pipe.lrange(key, 0, -1)
        pipe.delete(key)
        pipe.zrem(self._timestamps_key, str(int(timestamp)))
        records, _, _ = pipe.execute()
        return records

    def next_delayed_timestamp(self, at_or_before: int) -> Optional[int]:
        members = self.client.zrangebyscore(
            self._timestamps_key, "-inf", at_or_before, start=0, num=1
        )
        return int(members[0]) if members else None

    def clear_delayed(self) -> int:
        def _clear(pipe):
            timestamps = pipe.zrange(self._timestamps_key, 0, -1)
            keys = [self._bucket_key(int(ts)) for ts in timestamps]
            count = sum(pipe.llen(key) for key in keys)
            pipe.multi()
            if keys:
                pipe.delete(*keys)
            pipe.delete(self._timestamps_key)
            return count

        return self.client.transaction(
            _clear, self._timestamps_key, value_from_callable=True
        )

    def close(self) -> None:
        if self._client:
            self._client.close()


__all__ = ["RedisBackend"]
