"""RoadSched Storage Module - Schedule and Delayed Job Persistence.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from roadsched_core.storage.backend import StorageBackend
from roadsched_core.storage.memory import MemoryBackend
from roadsched_core.storage.redis import RedisBackend
from roadsched_core.storage.sql import SQLBackend

__all__ = ["StorageBackend", "MemoryBackend", "RedisBackend", "SQLBackend"]
