"""RoadSched Queue Module - Delayed Jobs.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from roadsched_core.queue.job import DelayedJob, to_timestamp
from roadsched_core.queue.delayed import DelayedQueue

__all__ = ["DelayedJob", "DelayedQueue", "to_timestamp"]
