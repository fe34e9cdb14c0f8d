"""RoadSched Dispatch Module - Work Queue Dispatch.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from roadsched_core.dispatch.transport import MemoryTransport, RedisTransport, Transport
from roadsched_core.dispatch.dispatcher import (
    Dispatcher,
    DispatchReceipt,
    JobClass,
    JobClassRegistry,
)

__all__ = [
    "Transport",
    "MemoryTransport",
    "RedisTransport",
    "Dispatcher",
    "DispatchReceipt",
    "JobClass",
    "JobClassRegistry",
]
