"""RoadSched - Recurring and Delayed Job Scheduling.

RoadSched decides when jobs should run and hands them to a shared work
queue. It fires cron-like recurring schedules, holds one-off jobs until
their due instant, and gives operators a way to inspect, cancel,
force-run and re-trigger what is pending.

Architecture Overview:
┌─────────────────────────────────────────────────────────────────────────┐
│                           RoadSched System                              │
├─────────────────────────────────────────────────────────────────────────┤
│  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐   │
│  │   Config    │  │  Registry   │  │  Scheduler  │  │ Work Queues │   │
│  │             │──▶│             │──▶│             │──▶│             │   │
│  │ • YAML      │  │ • Entries   │  │ • Tick      │  │ • Transport │   │
│  │ • Env vars  │  │ • Env scope │  │ • Cadence   │  │ • Memory    │   │
│  │ • Dynamic   │  │ • Persist   │  │ • Delayed   │  │ • Redis     │   │
│  └─────────────┘  └─────────────┘  └─────────────┘  └─────────────┘   │
├─────────────────────────────────────────────────────────────────────────┤
│  ┌───────────────────────────────────────────────────────────────────┐ │
│  │                       Scheduler Module                            │ │
│  │  • CronParser / CadenceSpec - When an entry is due               │ │
│  │  • ScheduleRegistry - Named entries, dynamic add/remove          │ │
│  │  • CronScheduler - Tick loop with bounded dispatch pool          │ │
│  │  • RequeueService - Manual re-trigger with parameters            │ │
│  └───────────────────────────────────────────────────────────────────┘ │
│  ┌───────────────────────────────────────────────────────────────────┐ │
│  │                         Queue Module                              │ │
│  │  • DelayedQueue - Time-bucketed delayed jobs                     │ │
│  │  • DelayedJob - A job waiting for its instant                    │ │
│  └───────────────────────────────────────────────────────────────────┘ │
│  ┌───────────────────────────────────────────────────────────────────┐ │
│  │                        Dispatch Module                            │ │
│  │  • Dispatcher - Pushes jobs through a transport                  │ │
│  │  • JobClassRegistry - Known job class identifiers                │ │
│  │  • Transport - Memory and Redis work queues                      │ │
│  └───────────────────────────────────────────────────────────────────┘ │
│  ┌───────────────────────────────────────────────────────────────────┐ │
│  │                        Storage Module                             │ │
│  │  • MemoryBackend / SQLBackend / RedisBackend                     │ │
│  └───────────────────────────────────────────────────────────────────┘ │
└─────────────────────────────────────────────────────────────────────────┘

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

# Errors
from roadsched_core.errors import (
    SchedulerError,
    ConfigError,
    NotFoundError,
    SchedulePermissionError,
    ParameterRequiredError,
    DispatchError,
    UnknownJobClassError,
)

# Protocol components
from roadsched_core.protocol.args import JobArgs, Named, Positional

# Scheduler components
from roadsched_core.scheduler.cron import CronParser, CronSchedule
from roadsched_core.scheduler.cadence import CadenceSpec, parse_cadence
from roadsched_core.scheduler.entry import ParameterDef, ScheduleEntry
from roadsched_core.scheduler.registry import DynamicMode, ScheduleRegistry
from roadsched_core.scheduler.requeue import RequeueService
from roadsched_core.scheduler.scheduler import CronScheduler

# Queue components
from roadsched_core.queue.job import DelayedJob
from roadsched_core.queue.delayed import DelayedQueue

# Dispatch components
from roadsched_core.dispatch.dispatcher import (
    Dispatcher,
    DispatchReceipt,
    JobClass,
    JobClassRegistry,
)
from roadsched_core.dispatch.transport import Transport, MemoryTransport, RedisTransport

# Storage components
from roadsched_core.storage.backend import StorageBackend
from roadsched_core.storage.memory import MemoryBackend
from roadsched_core.storage.redis import RedisBackend
from roadsched_core.storage.sql import SQLBackend

# Configuration and facade
from roadsched_core.config import SchedulerConfig, configure_logging, load_schedule_file
from roadsched_core.service import SchedulerService

__version__ = "1.0.0"
__author__ = "BlackRoad OS"
__license__ = "Proprietary"

__all__ = [
    # Version
    "__version__",
    # Errors
    "SchedulerError",
    "ConfigError",
    "NotFoundError",
    "SchedulePermissionError",
    "ParameterRequiredError",
    "DispatchError",
    "UnknownJobClassError",
    # Protocol
    "JobArgs",
    "Named",
    "Positional",
    # Scheduler
    "CronParser",
    "CronSchedule",
    "CadenceSpec",
    "parse_cadence",
    "ParameterDef",
    "ScheduleEntry",
    "DynamicMode",
    "ScheduleRegistry",
    "RequeueService",
    "CronScheduler",
    # Queue
    "DelayedJob",
    "DelayedQueue",
    # Dispatch
    "Dispatcher",
    "DispatchReceipt",
    "JobClass",
    "JobClassRegistry",
    "Transport",
    "MemoryTransport",
    "RedisTransport",
    # Storage
    "StorageBackend",
    "MemoryBackend",
    "RedisBackend",
    "SQLBackend",
    # Config
    "SchedulerConfig",
    "configure_logging",
    "load_schedule_file",
    "SchedulerService",
]
