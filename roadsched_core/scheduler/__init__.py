"""RoadSched Scheduler Module - Recurring Job Scheduling.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from roadsched_core.scheduler.cron import CronParser, CronSchedule
from roadsched_core.scheduler.cadence import (
    CadenceSpec,
    CronCadence,
    IntervalCadence,
    parse_cadence,
    parse_duration,
)
from roadsched_core.scheduler.entry import ParameterDef, ScheduleEntry
from roadsched_core.scheduler.registry import DynamicMode, ScheduleRegistry
from roadsched_core.scheduler.requeue import RequeueService, merge_parameters
from roadsched_core.scheduler.scheduler import CronScheduler, EntryState, EntryStatus

__all__ = [
    "CronParser",
    "CronSchedule",
    "CadenceSpec",
    "CronCadence",
    "IntervalCadence",
    "parse_cadence",
    "parse_duration",
    "ParameterDef",
    "ScheduleEntry",
    "DynamicMode",
    "ScheduleRegistry",
    "RequeueService",
    "merge_parameters",
    "CronScheduler",
    "EntryState",
    "EntryStatus",
]
