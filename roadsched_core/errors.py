"""RoadSched Errors - Exception Hierarchy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SchedulerError(Exception):
    """Base class for scheduling errors."""


class ConfigError(SchedulerError, ValueError):
    """Malformed schedule configuration."""


class NotFoundError(SchedulerError, KeyError):
    """Unknown schedule entry."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Schedule entry not found: {self.name}"


class SchedulePermissionError(SchedulerError, PermissionError):
    """Registry mutation attempted while not in dynamic mode."""


class ParameterRequiredError(SchedulerError):
    """A schedule entry needs caller-supplied parameters before requeue."""

    def __init__(self, name: str, parameter_defs: Dict[str, Any]):
        super().__init__(f"Schedule entry {name!r} requires parameters")
        self.name = name
        self.parameter_defs = parameter_defs


class DispatchError(SchedulerError):
    """Pushing a job onto the work queue failed."""

    def __init__(self, message: str, job_class: Optional[str] = None):
        super().__init__(message)
        self.job_class = job_class


class UnknownJobClassError(DispatchError):
    """Job class identifier is not registered."""

    def __init__(self, job_class: str):
        super().__init__(f"Unknown job class: {job_class}", job_class=job_class)


__all__ = [
    "SchedulerError",
    "ConfigError",
    "NotFoundError",
    "SchedulePermissionError",
    "ParameterRequiredError",
    "DispatchError",
    "UnknownJobClassError",
]
