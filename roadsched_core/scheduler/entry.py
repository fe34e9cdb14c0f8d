"""RoadSched Schedule Entry - Recurring Job Definition.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from roadsched_core.errors import ConfigError
from roadsched_core.protocol.args import JobArgs
from roadsched_core.scheduler.cadence import CadenceSpec, parse_cadence


@dataclass(frozen=True)
class ParameterDef:
    """A parameter the operator must supply when requeueing an entry."""

    description: str = ""
    default: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"description": self.description, "default": self.default}


def _parse_environments(raw: Any) -> FrozenSet[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        names: Iterable[str] = raw.split(",")
    elif isinstance(raw, (list, tuple, set, frozenset)):
        names = (str(n) for n in raw)
    else:
        raise ConfigError(f"Invalid environment filter: {raw!r}")
    return frozenset(n.strip() for n in names if n.strip())


def _parse_parameters(name: str, raw: Any) -> Optional[Dict[str, ParameterDef]]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping) or not raw:
        raise ConfigError(f"Schedule entry {name!r}: 'parameters' must be a non-empty mapping")

    params: Dict[str, ParameterDef] = {}
    for param_name, param_config in raw.items():
        param_config = param_config or {}
        if not isinstance(param_config, Mapping):
            raise ConfigError(
                f"Schedule entry {name!r}: parameter {param_name!r} must be a mapping"
            )
        params[str(param_name)] = ParameterDef(
            description=str(param_config.get("description") or ""),
            default=param_config.get("default"),
        )
    return params


@dataclass(frozen=True)
class ScheduleEntry:
    """A named recurring job.

    Attributes:
        name: Unique entry name
        cadence: When the entry fires
        job_class: Job class identifier to dispatch
        args: Arguments passed to the job
        queue: Destination queue, or None for the job class default
        environment_filter: Environments the entry is visible in (empty = all)
        parameter_defs: Parameters required for a manual requeue
        description: Free text for operators
    """

    name: str
    cadence: CadenceSpec
    job_class: str
    args: JobArgs = field(default_factory=lambda: JobArgs.coerce(None))
    queue: Optional[str] = None
    environment_filter: FrozenSet[str] = frozenset()
    parameter_defs: Optional[Dict[str, ParameterDef]] = None
    description: Optional[str] = None

    @property
    def requires_parameters(self) -> bool:
        return bool(self.parameter_defs)

    def visible_in(self, env: Optional[str]) -> bool:
        """Check whether the entry is visible in an environment."""
        return not self.environment_filter or env in self.environment_filter

    @classmethod
    def from_config(cls, name: str, config: Mapping[str, Any]) -> "ScheduleEntry":
        """Build an entry from its config mapping.

        Raises:
            ConfigError: if the mapping is malformed
        """
        if not name:
            raise ConfigError("Schedule entry name is required")
        if not isinstance(config, Mapping):
            raise ConfigError(f"Schedule entry {name!r} must be a mapping")

        job_class = config.get("class") or config.get("custom_job_class")
        if not job_class:
            raise ConfigError(f"Schedule entry {name!r} has no job class")

        try:
            cadence = parse_cadence(config.get("cron"), config.get("every"))
        except ConfigError as e:
            raise ConfigError(f"Schedule entry {name!r}: {e}") from e

        env = config.get("rails_env", config.get("env"))

        return cls(
            name=name,
            cadence=cadence,
            job_class=str(job_class),
            args=JobArgs.coerce(config.get("args")),
            queue=config.get("queue"),
            environment_filter=_parse_environments(env),
            parameter_defs=_parse_parameters(name, config.get("parameters")),
            description=config.get("description"),
        )

    def to_config(self) -> Dict[str, Any]:
        """Return the normalised config mapping for this entry."""
        key, value = self.cadence.to_config()
        config: Dict[str, Any] = {key: value, "class": self.job_class}
        if self.queue:
            config["queue"] = self.queue
        config["args"] = self.args.to_payload()
        if self.environment_filter:
            config["rails_env"] = ", ".join(sorted(self.environment_filter))
        if self.parameter_defs:
            config["parameters"] = {
                param_name: param.to_dict()
                for param_name, param in self.parameter_defs.items()
            }
        if self.description:
            config["description"] = self.description
        return config


__all__ = ["ScheduleEntry", "ParameterDef"]
