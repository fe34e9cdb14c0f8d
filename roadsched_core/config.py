"""RoadSched Configuration - Settings, Schedule Files, and Wiring.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from roadsched_core.errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "ROADSCHED_"
STORAGE_TYPES = ("memory", "redis", "sqlite")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SchedulerConfig:
    """Scheduler configuration.

    Attributes:
        name: Scheduler name, used in thread names and logs
        env: Current deployment environment for entry visibility
        check_interval_ms: Delay between ticks
        dispatch_workers: Size of the dispatch worker pool
        dynamic: Initial dynamic mode (schedule add/remove allowed)
        storage: Storage backend type: memory, redis or sqlite
        redis_url: Redis connection URL
        key_prefix: Prefix for every Redis key
        sqlite_path: SQLite database path
        log_level: Logging level name
        schedule_file: YAML schedule to load at startup
    """

    name: str = "scheduler"
    env: Optional[str] = None
    check_interval_ms: int = 5000
    dispatch_workers: int = 4
    dynamic: bool = False
    storage: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "roadsched:"
    sqlite_path: str = ":memory:"
    log_level: str = "INFO"
    schedule_file: Optional[str] = None

    def __post_init__(self):
        if self.storage not in STORAGE_TYPES:
            raise ConfigError(f"Unknown storage type: {self.storage!r}")
        if self.check_interval_ms <= 0:
            raise ConfigError("check_interval_ms must be positive")
        if self.dispatch_workers <= 0:
            raise ConfigError("dispatch_workers must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SchedulerConfig":
        """Build configuration from ``ROADSCHED_*`` environment variables."""
        environ = os.environ if environ is None else environ

        def get(key: str) -> Optional[str]:
            return environ.get(f"{ENV_PREFIX}{key}")

        kwargs: Dict[str, Any] = {}
        for key, attr in (
            ("NAME", "name"),
            ("ENV", "env"),
            ("STORAGE", "storage"),
            ("REDIS_URL", "redis_url"),
            ("KEY_PREFIX", "key_prefix"),
            ("SQLITE_PATH", "sqlite_path"),
            ("LOG_LEVEL", "log_level"),
            ("SCHEDULE_FILE", "schedule_file"),
        ):
            value = get(key)
            if value:
                kwargs[attr] = value

        for key, attr in (
            ("CHECK_INTERVAL_MS", "check_interval_ms"),
            ("DISPATCH_WORKERS", "dispatch_workers"),
        ):
            value = get(key)
            if value:
                try:
                    kwargs[attr] = int(value)
                except ValueError as e:
                    raise ConfigError(f"{ENV_PREFIX}{key} must be an integer") from e

        dynamic = get("DYNAMIC")
        if dynamic:
            kwargs["dynamic"] = _env_bool(dynamic)

        return cls(**kwargs)


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """Configure root logging for a scheduler process."""
    logging.basicConfig(
        level=level if isinstance(level, int) else level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def load_schedule_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML schedule mapping of entry name to entry config.

    Raises:
        ConfigError: if the file is missing, unparsable, or not a mapping
    """
    path = Path(path)
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read schedule file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in schedule file {path}: {e}") from e

    if not isinstance(payload, dict):
        raise ConfigError(f"Schedule file {path} must contain a mapping")

    logger.debug(f"Read {len(payload)} schedule entries from {path}")
    return payload


def create_backend(config: SchedulerConfig):
    """Build the storage backend named by the config."""
    if config.storage == "redis":
        from roadsched_core.storage.redis import RedisBackend
        return RedisBackend(url=config.redis_url, prefix=config.key_prefix)
    if config.storage == "sqlite":
        from roadsched_core.storage.sql import SQLBackend
        return SQLBackend(config.sqlite_path)

    from roadsched_core.storage.memory import MemoryBackend
    return MemoryBackend()


def create_transport(config: SchedulerConfig, backend=None):
    """Build the work queue transport matching the storage backend."""
    if config.storage == "redis":
        from roadsched_core.dispatch.transport import RedisTransport
        from roadsched_core.storage.redis import RedisBackend
        if isinstance(backend, RedisBackend):
            return RedisTransport(backend.client, prefix=config.key_prefix)
        return RedisTransport(
            RedisBackend(url=config.redis_url, prefix=config.key_prefix).client,
            prefix=config.key_prefix,
        )

    from roadsched_core.dispatch.transport import MemoryTransport
    return MemoryTransport()


__all__ = [
    "SchedulerConfig",
    "configure_logging",
    "load_schedule_file",
    "create_backend",
    "create_transport",
]
