"""RoadSched Schedule Registry - Named Schedule Entries.

The registry owns the current set of schedule entries. Readers always get
a complete snapshot; ``load`` builds the new set fully before swapping it
in, so a bad config leaves the previous entries untouched.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from roadsched_core.errors import ConfigError, NotFoundError, SchedulePermissionError
from roadsched_core.protocol.args import canonical_dumps
from roadsched_core.scheduler.entry import ScheduleEntry
from roadsched_core.storage.backend import StorageBackend

logger = logging.getLogger(__name__)


class DynamicMode:
    """Runtime toggle allowing schedule mutation.

    Instances are callables so anything else returning a bool can be used
    in their place.
    """

    def __init__(self, enabled: bool = False):
        self._enabled = enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def __call__(self) -> bool:
        return self._enabled

    def __repr__(self) -> str:
        return f"DynamicMode(enabled={self._enabled})"


class ScheduleRegistry:
    """Registry of named schedule entries.

    Features:
    - Atomic reload from config
    - Environment-scoped listing
    - Dynamic-mode-gated add and remove
    - Write-through persistence to a storage backend
    """

    def __init__(
        self,
        backend: StorageBackend,
        dynamic: Optional[Callable[[], bool]] = None,
    ):
        self.backend = backend
        self.dynamic: Callable[[], bool] = dynamic or DynamicMode(False)

        self._entries: Tuple[ScheduleEntry, ...] = ()
        self._loaded_at: Optional[datetime] = None
        self._lock = threading.RLock()

    @property
    def loaded_at(self) -> Optional[datetime]:
        """When the current entry set was loaded."""
        return self._loaded_at

    def is_dynamic(self) -> bool:
        return bool(self.dynamic())

    @staticmethod
    def _build(entries: Mapping[str, Any]) -> Tuple[ScheduleEntry, ...]:
        if not isinstance(entries, Mapping):
            raise ConfigError("Schedule must be a mapping of name to entry config")
        return tuple(ScheduleEntry.from_config(str(name), config) for name, config in entries.items())

    @staticmethod
    def _serialize(entry: ScheduleEntry) -> str:
        try:
            return canonical_dumps(entry.to_config())
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Schedule entry {entry.name!r} cannot be stored: {e}") from e

    def load(
        self,
        entries: Mapping[str, Any],
        now: Optional[datetime] = None,
    ) -> None:
        """Replace the whole entry set.

        Allowed regardless of dynamic mode.

        Raises:
            ConfigError: if any entry is malformed; nothing changes then
        """
        built = self._build(entries)
        serialized = {entry.name: self._serialize(entry) for entry in built}

        with self._lock:
            self.backend.replace_schedules(serialized)
            self._entries = built
            self._loaded_at = now or datetime.now()

        logger.info(f"Loaded {len(built)} schedule entries")

    def reload(self, now: Optional[datetime] = None) -> None:
        """Rebuild the entry set from the persisted store."""
        stored = self.backend.all_schedules()
        try:
            configs = {name: json.loads(data) for name, data in stored.items()}
        except ValueError as e:
            raise ConfigError(f"Corrupt persisted schedule: {e}") from e
        built = self._build(configs)

        with self._lock:
            self._entries = built
            self._loaded_at = now or datetime.now()

        logger.info(f"Reloaded {len(built)} schedule entries from storage")

    def teardown(self) -> None:
        """Drop the in-memory entry set."""
        with self._lock:
            self._entries = ()
            self._loaded_at = None

    def list(self, env: Optional[str] = None) -> List[ScheduleEntry]:
        """Get entries visible in ``env``, in config order."""
        return [entry for entry in self._entries if entry.visible_in(env)]

    def all(self) -> List[ScheduleEntry]:
        """Get every entry regardless of environment."""
        return list(self._entries)

    def get(self, name: str) -> Optional[ScheduleEntry]:
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None

    def fetch(self, name: str) -> ScheduleEntry:
        """Get an entry by name or raise NotFoundError."""
        entry = self.get(name)
        if entry is None:
            raise NotFoundError(name)
        return entry

    def _require_dynamic(self, action: str, name: str) -> None:
        if not self.is_dynamic():
            logger.warning(f"Refused to {action} schedule {name}: not in dynamic mode")
            raise SchedulePermissionError(
                f"Cannot {action} schedule {name!r} when not in dynamic mode"
            )

    def set(self, name: str, config: Union[Mapping[str, Any], ScheduleEntry]) -> ScheduleEntry:
        """Add or replace one entry.

        Raises:
            SchedulePermissionError: if not in dynamic mode
            ConfigError: if the config is malformed
        """
        self._require_dynamic("set", name)
        if isinstance(config, ScheduleEntry):
            entry = ScheduleEntry.from_config(name, config.to_config())
        else:
            entry = ScheduleEntry.from_config(name, config)
        data = self._serialize(entry)

        with self._lock:
            self.backend.save_schedule(name, data)
            entries = list(self._entries)
            for i, existing in enumerate(entries):
                if existing.name == name:
                    entries[i] = entry
                    break
            else:
                entries.append(entry)
            self._entries = tuple(entries)

        logger.info(f"Set schedule {name}")
        return entry

    def remove(self, name: str) -> None:
        """Remove an entry from memory and storage.

        Raises:
            SchedulePermissionError: if not in dynamic mode
            NotFoundError: if no such entry exists
        """
        self._require_dynamic("remove", name)

        with self._lock:
            in_memory = self.get(name) is not None
            stored = self.backend.delete_schedule(name)
            if not in_memory and not stored:
                raise NotFoundError(name)
            self._entries = tuple(e for e in self._entries if e.name != name)

        logger.info(f"Removed schedule {name}")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return any(entry.name == name for entry in self._entries)


__all__ = ["ScheduleRegistry", "DynamicMode"]
