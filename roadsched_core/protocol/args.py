"""RoadSched Job Arguments - Canonical Argument Encoding.

Job arguments are either positional (a list) or named (a mapping). Both
forms share one canonical JSON encoding that is used for display,
persistence, and exact-match comparison when cancelling delayed jobs.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Union


def canonical_dumps(data: Any) -> str:
    """Encode data as compact JSON, keeping mapping order."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class JobArgs:
    """Base for the two argument forms."""

    @staticmethod
    def coerce(raw: Any) -> "JobArgs":
        """Build job arguments from config or caller input.

        ``None`` becomes empty positional args, lists and tuples become
        positional, mappings become named, and any other value becomes a
        single positional argument.
        """
        if isinstance(raw, JobArgs):
            return raw
        if raw is None:
            return Positional([])
        if isinstance(raw, Mapping):
            return Named(dict(raw))
        if isinstance(raw, (list, tuple)):
            return Positional(list(raw))
        return Positional([raw])

    @staticmethod
    def from_payload(payload: Union[List[Any], Dict[str, Any], None]) -> "JobArgs":
        """Rebuild arguments from their decoded JSON form."""
        if isinstance(payload, dict):
            return Named(payload)
        return Positional(list(payload or []))

    @staticmethod
    def from_canonical(text: str) -> "JobArgs":
        return JobArgs.from_payload(json.loads(text))

    def to_payload(self) -> Union[List[Any], Dict[str, Any]]:
        raise NotImplementedError

    def canonical(self) -> str:
        """Deterministic encoding used for equality and display."""
        return canonical_dumps(self.to_payload())

    def __str__(self) -> str:
        return self.canonical()


@dataclass(frozen=True, eq=False)
class Positional(JobArgs):
    """Ordered positional arguments."""

    values: List[Any] = field(default_factory=list)

    def to_payload(self) -> List[Any]:
        return list(self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JobArgs):
            return NotImplemented
        return self.canonical() == other.canonical()

    def __hash__(self) -> int:
        return hash(self.canonical())


@dataclass(frozen=True, eq=False)
class Named(JobArgs):
    """Keyword arguments, insertion ordered."""

    values: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return dict(self.values)

    def merged(self, overrides: Mapping[str, Any]) -> "Named":
        """Return a copy with ``overrides`` applied by key."""
        values = dict(self.values)
        values.update(overrides)
        return Named(values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JobArgs):
            return NotImplemented
        return self.canonical() == other.canonical()

    def __hash__(self) -> int:
        return hash(self.canonical())


__all__ = ["JobArgs", "Positional", "Named", "canonical_dumps"]
