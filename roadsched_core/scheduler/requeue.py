"""RoadSched Requeue - Manually Re-triggering Schedule Entries.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from roadsched_core.dispatch.dispatcher import Dispatcher, DispatchReceipt
from roadsched_core.errors import NotFoundError, ParameterRequiredError
from roadsched_core.protocol.args import JobArgs, Named, Positional
from roadsched_core.scheduler.entry import ScheduleEntry
from roadsched_core.scheduler.registry import ScheduleRegistry

logger = logging.getLogger(__name__)


def merge_parameters(entry: ScheduleEntry, values: Optional[Mapping[str, Any]]) -> JobArgs:
    """Overlay parameter values onto an entry's base args.

    Each declared parameter takes the supplied value, else its default,
    else an empty string. Undeclared values are ignored. Named args are
    updated by key; positional args gain one trailing mapping holding the
    parameters.
    """
    values = values or {}
    params: Dict[str, Any] = {}
    for name, param in (entry.parameter_defs or {}).items():
        if name in values:
            params[name] = values[name]
        elif param.default is not None:
            params[name] = param.default
        else:
            params[name] = ""

    if isinstance(entry.args, Named):
        return entry.args.merged(params)
    if not params:
        return entry.args
    return Positional(entry.args.to_payload() + [params])


class RequeueService:
    """Re-dispatches schedule entries on operator request."""

    def __init__(
        self,
        registry: ScheduleRegistry,
        dispatcher: Dispatcher,
        env: Optional[str] = None,
    ):
        self.registry = registry
        self.dispatcher = dispatcher
        self.env = env

    def _fetch_visible(self, name: str) -> ScheduleEntry:
        entry = self.registry.fetch(name)
        if not entry.visible_in(self.env):
            logger.warning(f"Refused to requeue {name}: not visible in env {self.env}")
            raise NotFoundError(name)
        return entry

    def requeue(self, name: str) -> DispatchReceipt:
        """Dispatch an entry with its configured args.

        Raises:
            NotFoundError: if the entry does not exist in this env
            ParameterRequiredError: if the entry declares parameters
        """
        entry = self._fetch_visible(name)
        if entry.requires_parameters:
            raise ParameterRequiredError(name, dict(entry.parameter_defs))

        receipt = self.dispatcher.dispatch_entry(entry)
        logger.info(f"Requeued {name} onto {receipt.queue}")
        return receipt

    def requeue_with_params(
        self,
        name: str,
        values: Optional[Mapping[str, Any]] = None,
    ) -> DispatchReceipt:
        """Dispatch an entry with parameter values merged into its args.

        Raises:
            NotFoundError: if the entry does not exist in this env
        """
        entry = self._fetch_visible(name)
        args = merge_parameters(entry, values)
        receipt = self.dispatcher.dispatch_entry(entry, args)
        logger.info(f"Requeued {name} with parameters onto {receipt.queue}")
        return receipt


__all__ = ["RequeueService", "merge_parameters"]
