from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Sequence
from typing import Any

from featurerun.listener import ReportingListener
from featurerun.schemas import AggregateResult, StepOutcome

logger = logging.getLogger(__name__)


class ListenerTimeoutError(TimeoutError):
    def __init__(self, listener: object, hook: str, timeout: float) -> None:
        super().__init__(
            f"{type(listener).__name__}.{hook} did not finish within {timeout:g}s"
        )
        self.listener = listener
        self.hook = hook
        self.timeout = timeout


class EventBroadcaster:
    """Deliver run events to listeners one at a time, in list order.

    Exceptions raised by a listener are not caught.
    """

    def __init__(
        self,
        *,
        default_timeout: float,
        listeners: Sequence[ReportingListener],
    ) -> None:
        if default_timeout <= 0:
            raise ValueError("default_timeout must be > 0.")
        self.default_timeout = default_timeout
        self.listeners = list(listeners)

    async def broadcast_step_outcome(self, outcome: StepOutcome) -> None:
        logger.debug(
            "broadcast step outcome status=%s step=%s",
            outcome.status,
            outcome.step.name,
        )
        await self._broadcast("on_step_outcome", outcome)

    async def broadcast_run_complete(self, result: AggregateResult) -> None:
        logger.debug("broadcast run complete listeners=%d", len(self.listeners))
        await self._broadcast("on_run_complete", result)

    async def _broadcast(self, hook: str, payload: Any) -> None:
        for listener in self.listeners:
            returned = getattr(listener, hook)(payload)
            if not inspect.isawaitable(returned):
                continue
            try:
                await asyncio.wait_for(returned, timeout=self.default_timeout)
            except asyncio.TimeoutError as exc:
                raise ListenerTimeoutError(listener, hook, self.default_timeout) from exc
