from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol

from featurerun.config import RunOptions
from featurerun.listener import ReportingListener
from featurerun.schemas import AggregateResult
from featurerun.stack_trace_filter import StackTraceFilter

from .event_bus import EventBroadcaster
from .replay import ReplayEngine
from .support import SupportCode

logger = logging.getLogger(__name__)


class ExecutionEngine(Protocol):
    async def run(self) -> AggregateResult:
        """Run the suite, emitting step outcomes on the event bus."""


EngineFactory = Callable[..., ExecutionEngine]


class RunState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class OrchestratorStateError(RuntimeError):
    pass


class RunOrchestrator:
    """Wire listeners to the execution engine and drive a single run.

    ``features`` is passed to the engine as-is; with the default engine it
    must be a ``RecordedRun``.
    """

    def __init__(
        self,
        *,
        features: Any,
        options: RunOptions | None = None,
        support_code_library: SupportCode,
        engine_factory: EngineFactory = ReplayEngine,
        stack_trace_filter: StackTraceFilter | None = None,
    ) -> None:
        self.features = features
        self.options = options or RunOptions()
        self.support_code_library = support_code_library
        self.engine_factory = engine_factory
        self.stack_trace_filter = stack_trace_filter or StackTraceFilter()
        self.listeners: list[ReportingListener] = []
        self.state = RunState.IDLE

    def attach_listener(self, listener: ReportingListener) -> None:
        if self.state != RunState.IDLE:
            raise OrchestratorStateError(
                f"Cannot attach listeners once the run has started (state={self.state})."
            )
        self.listeners.append(listener)

    async def start(self) -> AggregateResult:
        if self.state != RunState.IDLE:
            raise OrchestratorStateError(
                f"RunOrchestrator.start() is single-use (state={self.state})."
            )
        self.state = RunState.RUNNING

        scope = (
            self.stack_trace_filter
            if self.options.filter_stacktraces
            else contextlib.nullcontext()
        )
        try:
            event_bus, engine = self._wire()
            with scope:
                result = await engine.run()
            await event_bus.broadcast_run_complete(result)
        except Exception:
            self.state = RunState.FAILED
            logger.error("run failed", exc_info=True)
            raise

        self.state = RunState.COMPLETED
        logger.info(
            "run completed steps=%d duration_ms=%d",
            sum(result.step_counts.values()),
            result.duration_millis,
        )
        return result

    def _wire(self) -> tuple[EventBroadcaster, ExecutionEngine]:
        listeners = [*self.listeners, *self.support_code_library.get_listeners()]
        event_bus = EventBroadcaster(
            default_timeout=self.support_code_library.get_default_timeout(),
            listeners=listeners,
        )
        engine = self.engine_factory(
            event_bus=event_bus,
            features=self.features,
            options=self.options,
            support_code_library=self.support_code_library,
        )
        logger.info(
            "run started listeners=%d dry_run=%s fail_fast=%s strict=%s",
            len(listeners),
            self.options.dry_run,
            self.options.fail_fast,
            self.options.strict,
        )
        return event_bus, engine
