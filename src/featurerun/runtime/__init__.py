"""Run orchestration: event delivery, execution engines, and the run lifecycle."""

from .event_bus import EventBroadcaster, ListenerTimeoutError
from .orchestrator import (
    EngineFactory,
    ExecutionEngine,
    OrchestratorStateError,
    RunOrchestrator,
    RunState,
)
from .replay import RecordedRun, ReplayEngine, load_recorded_run
from .support import SupportCode, SupportCodeLibrary

__all__ = [
    "EngineFactory",
    "EventBroadcaster",
    "ExecutionEngine",
    "ListenerTimeoutError",
    "OrchestratorStateError",
    "RecordedRun",
    "ReplayEngine",
    "RunOrchestrator",
    "RunState",
    "SupportCode",
    "SupportCodeLibrary",
    "load_recorded_run",
]
