from __future__ import annotations

from typing import Any

import pytest

from featurerun.config import RunOptions
from featurerun.runtime import (
    EventBroadcaster,
    OrchestratorStateError,
    RecordedRun,
    RunOrchestrator,
    RunState,
    SupportCodeLibrary,
)
from featurerun.schemas import AggregateResult, Step, StepOutcome
from featurerun.stack_trace_filter import is_filtering
from featurerun.status import Status


class _RecordingListener:
    def __init__(self, name: str, journal: list[tuple[str, Any]]) -> None:
        self.name = name
        self.journal = journal

    def on_step_outcome(self, outcome: StepOutcome) -> None:
        self.journal.append((self.name, outcome.status))

    def on_run_complete(self, result: AggregateResult) -> None:
        self.journal.append((self.name, result))


class _ScriptedEngine:
    """Emits the given outcomes, then resolves with ``result`` or raises ``error``."""

    def __init__(
        self,
        *,
        event_bus: EventBroadcaster,
        outcomes: list[StepOutcome],
        result: AggregateResult | None = None,
        error: Exception | None = None,
    ) -> None:
        self.event_bus = event_bus
        self.outcomes = outcomes
        self.result = result or AggregateResult()
        self.error = error
        self.filtering_during_run: bool | None = None

    async def run(self) -> AggregateResult:
        self.filtering_during_run = is_filtering()
        for outcome in self.outcomes:
            await self.event_bus.broadcast_step_outcome(outcome)
        if self.error is not None:
            raise self.error
        return self.result


def _outcome(status: Status = Status.PASSED) -> StepOutcome:
    return StepOutcome(status=status, step=Step(keyword="Given ", name="x"))


def _factory(captured: dict[str, Any], **engine_kwargs: Any):
    def build(**kwargs: Any) -> _ScriptedEngine:
        captured.update(kwargs)
        engine = _ScriptedEngine(event_bus=kwargs["event_bus"], **engine_kwargs)
        captured["engine"] = engine
        return engine

    return build


@pytest.mark.asyncio
async def test_start_runs_engine_and_notifies_listeners_in_order() -> None:
    journal: list[tuple[str, Any]] = []
    result = AggregateResult(step_counts={Status.PASSED: 2}, duration_millis=7)
    captured: dict[str, Any] = {}
    support = SupportCodeLibrary(
        default_timeout=2.5,
        listeners=[_RecordingListener("support", journal)],
    )
    orchestrator = RunOrchestrator(
        features=object(),
        support_code_library=support,
        engine_factory=_factory(
            captured, outcomes=[_outcome(), _outcome(Status.SKIPPED)], result=result
        ),
    )
    orchestrator.attach_listener(_RecordingListener("first", journal))
    orchestrator.attach_listener(_RecordingListener("second", journal))

    returned = await orchestrator.start()

    assert returned is result
    assert orchestrator.state == RunState.COMPLETED
    assert journal == [
        ("first", Status.PASSED),
        ("second", Status.PASSED),
        ("support", Status.PASSED),
        ("first", Status.SKIPPED),
        ("second", Status.SKIPPED),
        ("support", Status.SKIPPED),
        ("first", result),
        ("second", result),
        ("support", result),
    ]
    assert captured["event_bus"].default_timeout == pytest.approx(2.5)


@pytest.mark.asyncio
async def test_features_and_options_pass_through_unmodified() -> None:
    captured: dict[str, Any] = {}
    features = object()
    options = RunOptions(dry_run=True, fail_fast=True, strict=True)
    support = SupportCodeLibrary()
    orchestrator = RunOrchestrator(
        features=features,
        options=options,
        support_code_library=support,
        engine_factory=_factory(captured, outcomes=[]),
    )

    await orchestrator.start()

    assert captured["features"] is features
    assert captured["options"] is options
    assert captured["support_code_library"] is support


@pytest.mark.asyncio
async def test_stack_trace_filter_scoped_to_engine_run() -> None:
    captured: dict[str, Any] = {}
    orchestrator = RunOrchestrator(
        features=object(),
        options=RunOptions(filter_stacktraces=True),
        support_code_library=SupportCodeLibrary(),
        engine_factory=_factory(captured, outcomes=[_outcome()]),
    )

    await orchestrator.start()

    assert captured["engine"].filtering_during_run is True
    assert not is_filtering()


@pytest.mark.asyncio
async def test_stack_trace_filter_untouched_when_option_disabled() -> None:
    captured: dict[str, Any] = {}
    orchestrator = RunOrchestrator(
        features=object(),
        support_code_library=SupportCodeLibrary(),
        engine_factory=_factory(captured, outcomes=[]),
    )

    await orchestrator.start()

    assert captured["engine"].filtering_during_run is False


@pytest.mark.asyncio
async def test_engine_error_propagates_and_releases_filter() -> None:
    journal: list[tuple[str, Any]] = []
    error = RuntimeError("engine exploded")
    captured: dict[str, Any] = {}
    orchestrator = RunOrchestrator(
        features=object(),
        options=RunOptions(filter_stacktraces=True),
        support_code_library=SupportCodeLibrary(),
        engine_factory=_factory(captured, outcomes=[_outcome()], error=error),
    )
    orchestrator.attach_listener(_RecordingListener("listener", journal))

    with pytest.raises(RuntimeError) as exc_info:
        await orchestrator.start()

    assert exc_info.value is error
    assert captured["engine"].filtering_during_run is True
    assert not is_filtering()
    assert orchestrator.state == RunState.FAILED
    assert journal == [("listener", Status.PASSED)]


@pytest.mark.asyncio
async def test_attach_listener_after_start_is_rejected() -> None:
    orchestrator = RunOrchestrator(
        features=object(),
        support_code_library=SupportCodeLibrary(),
        engine_factory=_factory({}, outcomes=[]),
    )
    await orchestrator.start()

    with pytest.raises(OrchestratorStateError, match="attach"):
        orchestrator.attach_listener(_RecordingListener("late", []))


@pytest.mark.asyncio
async def test_start_is_single_use() -> None:
    orchestrator = RunOrchestrator(
        features=object(),
        support_code_library=SupportCodeLibrary(),
        engine_factory=_factory({}, outcomes=[]),
    )
    await orchestrator.start()

    with pytest.raises(OrchestratorStateError, match="single-use"):
        await orchestrator.start()


@pytest.mark.asyncio
async def test_start_is_rejected_after_failed_run() -> None:
    orchestrator = RunOrchestrator(
        features=object(),
        support_code_library=SupportCodeLibrary(),
        engine_factory=_factory({}, outcomes=[], error=ValueError("bad suite")),
    )
    with pytest.raises(ValueError):
        await orchestrator.start()

    with pytest.raises(OrchestratorStateError):
        await orchestrator.start()


@pytest.mark.asyncio
async def test_default_engine_replays_recorded_run() -> None:
    journal: list[tuple[str, Any]] = []
    recorded = RecordedRun(outcomes=[_outcome(), _outcome(Status.PENDING)])
    orchestrator = RunOrchestrator(
        features=recorded,
        support_code_library=SupportCodeLibrary(),
    )
    orchestrator.attach_listener(_RecordingListener("listener", journal))

    result = await orchestrator.start()

    assert result.step_counts == {Status.PASSED: 1, Status.PENDING: 1}
    assert [entry[1] for entry in journal[:2]] == [Status.PASSED, Status.PENDING]
    assert journal[-1] == ("listener", result)


class _ZeroTimeoutSupport:
    def get_default_timeout(self) -> float:
        return 0.0

    def get_listeners(self) -> list:
        return []


@pytest.mark.asyncio
async def test_engine_construction_error_marks_run_failed(caplog) -> None:
    orchestrator = RunOrchestrator(
        features=object(),
        options=RunOptions(filter_stacktraces=True),
        support_code_library=SupportCodeLibrary(),
    )

    with caplog.at_level("ERROR", logger="featurerun.runtime.orchestrator"):
        with pytest.raises(TypeError, match="RecordedRun"):
            await orchestrator.start()

    assert orchestrator.state == RunState.FAILED
    assert not is_filtering()
    assert "run failed" in caplog.text
    with pytest.raises(OrchestratorStateError):
        await orchestrator.start()


@pytest.mark.asyncio
async def test_event_bus_construction_error_marks_run_failed() -> None:
    orchestrator = RunOrchestrator(
        features=RecordedRun(),
        support_code_library=_ZeroTimeoutSupport(),
    )

    with pytest.raises(ValueError, match="default_timeout"):
        await orchestrator.start()

    assert orchestrator.state == RunState.FAILED
