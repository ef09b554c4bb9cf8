from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, ValidationError

from featurerun.config import RunOptions, parse_yaml_or_json
from featurerun.schemas import (
    AggregateResult,
    DTOBase,
    Scenario,
    StepOutcome,
    count_statuses,
)
from featurerun.stack_trace_filter import filter_trace_text, is_filtering
from featurerun.status import FAILURE_STATUSES, Status, most_severe

from .event_bus import EventBroadcaster
from .support import SupportCode

logger = logging.getLogger(__name__)

_DRY_RUN_SKIPPED = frozenset({Status.PASSED, Status.FAILED, Status.PENDING})


class RecordedRun(DTOBase):
    """Step outcomes captured from an earlier run, in completion order."""

    outcomes: list[StepOutcome] = Field(default_factory=list)


def load_recorded_run(path: str | Path) -> RecordedRun:
    raw = Path(path).read_text(encoding="utf-8")
    payload = parse_yaml_or_json(raw)
    try:
        return RecordedRun.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid recorded run: {exc}") from exc


class ReplayEngine:
    """Execution engine that re-emits a recorded run through the event bus.

    A scenario's status is the most severe status among its own steps.
    Background steps (``step.scenario is None``) count toward the step totals
    only, so a failing background step followed by skipped scenario steps
    reports that scenario as skipped.

    While stack trace filtering is on, recorded failure traces are re-emitted
    without framework frames.
    """

    def __init__(
        self,
        *,
        event_bus: EventBroadcaster,
        features: RecordedRun,
        options: RunOptions,
        support_code_library: SupportCode | None = None,
    ) -> None:
        if not isinstance(features, RecordedRun):
            raise TypeError(
                f"ReplayEngine expects a RecordedRun, got {type(features).__name__}"
            )
        self.event_bus = event_bus
        self.features = features
        self.options = options
        self.support_code_library = support_code_library

    async def run(self) -> AggregateResult:
        step_statuses: list[Status] = []
        scenario_statuses: dict[Scenario, list[Status]] = {}
        duration_millis = 0
        halted = False

        for recorded in self.features.outcomes:
            outcome = self._effective_outcome(recorded, halted=halted)
            await self.event_bus.broadcast_step_outcome(outcome)

            step_statuses.append(outcome.status)
            duration_millis += outcome.duration_millis
            scenario = outcome.step.scenario
            if scenario is not None:
                scenario_statuses.setdefault(scenario, []).append(outcome.status)

            if self.options.fail_fast and not halted and outcome.status in FAILURE_STATUSES:
                logger.info("fail fast: skipping steps after %s", outcome.status)
                halted = True

        result = AggregateResult(
            scenario_counts=count_statuses(
                most_severe(statuses) for statuses in scenario_statuses.values()
            ),
            step_counts=count_statuses(step_statuses),
            duration_millis=duration_millis,
        )
        logger.info(
            "replayed scenarios=%d steps=%d duration_ms=%d",
            len(scenario_statuses),
            len(step_statuses),
            duration_millis,
        )
        return result

    def _effective_outcome(self, outcome: StepOutcome, *, halted: bool) -> StepOutcome:
        if halted or (self.options.dry_run and outcome.status in _DRY_RUN_SKIPPED):
            return outcome.model_copy(
                update={
                    "status": Status.SKIPPED,
                    "failure_detail": None,
                    "ambiguous_definitions": [],
                    "duration_millis": 0,
                }
            )
        detail = outcome.failure_detail
        if detail is not None and detail.trace and is_filtering():
            trace = filter_trace_text(detail.trace)
            return outcome.model_copy(
                update={"failure_detail": detail.model_copy(update={"trace": trace})}
            )
        return outcome
