from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from featurerun.schemas import AggregateResult, Step, StepOutcome
from featurerun.status import Status

StyleFn = Callable[[str], str]
StyleTable = Mapping[Status | str, StyleFn]
OutputSink = Callable[[str], object]

BOLD = "bold"
LOCATION = "location"


@runtime_checkable
class ReportingListener(Protocol):
    """Consumer of run events.

    Hooks are called by the broadcaster, one at a time and in the order the
    steps complete. A hook may return an awaitable; the broadcaster waits for
    it before delivering the next event.
    """

    def on_step_outcome(self, outcome: StepOutcome) -> Awaitable[None] | None:
        """Receive the outcome of one executed step."""

    def on_run_complete(self, result: AggregateResult) -> Awaitable[None] | None:
        """Receive the aggregate result once, after the last step outcome."""


class SnippetBuilder(Protocol):
    def build(self, step: Step) -> str:
        """Return skeleton code implementing ``step``."""


@dataclass(slots=True, frozen=True)
class ListenerConfig:
    log: OutputSink
    base_dir: Path
    styles: StyleTable
    snippet_builder: SnippetBuilder

    def style(self, key: Status | str) -> StyleFn:
        try:
            return self.styles[key]
        except KeyError as exc:
            raise KeyError(f"No style function configured for {key!r}") from exc
