from __future__ import annotations

import logging
import os
import textwrap
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import assert_never

from featurerun.schemas import (
    AggregateResult,
    Scenario,
    Step,
    StepDefinition,
    StepOutcome,
)
from featurerun.status import STATUS_REPORT_ORDER, Status

from .base import BOLD, LOCATION, ListenerConfig

logger = logging.getLogger(__name__)

AMBIGUOUS_HEADER = "Multiple step definitions match:"
UNDEFINED_HEADER = "Undefined. Implement with the following snippet:"
PENDING_MESSAGE = "Pending"


@dataclass(slots=True, frozen=True)
class Issue:
    message: str
    outcome: StepOutcome


class SummaryReporter:
    """Collects failures and warnings during a run and prints a summary at the end."""

    def __init__(self, config: ListenerConfig) -> None:
        self.config = config
        self.failures: list[Issue] = []
        self.warnings: list[Issue] = []

    def on_step_outcome(self, outcome: StepOutcome) -> None:
        match outcome.status:
            case Status.AMBIGUOUS:
                self.failures.append(Issue(self._ambiguous_message(outcome), outcome))
            case Status.FAILED:
                self.failures.append(Issue(self._failed_message(outcome), outcome))
            case Status.PENDING:
                self.warnings.append(Issue(PENDING_MESSAGE, outcome))
            case Status.UNDEFINED:
                self.warnings.append(Issue(self._undefined_message(outcome), outcome))
            case Status.PASSED | Status.SKIPPED:
                pass
            case _:
                assert_never(outcome.status)

    def on_run_complete(self, result: AggregateResult) -> None:
        logger.debug(
            "rendering summary failures=%d warnings=%d",
            len(self.failures),
            len(self.warnings),
        )
        if self.failures:
            self.log_issues(self.failures, title="Failures")
        if self.warnings:
            self.log_issues(self.warnings, title="Warnings")
        self.config.log(self.count_summary("scenario", result.scenario_counts))
        self.config.log(self.count_summary("step", result.step_counts))
        self.config.log(self.duration(result.duration_millis))

    def log_issues(self, issues: Sequence[Issue], *, title: str) -> None:
        self.config.log(f"{title}:\n\n")
        for number, issue in enumerate(issues, start=1):
            self.config.log(self.render_issue(issue, number=number))

    def render_issue(self, issue: Issue, *, number: int) -> str:
        prefix = f"{number}) "
        width = len(prefix)
        step = issue.outcome.step
        bold = self.config.style(BOLD)
        location = self.config.style(LOCATION)

        if step.scenario is not None:
            header = (
                f"Scenario: {bold(step.scenario.name)}"
                f" - {location(self.format_location(step.scenario))}"
            )
        else:
            header = "Background:"
        lines = [prefix + header]

        step_line = "Step: " + bold(step.keyword + (step.name or ""))
        if step.source_location is not None:
            step_line += " - " + location(self.format_location(step))
        lines.append(indent(step_line, width))

        definition = issue.outcome.matched_definition
        if definition is not None:
            lines.append(
                indent("Step Definition: " + location(self.format_location(definition)), width)
            )

        message_style = self.config.style(issue.outcome.status)
        lines.append(indent("Message:", width))
        lines.append(indent(message_style(issue.message), width + 2))
        return "\n".join(lines) + "\n\n"

    def count_summary(self, label: str, counts: Mapping[Status, int]) -> str:
        total = sum(counts.get(status, 0) for status in Status)
        text = f"{total} {label}" + ("s" if total != 1 else "")
        if total > 0:
            details = [
                self.config.style(status)(f"{counts[status]} {status}")
                for status in STATUS_REPORT_ORDER
                if counts.get(status, 0) > 0
            ]
            text += " (" + ", ".join(details) + ")"
        return text + "\n"

    @staticmethod
    def duration(duration_millis: int) -> str:
        minutes, remaining = divmod(duration_millis, 60_000)
        seconds, millis = divmod(remaining, 1_000)
        return f"{minutes}m{seconds}.{millis:03d}s\n"

    def format_location(self, entity: Scenario | Step | StepDefinition) -> str:
        source = entity.source_location
        if source is None:
            raise ValueError("entity has no source location")
        return f"{self._relative_path(source.file)}:{source.line}"

    def _relative_path(self, file: str) -> str:
        return os.path.relpath(file, self.config.base_dir)

    def _ambiguous_message(self, outcome: StepOutcome) -> str:
        rows = [
            (
                definition.pattern,
                f"{self._relative_path(definition.source_location.file)}"
                f":{definition.source_location.line}",
            )
            for definition in outcome.ambiguous_definitions
        ]
        return AMBIGUOUS_HEADER + "\n" + indent(_render_table(rows), 2)

    @staticmethod
    def _failed_message(outcome: StepOutcome) -> str:
        detail = outcome.failure_detail
        if detail is None:
            raise ValueError("failed outcome has no failure detail")
        return detail.trace or detail.text

    def _undefined_message(self, outcome: StepOutcome) -> str:
        snippet = self.config.snippet_builder.build(outcome.step)
        return UNDEFINED_HEADER + "\n\n" + indent(snippet, 2)


def indent(text: str, spaces: int) -> str:
    return textwrap.indent(text, " " * spaces)


def _render_table(rows: list[tuple[str, str]]) -> str:
    width = max(len(pattern) for pattern, _ in rows)
    return "\n".join(f"{pattern.ljust(width)} - {location}" for pattern, location in rows)
