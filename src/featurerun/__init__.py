"""Acceptance test run orchestration and summary reporting."""

from .config import AppConfig, RunOptions, load_config
from .schemas import (
    AggregateResult,
    FailureDetail,
    Scenario,
    SourceLocation,
    Step,
    StepDefinition,
    StepOutcome,
)
from .status import STATUS_REPORT_ORDER, Status

__all__ = [
    "STATUS_REPORT_ORDER",
    "AggregateResult",
    "AppConfig",
    "FailureDetail",
    "RunOptions",
    "Scenario",
    "SourceLocation",
    "Status",
    "Step",
    "StepDefinition",
    "StepOutcome",
    "load_config",
]
