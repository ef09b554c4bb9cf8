from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from featurerun.stack_trace_filter import format_failure_trace
from featurerun.status import FAILURE_STATUSES, WARNING_STATUSES, Status

TModel = TypeVar("TModel", bound=BaseModel)


class DTOBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class SourceLocation(DTOBase):
    file: str
    line: int = Field(ge=1)

    @field_validator("file")
    @classmethod
    def validate_file(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("source_location.file must not be empty")
        return normalized


class Scenario(DTOBase):
    name: str
    source_location: SourceLocation


class StepDefinition(DTOBase):
    pattern: str
    source_location: SourceLocation


class Step(DTOBase):
    keyword: str
    name: str | None = None
    source_location: SourceLocation | None = None
    # None means the step belongs to a background block.
    scenario: Scenario | None = None


class FailureDetail(DTOBase):
    text: str
    trace: str | None = None

    @field_validator("text")
    @classmethod
    def validate_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("failure_detail.text must not be empty")
        return value

    @classmethod
    def from_exception(cls, exc: BaseException) -> FailureDetail:
        text = f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
        return cls(text=text, trace=format_failure_trace(exc))


class StepOutcome(DTOBase):
    status: Status
    step: Step
    matched_definition: StepDefinition | None = None
    ambiguous_definitions: list[StepDefinition] = Field(default_factory=list)
    failure_detail: FailureDetail | None = None
    duration_millis: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_status_fields(self) -> StepOutcome:
        if self.status == Status.FAILED and self.failure_detail is None:
            raise ValueError("failed outcomes require failure_detail")
        if self.status != Status.FAILED and self.failure_detail is not None:
            raise ValueError("failure_detail is only allowed on failed outcomes")
        if self.status == Status.AMBIGUOUS and not self.ambiguous_definitions:
            raise ValueError("ambiguous outcomes require ambiguous_definitions")
        if self.status != Status.AMBIGUOUS and self.ambiguous_definitions:
            raise ValueError("ambiguous_definitions is only allowed on ambiguous outcomes")
        return self


class AggregateResult(DTOBase):
    scenario_counts: dict[Status, int] = Field(default_factory=dict)
    step_counts: dict[Status, int] = Field(default_factory=dict)
    duration_millis: int = Field(default=0, ge=0)

    @field_validator("scenario_counts", "step_counts")
    @classmethod
    def validate_counts(cls, value: dict[Status, int]) -> dict[Status, int]:
        for status, count in value.items():
            if count < 0:
                raise ValueError(f"count for {status} must be >= 0")
        return value

    def scenario_count(self, status: Status) -> int:
        return self.scenario_counts.get(status, 0)

    def step_count(self, status: Status) -> int:
        return self.step_counts.get(status, 0)

    def is_successful(self, *, strict: bool = False) -> bool:
        if any(self.step_count(status) for status in FAILURE_STATUSES):
            return False
        if strict and any(self.step_count(status) for status in WARNING_STATUSES):
            return False
        return True


def count_statuses(statuses: Iterable[Status]) -> dict[Status, int]:
    counts: dict[Status, int] = {}
    for status in statuses:
        counts[status] = counts.get(status, 0) + 1
    return counts


def json_schema_for(model_cls: type[TModel]) -> dict[str, Any]:
    return model_cls.model_json_schema()


def validate_json(model_cls: type[TModel], payload: str | bytes | bytearray) -> TModel:
    return model_cls.model_validate_json(payload)
