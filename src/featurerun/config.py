from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class RunOptions(BaseModel):
    """Options handed through to the execution engine untouched."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    dry_run: bool = False
    fail_fast: bool = False
    filter_stacktraces: bool = False
    strict: bool = False


class ReporterConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_dir: str | None = None
    colors: bool = True

    @field_validator("base_dir")
    @classmethod
    def validate_base_dir(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError("reporter.base_dir must not be empty")
        return normalized

    def resolve_base_dir(self) -> Path:
        if self.base_dir is None:
            return Path.cwd()
        return Path(self.base_dir).expanduser().resolve()


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    options: RunOptions = Field(default_factory=RunOptions)
    reporter: ReporterConfig = Field(default_factory=ReporterConfig)
    listener_timeout_seconds: float = Field(default=5.0, gt=0.0)


def load_config(path: str | Path) -> AppConfig:
    raw = Path(path).read_text(encoding="utf-8")
    payload = parse_yaml_or_json(raw)
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def parse_yaml_or_json(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = _parse_yaml(raw)
    if not isinstance(parsed, dict):
        raise ValueError("Document root must be an object.")
    return parsed


def _parse_yaml(raw: str) -> Any:
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"Document is neither JSON nor YAML: {exc}") from exc
