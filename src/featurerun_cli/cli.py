from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer

from featurerun import AppConfig, RunOptions, load_config
from featurerun.listener import (
    ListenerConfig,
    PythonSnippetBuilder,
    SummaryReporter,
    build_style_table,
)
from featurerun.runtime import (
    RecordedRun,
    RunOrchestrator,
    SupportCodeLibrary,
    load_recorded_run,
)
from featurerun.schemas import json_schema_for

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = typer.Typer(help="featurerun CLI")


@app.command()
def replay(
    run_file: Path = typer.Option(
        ...,
        "--run-file",
        help="Recorded run (JSON or YAML) with step outcomes in completion order.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="Config file path.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    base_dir: Path | None = typer.Option(
        None,
        "--base-dir",
        help="Directory that report locations are made relative to.",
        file_okay=False,
    ),
    dry_run: bool | None = typer.Option(
        None, "--dry-run/--no-dry-run", help="Report defined steps as skipped."
    ),
    fail_fast: bool | None = typer.Option(
        None, "--fail-fast/--no-fail-fast", help="Skip every step after the first failure."
    ),
    strict: bool | None = typer.Option(
        None, "--strict/--no-strict", help="Fail the run on pending or undefined steps."
    ),
    filter_stacktraces: bool | None = typer.Option(
        None,
        "--filter-stacktraces/--no-filter-stacktraces",
        help="Hide framework frames from failure traces.",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output."),
) -> None:
    """Replay a recorded run and print the summary report."""
    try:
        config = load_config(config_path) if config_path else AppConfig()
        recorded = load_recorded_run(run_file)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    options = _merge_options(
        config.options,
        dry_run=dry_run,
        fail_fast=fail_fast,
        strict=strict,
        filter_stacktraces=filter_stacktraces,
    )
    reporter = SummaryReporter(
        ListenerConfig(
            log=lambda text: typer.echo(text, nl=False),
            base_dir=base_dir.resolve() if base_dir else config.reporter.resolve_base_dir(),
            styles=build_style_table(colors=config.reporter.colors and not no_color),
            snippet_builder=PythonSnippetBuilder(),
        )
    )
    orchestrator = RunOrchestrator(
        features=recorded,
        options=options,
        support_code_library=SupportCodeLibrary(
            default_timeout=config.listener_timeout_seconds
        ),
    )
    orchestrator.attach_listener(reporter)
    result = asyncio.run(orchestrator.start())

    if not result.is_successful(strict=options.strict):
        raise typer.Exit(code=1)


@app.command()
def schema(indent: int = typer.Option(2, help="Pretty indent")) -> None:
    """Print the JSON schema of the recorded run format."""
    typer.echo(json.dumps(json_schema_for(RecordedRun), indent=indent))


def _merge_options(base: RunOptions, **flags: bool | None) -> RunOptions:
    # flags left unset on the command line keep the configured value
    overrides = {name: value for name, value in flags.items() if value is not None}
    return base.model_copy(update=overrides)


if __name__ == "__main__":
    app()
