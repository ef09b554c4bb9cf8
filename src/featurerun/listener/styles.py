from __future__ import annotations

from functools import partial

import typer

from featurerun.status import Status

from .base import BOLD, LOCATION, StyleFn, StyleTable

_STATUS_COLORS: dict[Status, str] = {
    Status.PASSED: typer.colors.GREEN,
    Status.FAILED: typer.colors.RED,
    Status.AMBIGUOUS: typer.colors.MAGENTA,
    Status.UNDEFINED: typer.colors.YELLOW,
    Status.PENDING: typer.colors.YELLOW,
    Status.SKIPPED: typer.colors.CYAN,
}


def build_style_table(colors: bool = True) -> StyleTable:
    if not colors:
        return {key: _identity for key in [*Status, BOLD, LOCATION]}

    table: dict[Status | str, StyleFn] = {
        status: partial(typer.style, fg=color) for status, color in _STATUS_COLORS.items()
    }
    table[BOLD] = partial(typer.style, bold=True)
    table[LOCATION] = partial(typer.style, fg=typer.colors.BRIGHT_BLACK)
    return table


def _identity(text: str) -> str:
    return text
