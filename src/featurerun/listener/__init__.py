"""Run listeners and the summary report formatter."""

from .base import (
    BOLD,
    LOCATION,
    ListenerConfig,
    OutputSink,
    ReportingListener,
    SnippetBuilder,
    StyleTable,
)
from .snippets import PythonSnippetBuilder
from .styles import build_style_table
from .summary import Issue, SummaryReporter

__all__ = [
    "BOLD",
    "LOCATION",
    "Issue",
    "ListenerConfig",
    "OutputSink",
    "PythonSnippetBuilder",
    "ReportingListener",
    "SnippetBuilder",
    "StyleTable",
    "SummaryReporter",
    "build_style_table",
]
