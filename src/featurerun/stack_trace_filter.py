"""Process-wide toggle that hides framework frames from failure traces."""

from __future__ import annotations

import logging
import re
import threading
import traceback
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)

_PACKAGE_DIR = Path(__file__).resolve().parent
_FRAME_LINE = re.compile(r'^\s*File "(?P<file>[^"]+)", line \d+')
_lock = threading.Lock()
_enabled = False


def is_filtering() -> bool:
    return _enabled


class StackTraceFilter:
    """Scoped handle on the shared filter flag.

    ``enable`` and ``disable`` are idempotent. The flag is shared by the whole
    process, so two overlapping runs cannot each own it.
    """

    def enable(self) -> None:
        global _enabled
        with _lock:
            if _enabled:
                return
            _enabled = True
        logger.debug("stack trace filtering enabled")

    def disable(self) -> None:
        global _enabled
        with _lock:
            if not _enabled:
                return
            _enabled = False
        logger.debug("stack trace filtering disabled")

    def __enter__(self) -> StackTraceFilter:
        self.enable()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.disable()


def format_failure_trace(exc: BaseException) -> str:
    frames = traceback.extract_tb(exc.__traceback__)
    if is_filtering():
        frames = traceback.StackSummary.from_list(
            [frame for frame in frames if not _is_internal_frame(frame.filename)]
        )

    lines: list[str] = []
    if frames:
        lines.append("Traceback (most recent call last):\n")
        lines.extend(frames.format())
    lines.extend(traceback.format_exception_only(type(exc), exc))
    return "".join(lines).rstrip("\n")


def filter_trace_text(trace: str) -> str:
    """Drop framework frames from an already rendered Python traceback."""
    kept: list[str] = []
    skipping = False
    frame_indent = 0
    for line in trace.splitlines():
        match = _FRAME_LINE.match(line)
        if match:
            skipping = _is_internal_frame(match.group("file"))
            frame_indent = _indent_width(line)
            if not skipping:
                kept.append(line)
            continue
        # source and caret lines sit deeper than their frame header
        if skipping and line.strip() and _indent_width(line) > frame_indent:
            continue
        skipping = False
        kept.append(line)
    return "\n".join(kept)


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip())


def _is_internal_frame(filename: str) -> bool:
    # Matches by package-relative module path, so traces recorded under a
    # different install prefix are recognized too.
    parts = Path(filename).parts
    if _PACKAGE_DIR.name not in parts:
        return False
    index = len(parts) - 1 - parts[::-1].index(_PACKAGE_DIR.name)
    rest = parts[index + 1 :]
    return bool(rest) and _PACKAGE_DIR.joinpath(*rest).is_file()
