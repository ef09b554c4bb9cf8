from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class Status(StrEnum):
    PASSED = "passed"
    FAILED = "failed"
    AMBIGUOUS = "ambiguous"
    UNDEFINED = "undefined"
    PENDING = "pending"
    SKIPPED = "skipped"

    @classmethod
    def _missing_(cls, value: object) -> Status | None:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


STATUS_REPORT_ORDER: tuple[Status, ...] = (
    Status.FAILED,
    Status.AMBIGUOUS,
    Status.UNDEFINED,
    Status.PENDING,
    Status.SKIPPED,
    Status.PASSED,
)

FAILURE_STATUSES = frozenset({Status.FAILED, Status.AMBIGUOUS})
WARNING_STATUSES = frozenset({Status.UNDEFINED, Status.PENDING})
SILENT_STATUSES = frozenset({Status.PASSED, Status.SKIPPED})


def most_severe(statuses: Iterable[Status]) -> Status:
    """Pick the status listed first in report order; PASSED when empty."""
    present = set(statuses)
    for status in STATUS_REPORT_ORDER:
        if status in present:
            return status
    return Status.PASSED
