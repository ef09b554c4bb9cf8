from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from featurerun.listener import ReportingListener


class SupportCode(Protocol):
    def get_default_timeout(self) -> float:
        """Seconds an asynchronous listener hook may take."""

    def get_listeners(self) -> list[ReportingListener]:
        """Listeners registered by the user's support code."""


@dataclass(slots=True)
class SupportCodeLibrary:
    default_timeout: float = 5.0
    listeners: list[ReportingListener] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.default_timeout <= 0:
            raise ValueError("default_timeout must be > 0.")

    def get_default_timeout(self) -> float:
        return self.default_timeout

    def get_listeners(self) -> list[ReportingListener]:
        return list(self.listeners)
