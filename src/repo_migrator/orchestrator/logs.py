"""Structured run log handed to every phase."""

import logging
from enum import Enum
from typing import Callable

from repo_migrator.models import LogEntry, LogSeverity

LogFn = Callable[..., None]

_LEVELS = {
    LogSeverity.INFO: logging.INFO,
    LogSeverity.SUCCESS: logging.INFO,
    LogSeverity.WARNING: logging.WARNING,
    LogSeverity.ERROR: logging.ERROR,
}

run_logger = logging.getLogger("repo_migrator.run")


class MigrationLog:
    """Collects LogEntry records and mirrors them to ``repo_migrator.run``.

    Instances are callable as ``log(message, severity, phase)``.
    """

    def __init__(self, listener: Callable[[LogEntry], None] | None = None) -> None:
        self.entries: list[LogEntry] = []
        self._listener = listener

    def __call__(
        self,
        message: str,
        severity: LogSeverity = LogSeverity.INFO,
        phase: Enum | str = "system",
    ) -> None:
        phase_name = phase.value if isinstance(phase, Enum) else str(phase)
        entry = LogEntry(phase=phase_name, message=message, severity=LogSeverity(severity))
        self.entries.append(entry)
        run_logger.log(_LEVELS[entry.severity], "[%s] %s", entry.phase, message)
        if self._listener is not None:
            self._listener(entry)

    def clear(self) -> None:
        self.entries.clear()

    def messages(self, severity: LogSeverity | None = None) -> list[str]:
        return [
            entry.message
            for entry in self.entries
            if severity is None or entry.severity == severity
        ]


def null_log(message: str, severity: LogSeverity = LogSeverity.INFO, phase: str = "system") -> None:
    """Log sink that discards everything."""
