"""Structured diagnostic events and the sinks that receive them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

LEVEL_INFO = "info"
LEVEL_WARNING = "warning"
LEVEL_ERROR = "error"

_LOGGING_LEVELS = {
    LEVEL_INFO: logging.INFO,
    LEVEL_WARNING: logging.WARNING,
    LEVEL_ERROR: logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class DiagnosticEvent:
    """One observation about a task attempt or fallback."""

    task: str
    attempt: int
    level: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)


class EventSink(Protocol):
    """Observability collaborator receiving diagnostic events."""

    def emit(self, event: DiagnosticEvent) -> None:
        """Record one event; must not block the pipeline."""


class LoggingEventSink:
    """Forward diagnostic events to a stdlib logger."""

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logging.getLogger("critical_insights.events")

    def emit(self, event: DiagnosticEvent) -> None:
        self._logger.log(
            _LOGGING_LEVELS.get(event.level, logging.INFO),
            "[%s] attempt %d: %s",
            event.task,
            event.attempt + 1,
            event.message,
            extra={"task": event.task, "attempt": event.attempt, "context": event.context},
        )


class RecordingEventSink:
    """Keep events in memory, e.g. for run reports and tests."""

    def __init__(self) -> None:
        self.events: list[DiagnosticEvent] = []

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def for_task(self, task: str) -> list[DiagnosticEvent]:
        return [event for event in self.events if event.task == task]


class FanOutEventSink:
    """Deliver each event to several sinks."""

    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = sinks

    def emit(self, event: DiagnosticEvent) -> None:
        for sink in self._sinks:
            emit_safely(sink, event)


def emit_safely(sink: EventSink | None, event: DiagnosticEvent) -> None:
    """Best-effort emit: sink failures are logged, never raised."""

    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception:  # noqa: BLE001
        logger.debug("Event sink %r failed for task %s", sink, event.task, exc_info=True)
