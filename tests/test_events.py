from __future__ import annotations

import logging

import allure

from critical_insights.pipeline.events import (
    LEVEL_ERROR,
    LEVEL_WARNING,
    DiagnosticEvent,
    FanOutEventSink,
    LoggingEventSink,
    RecordingEventSink,
    emit_safely,
)

pytestmark = [
    allure.epic("Pipeline Coordination"),
    allure.feature("Diagnostic Events"),
]


def _event(task="research", level=LEVEL_WARNING):
    return DiagnosticEvent(task=task, attempt=1, level=level, message="Attempt failed: boom")


def test_logging_sink_maps_levels(caplog) -> None:
    caplog.set_level(logging.INFO, logger="critical_insights.events")

    LoggingEventSink().emit(_event(level=LEVEL_ERROR))

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.getMessage() == "[research] attempt 2: Attempt failed: boom"


def test_recording_sink_filters_by_task() -> None:
    sink = RecordingEventSink()
    sink.emit(_event("research"))
    sink.emit(_event("critique"))

    assert [event.task for event in sink.for_task("critique")] == ["critique"]


def test_fan_out_sink_isolates_failing_sinks() -> None:
    class Broken:
        def emit(self, event) -> None:
            raise RuntimeError("sink down")

    recorder = RecordingEventSink()
    FanOutEventSink(Broken(), recorder).emit(_event())

    assert len(recorder.events) == 1


def test_emit_safely_ignores_missing_sink() -> None:
    emit_safely(None, _event())
