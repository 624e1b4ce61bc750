"""Shared test fixtures."""

from __future__ import annotations

import pytest

from critical_insights.pipeline.events import RecordingEventSink


class ScriptedProvider:
    """Async provider replaying a script; exceptions in the script are raised.

    The last entry repeats once the script is exhausted.
    """

    def __init__(self, *script: object) -> None:
        if not script:
            raise ValueError("script must not be empty")
        self._script = script
        self.calls: list[object] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def __call__(self, task_input: object) -> object:
        index = min(len(self.calls), len(self._script) - 1)
        self.calls.append(task_input)
        item = self._script[index]
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingSleep:
    """Replacement for ``asyncio.sleep`` that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture()
def scripted():
    """Factory for `ScriptedProvider` instances."""
    return ScriptedProvider


@pytest.fixture()
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep developer environment variables out of settings-driven tests."""
    for name in (
        "CRITICAL_INSIGHTS_MAX_ATTEMPTS",
        "CRITICAL_INSIGHTS_BACKOFF_BASE_SECONDS",
        "CRITICAL_INSIGHTS_AGENT_BACKEND",
        "CRITICAL_INSIGHTS_AGENT_COMMAND",
        "CRITICAL_INSIGHTS_AGENT_MODEL",
        "CRITICAL_INSIGHTS_AGENT_TIMEOUT_SECONDS",
        "CRITICAL_INSIGHTS_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
