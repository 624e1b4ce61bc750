from __future__ import annotations

import allure
import pytest

from critical_insights.config import Settings

pytestmark = [
    allure.epic("Critical Insights"),
    allure.feature("Configuration"),
]


def test_defaults_without_environment() -> None:
    settings = Settings.from_env()

    assert settings.retry.max_attempts == 3
    assert settings.retry.backoff_base_seconds == 1.0
    assert settings.agent.backend == "echo"
    assert settings.log_level == "WARNING"
    settings.validate()


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("CRITICAL_INSIGHTS_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("CRITICAL_INSIGHTS_BACKOFF_BASE_SECONDS", "0.25")
    monkeypatch.setenv("CRITICAL_INSIGHTS_AGENT_BACKEND", " CLI ")
    monkeypatch.setenv("CRITICAL_INSIGHTS_AGENT_COMMAND", "agent --file {prompt_file}")
    monkeypatch.setenv("CRITICAL_INSIGHTS_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.retry.max_attempts == 5
    assert settings.retry.backoff_base_seconds == 0.25
    assert settings.agent.backend == "cli"
    assert settings.agent.command_template == "agent --file {prompt_file}"
    assert settings.log_level == "DEBUG"
    settings.validate()


def test_malformed_number_names_the_variable(monkeypatch) -> None:
    monkeypatch.setenv("CRITICAL_INSIGHTS_MAX_ATTEMPTS", "many")

    with pytest.raises(ValueError, match="CRITICAL_INSIGHTS_MAX_ATTEMPTS"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("CRITICAL_INSIGHTS_MAX_ATTEMPTS", "0"),
        ("CRITICAL_INSIGHTS_BACKOFF_BASE_SECONDS", "-1"),
        ("CRITICAL_INSIGHTS_AGENT_BACKEND", "http"),
        ("CRITICAL_INSIGHTS_AGENT_TIMEOUT_SECONDS", "0"),
        ("CRITICAL_INSIGHTS_LOG_LEVEL", "LOUD"),
    ],
)
def test_validate_rejects_out_of_range_values(monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=name):
        Settings.from_env().validate()


def test_cli_backend_requires_prompt_placeholder(monkeypatch) -> None:
    monkeypatch.setenv("CRITICAL_INSIGHTS_AGENT_BACKEND", "cli")
    monkeypatch.setenv("CRITICAL_INSIGHTS_AGENT_COMMAND", "agent --quiet")

    with pytest.raises(ValueError, match="CRITICAL_INSIGHTS_AGENT_COMMAND"):
        Settings.from_env().validate()
