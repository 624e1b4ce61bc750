import json

import allure
from click.testing import CliRunner

from critical_insights import __version__
from critical_insights.analysis.tasks import TASK_NAMES
from critical_insights.main import critical_insights

pytestmark = [
    allure.epic("Critical Insights"),
    allure.feature("CLI"),
]


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(critical_insights, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_analyze_with_echo_backend_prints_summary():
    runner = CliRunner()
    result = runner.invoke(
        critical_insights,
        ["analyze", "Is remote work productive?", "--backoff-base", "0"],
    )

    assert result.exit_code == 0, result.output
    assert "Fan-out: 5 independent tasks" in result.output
    assert ": complete (" in result.output
    assert "Analysis completed successfully with all tasks contributing." in result.output


def test_analyze_json_output():
    runner = CliRunner()
    result = runner.invoke(
        critical_insights,
        ["analyze", "Is remote work productive?", "--backoff-base", "0", "--json"],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["status"] == "complete"
    assert set(payload["values"]) == set(TASK_NAMES)


def test_analyze_exits_non_zero_when_halted():
    runner = CliRunner()
    result = runner.invoke(
        critical_insights,
        [
            "analyze",
            "Is remote work productive?",
            "--backend",
            "cli",
            "--agent-command",
            "no-such-agent-binary {prompt}",
            "--max-attempts",
            "1",
        ],
    )

    assert result.exit_code == 1
    assert "Critical failure in Initial Answer" in result.output
    assert "Analysis halted." in result.output


def test_analyze_rejects_invalid_configuration():
    runner = CliRunner()
    result = runner.invoke(
        critical_insights,
        ["analyze", "q", "--backend", "cli", "--agent-command", "agent --quiet"],
    )

    assert result.exit_code == 1
    assert "CRITICAL_INSIGHTS_AGENT_COMMAND" in result.output


def test_graph_lists_tasks_in_execution_order():
    runner = CliRunner()
    result = runner.invoke(critical_insights, ["graph"])

    assert result.exit_code == 0
    names = [line.split()[1] for line in result.output.splitlines() if line.strip()]
    assert names == list(TASK_NAMES)
    assert "critique" in result.output
    assert "<- research" in result.output


def test_malformed_environment_is_reported_without_traceback(monkeypatch):
    monkeypatch.setenv("CRITICAL_INSIGHTS_MAX_ATTEMPTS", "many")
    runner = CliRunner()
    result = runner.invoke(critical_insights, ["graph"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "CRITICAL_INSIGHTS_MAX_ATTEMPTS" in result.output


def test_malformed_environment_with_explicit_log_level(monkeypatch):
    monkeypatch.setenv("CRITICAL_INSIGHTS_BACKOFF_BASE_SECONDS", "soon")
    runner = CliRunner()
    result = runner.invoke(critical_insights, ["--log-level", "INFO", "graph"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "CRITICAL_INSIGHTS_BACKOFF_BASE_SECONDS" in result.output
