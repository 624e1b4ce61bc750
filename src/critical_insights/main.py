"""CLI entrypoint for critical-insights."""

import logging

import rich_click as click

from critical_insights import __version__
from critical_insights.analysis.controllers import AnalysisCliController, AnalyzeCommand
from critical_insights.config import SUPPORTED_BACKENDS, Settings
from critical_insights.pipeline.models import PipelineStatus

click.rich_click.USE_MARKDOWN = True
ANALYSIS_CONTROLLER = AnalysisCliController()


@click.group()
@click.version_option(version=__version__, prog_name="critical-insights")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level. Defaults to CRITICAL_INSIGHTS_LOG_LEVEL or WARNING.",
)
def critical_insights(log_level: str | None) -> None:
    """Critical insights CLI."""

    if log_level is None:
        try:
            log_level = Settings.from_env().log_level
        except ValueError as error:
            raise click.ClickException(str(error)) from error
    level = log_level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@critical_insights.command("analyze")
@click.argument("query")
@click.option(
    "--backend",
    type=click.Choice(SUPPORTED_BACKENDS, case_sensitive=False),
    default=None,
    help="Task provider backend. Defaults to CRITICAL_INSIGHTS_AGENT_BACKEND or echo.",
)
@click.option(
    "--agent-command",
    default=None,
    help="CLI agent command template. Supports {prompt}, {prompt_file} and {model}.",
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1, max=10),
    default=None,
    help="Attempts per task before falling back to its default.",
)
@click.option(
    "--backoff-base",
    type=click.FloatRange(min=0),
    default=None,
    help="Base delay in seconds for exponential backoff between attempts.",
)
@click.option("--json", "json_output", is_flag=True, default=False, help="Print JSON result.")
@click.option(
    "--prefect/--no-prefect",
    "use_prefect",
    default=False,
    show_default=True,
    help="Run through the Prefect flow instead of calling the coordinator directly.",
)
def analyze(  # noqa: PLR0913
    query: str,
    backend: str | None,
    agent_command: str | None,
    max_attempts: int | None,
    backoff_base: float | None,
    json_output: bool,
    use_prefect: bool,
) -> None:
    """Answer QUERY and run every analysis task over the answer."""

    try:
        result = ANALYSIS_CONTROLLER.analyze(
            AnalyzeCommand(
                query=query,
                backend=backend,
                agent_command=agent_command,
                max_attempts=max_attempts,
                backoff_base_seconds=backoff_base,
                json_output=json_output,
                use_prefect=use_prefect,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if result.status is PipelineStatus.HALTED:
        raise click.ClickException("Analysis halted.")


@critical_insights.command("graph")
def graph() -> None:
    """Show the stage graph in execution order."""

    try:
        lines = list(ANALYSIS_CONTROLLER.describe_graph())
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    critical_insights()
