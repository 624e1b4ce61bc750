"""CLI controller for analysis pipeline commands."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, replace

from critical_insights.analysis.tasks import (
    build_analysis_coordinator,
    build_analysis_graph,
    build_providers,
)
from critical_insights.config import Settings
from critical_insights.pipeline.events import LoggingEventSink
from critical_insights.pipeline.graph import StageGraph
from critical_insights.pipeline.models import PipelineResult, PipelineStatus
from critical_insights.pipeline.report import result_to_payload

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AnalyzeCommand:
    """Input for the analyze CLI command."""

    query: str
    backend: str | None = None
    agent_command: str | None = None
    max_attempts: int | None = None
    backoff_base_seconds: float | None = None
    json_output: bool = False
    use_prefect: bool = False


@dataclass(slots=True)
class AnalyzeResult:
    """Lines to print plus the pipeline status for the exit code."""

    lines: list[str]
    status: PipelineStatus


class AnalysisCliController:
    """CLI controller for analysis pipeline operations."""

    def analyze(self, command: AnalyzeCommand) -> AnalyzeResult:
        """Run the pipeline once and render its result."""

        settings = _apply_overrides(Settings.from_env(), command)
        settings.validate()
        progress: list[str] = []
        if command.use_prefect:
            from critical_insights.analysis.flow import critical_insights_flow  # noqa: PLC0415

            result = asyncio.run(
                critical_insights_flow(
                    query=command.query,
                    settings=settings,
                    on_progress=progress.append,
                ),
            )
            graph = build_analysis_graph(build_providers(settings), retry=settings.retry)
        else:
            coordinator = build_analysis_coordinator(
                settings,
                sink=LoggingEventSink(),
                on_progress=progress.append,
            )
            result = asyncio.run(coordinator.run({"query": command.query}))
            graph = coordinator.graph

        if command.json_output:
            payload = result_to_payload(result, graph)
            return AnalyzeResult(
                lines=[json.dumps(payload, ensure_ascii=False, indent=2)],
                status=result.status,
            )
        return AnalyzeResult(lines=[*progress, "", *_render_result(result)], status=result.status)

    def describe_graph(self) -> Iterator[str]:
        """Yield one line per stage in execution order."""

        settings = Settings.from_env()
        graph = build_analysis_graph(build_providers(settings), retry=settings.retry)
        yield from _render_graph(graph)


def _apply_overrides(settings: Settings, command: AnalyzeCommand) -> Settings:
    retry = settings.retry
    if command.max_attempts is not None:
        retry = replace(retry, max_attempts=command.max_attempts)
    if command.backoff_base_seconds is not None:
        retry = replace(retry, backoff_base_seconds=command.backoff_base_seconds)
    agent = settings.agent
    if command.backend is not None:
        agent = replace(agent, backend=command.backend.lower())
    if command.agent_command is not None:
        agent = replace(agent, command_template=command.agent_command)
    return replace(settings, retry=retry, agent=agent)


def _render_result(result: PipelineResult) -> list[str]:
    lines = [f"Run {result.run_id[:12]}: {result.status.value} ({result.elapsed_seconds:.1f}s)"]
    lines.extend(result.summary.splitlines())
    return lines


def _render_graph(graph: StageGraph) -> Iterator[str]:
    for node in graph:
        requires = f" <- {', '.join(node.requires)}" if node.requires else ""
        yield (
            f"{node.role.value:<11} {node.name:<20} attempts={node.spec.max_attempts}"
            f"{requires}"
        )
