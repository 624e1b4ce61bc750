"""Prefect flow entry point for scheduled or deployed analysis runs.

Retries stay inside the task invoker; the flow itself is not retried so a
run never re-executes tasks that already resolved.
"""

from __future__ import annotations

from collections.abc import Callable

from prefect import flow

from critical_insights.analysis.tasks import build_analysis_coordinator
from critical_insights.config import Settings
from critical_insights.pipeline.events import LoggingEventSink
from critical_insights.pipeline.models import PipelineResult


@flow(name="critical_insights_flow")
async def critical_insights_flow(
    *,
    query: str,
    settings: Settings | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> PipelineResult:
    """Run the analysis pipeline for one query as a Prefect flow."""

    settings = settings or Settings.from_env()
    settings.validate()
    coordinator = build_analysis_coordinator(
        settings,
        sink=LoggingEventSink(),
        on_progress=on_progress,
    )
    return await coordinator.run({"query": query})
