"""Aggregation of task outcomes into a status and a readable summary."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import TypeAdapter

from critical_insights.pipeline.graph import StageGraph, StageNode
from critical_insights.pipeline.models import PipelineResult, PipelineStatus, TaskOutcome

ERROR_PREVIEW_CHARS = 100

_JSON_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


def resolve_status(graph: StageGraph, outcomes: Mapping[str, TaskOutcome]) -> PipelineStatus:
    """Overall status from per-task outcome flags."""

    if outcomes[graph.critical.name].degraded:
        return PipelineStatus.HALTED
    if any(outcome.degraded for outcome in outcomes.values()):
        return PipelineStatus.PARTIAL_DEGRADATION
    return PipelineStatus.COMPLETE


def describe_outcome(node: StageNode, outcome: TaskOutcome) -> str:
    """One summary line for a task.

    The outcome status decides between "provided" and "unavailable"; a
    legitimately empty list therefore reads as provided with no findings,
    even though it equals the task default.
    """

    label = node.display_name
    if outcome.degraded:
        return f"{label}: unavailable."
    value = outcome.value
    if isinstance(value, list | tuple):
        if not value:
            return f"{label}: provided (no findings)."
        noun = "item" if len(value) == 1 else "items"
        return f"{label}: provided ({len(value)} {noun})."
    return f"{label}: provided."


def build_summary(
    graph: StageGraph,
    outcomes: Mapping[str, TaskOutcome],
    *,
    status: PipelineStatus,
    halt_reason: str | None = None,
) -> str:
    """Render the human-readable run summary."""

    lines = [describe_outcome(node, outcomes[node.name]) for node in graph]
    if status is PipelineStatus.HALTED:
        critical = graph.critical
        reason = halt_reason or outcomes[critical.name].last_error or "no usable answer"
        return (
            f"Critical failure in {critical.display_name}: {reason}. Process halted.\n\n"
            "Summary of Available Data:\n" + "\n".join(lines)
        )
    if status is PipelineStatus.PARTIAL_DEGRADATION:
        errors = [
            f"  - {node.display_name}: {_truncate(outcomes[node.name].last_error)}"
            for node in graph
            if outcomes[node.name].degraded
        ]
        return (
            "Analysis completed with partial results due to one or more task failures.\n\n"
            "Summary of Available Data:\n"
            + "\n".join(lines)
            + "\n\nErrors Encountered:\n"
            + "\n".join(errors)
        )
    return "Analysis completed successfully with all tasks contributing.\n\nSummary of Data:\n" + (
        "\n".join(lines)
    )


def result_to_payload(result: PipelineResult, graph: StageGraph | None = None) -> dict[str, Any]:
    """JSON-compatible view of a pipeline result.

    With a graph, values are dumped through each task's schema (aliases
    applied); otherwise through a generic adapter.
    """

    values: dict[str, Any] = {}
    for name, outcome in result.outcomes.items():
        if graph is not None:
            values[name] = graph.node(name).spec.schema.dump(outcome.value)
        else:
            values[name] = _JSON_ADAPTER.dump_python(outcome.value, mode="json")
    return {
        "run_id": result.run_id,
        "status": result.status.value,
        "failure_class": result.failure_class.value if result.failure_class else None,
        "summary": result.summary,
        "values": values,
        "outcomes": {
            name: {
                "status": outcome.status.value,
                "attempts": outcome.attempts,
                "last_error": outcome.last_error,
                "failure_class": outcome.failure_class.value if outcome.failure_class else None,
                "elapsed_seconds": round(outcome.elapsed_seconds, 3),
            }
            for name, outcome in result.outcomes.items()
        },
        "elapsed_seconds": round(result.elapsed_seconds, 3),
    }


def _truncate(text: str | None) -> str:
    if not text:
        return "unknown error"
    if len(text) <= ERROR_PREVIEW_CHARS:
        return text
    return f"{text[:ERROR_PREVIEW_CHARS]}..."
