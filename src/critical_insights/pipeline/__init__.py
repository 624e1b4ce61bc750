"""Pipeline coordination: fault-tolerant scheduling of fallible LLM tasks.

A run is described by a `StageGraph` (data) and driven by one
`PipelineCoordinator` (control flow):

- ``invoker``: bounded retries, text coercion and schema validation for one
  task, falling back to the task default instead of raising.
- ``graph``: roles (critical, independent, dependent, terminal) and which
  upstream values each task may read.
- ``coordinator``: critical task, concurrent fan-out, dependent chain,
  terminal task; only the critical task can halt a run.
- ``report``: overall status and the human-readable summary.
"""

from critical_insights.pipeline.coordinator import PipelineCoordinator
from critical_insights.pipeline.events import (
    DiagnosticEvent,
    EventSink,
    LoggingEventSink,
    RecordingEventSink,
)
from critical_insights.pipeline.graph import (
    StageContext,
    StageGraph,
    StageGraphError,
    StageNode,
    StageRole,
)
from critical_insights.pipeline.invoker import TaskSpec, invoke_task
from critical_insights.pipeline.models import (
    FailureClass,
    PipelineResult,
    PipelineState,
    PipelineStatus,
    TaskOutcome,
    TaskStatus,
)
from critical_insights.pipeline.schemas import PydanticSchema, SchemaContract, ValidationResult

__all__ = [
    "DiagnosticEvent",
    "EventSink",
    "FailureClass",
    "LoggingEventSink",
    "PipelineCoordinator",
    "PipelineResult",
    "PipelineState",
    "PipelineStatus",
    "PydanticSchema",
    "RecordingEventSink",
    "SchemaContract",
    "StageContext",
    "StageGraph",
    "StageGraphError",
    "StageNode",
    "StageRole",
    "TaskOutcome",
    "TaskSpec",
    "TaskStatus",
    "ValidationResult",
    "invoke_task",
]
