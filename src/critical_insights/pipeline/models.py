"""Domain models for task outcomes and pipeline results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    """Terminal state of one task invocation."""

    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"


class PipelineStatus(str, Enum):
    """Overall status of one pipeline run."""

    COMPLETE = "complete"
    PARTIAL_DEGRADATION = "partial_degradation"
    HALTED = "halted"


class PipelineState(str, Enum):
    """Coordinator state machine positions."""

    NOT_STARTED = "not_started"
    RUNNING_CRITICAL = "running_critical"
    HALTED = "halted"
    RUNNING_FAN_OUT = "running_fan_out"
    RUNNING_DEPENDENT_CHAIN = "running_dependent_chain"
    RUNNING_TERMINAL = "running_terminal"
    DONE = "done"


class FailureClass(str, Enum):
    """Normalized failure classes recorded on outcomes and results."""

    INPUT_INVALID = "input_invalid"
    PROVIDER_ERROR = "provider_error"
    OUTPUT_SHAPE_ERROR = "output_shape_error"
    SCHEMA_VALIDATION_ERROR = "schema_validation_error"
    CRITICAL_TASK_EXHAUSTED = "critical_task_exhausted"


@dataclass(slots=True)
class RetryState:
    """Bookkeeping for one invoker call; never shared across tasks."""

    attempt: int = 0
    accumulated_backoff_seconds: float = 0.0
    last_error: str | None = None
    last_failure_class: FailureClass | None = None

    def record_failure(self, failure_class: FailureClass, error: str) -> None:
        self.last_failure_class = failure_class
        self.last_error = error


@dataclass(frozen=True, slots=True)
class TaskOutcome:
    """Resolved result of one task within one pipeline run."""

    task_name: str
    status: TaskStatus
    value: Any
    attempts: int
    last_error: str | None = None
    failure_class: FailureClass | None = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is TaskStatus.SUCCEEDED

    @property
    def degraded(self) -> bool:
        return self.status is TaskStatus.DEGRADED


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Aggregated, immutable result handed back to the caller."""

    run_id: str
    status: PipelineStatus
    summary: str
    outcomes: Mapping[str, TaskOutcome]
    failure_class: FailureClass | None = None
    transitions: tuple[PipelineState, ...] = ()
    elapsed_seconds: float = 0.0

    @property
    def values(self) -> dict[str, Any]:
        """Resolved value of every task keyed by task name."""

        return {name: outcome.value for name, outcome in self.outcomes.items()}

    @property
    def degraded_tasks(self) -> tuple[str, ...]:
        return tuple(name for name, outcome in self.outcomes.items() if outcome.degraded)

    def value(self, task_name: str) -> Any:
        return self.outcomes[task_name].value
