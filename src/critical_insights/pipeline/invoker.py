"""Generic retry-with-validation wrapper applied to every pipeline task."""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from critical_insights.pipeline.coercion import coerce_raw_output
from critical_insights.pipeline.events import (
    LEVEL_ERROR,
    LEVEL_INFO,
    LEVEL_WARNING,
    DiagnosticEvent,
    EventSink,
    emit_safely,
)
from critical_insights.pipeline.failure_classifier import classify_provider_error
from critical_insights.pipeline.models import FailureClass, RetryState, TaskOutcome, TaskStatus
from critical_insights.pipeline.schemas import SchemaContract, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE_SECONDS = 1.0
_INPUT_PREVIEW_CHARS = 200

TaskProvider = Callable[[Any], Awaitable[Any]]
SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class TaskSpec:
    """Immutable description of one task: how to call it and what to expect.

    ``default`` must satisfy ``schema``; it is the value every degraded
    outcome carries, always as a deep copy.
    """

    name: str
    provider: TaskProvider = field(compare=False)
    schema: SchemaContract = field(compare=False)
    default: Any = field(compare=False)
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("TaskSpec.name must be a non-empty string")
        if self.max_attempts < 1:
            raise ValueError(f"TaskSpec {self.name!r}: max_attempts must be >= 1")
        if self.backoff_base_seconds < 0:
            raise ValueError(f"TaskSpec {self.name!r}: backoff_base_seconds must be >= 0")
        check = self.schema.validate(copy.deepcopy(self.default))
        if not check.is_valid:
            raise ValueError(
                f"TaskSpec {self.name!r}: default does not satisfy its schema: "
                f"{check.error_summary}",
            )

    def fresh_default(self) -> Any:
        return copy.deepcopy(self.default)

    def backoff_seconds(self, attempt: int) -> float:
        """Delay before retrying after the 0-indexed ``attempt`` failed."""

        return self.backoff_base_seconds * (2**attempt)


def degraded_outcome(
    spec: TaskSpec,
    *,
    attempts: int,
    failure_class: FailureClass | None,
    error: str | None,
    elapsed_seconds: float = 0.0,
) -> TaskOutcome:
    """Build an outcome carrying the task's static default."""

    return TaskOutcome(
        task_name=spec.name,
        status=TaskStatus.DEGRADED,
        value=spec.fresh_default(),
        attempts=attempts,
        last_error=error,
        failure_class=failure_class,
        elapsed_seconds=elapsed_seconds,
    )


async def invoke_task(
    spec: TaskSpec,
    task_input: Any,
    *,
    sink: EventSink | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> TaskOutcome:
    """Run ``spec`` with bounded retries; never raises.

    Each attempt calls the provider, coerces text output into structured data
    and validates it against the task schema.  The first valid value wins.
    After ``max_attempts`` failures the task default is returned as a
    degraded outcome.
    """

    state = RetryState()
    started = time.monotonic()
    input_preview = _preview(task_input)

    for attempt in range(spec.max_attempts):
        state.attempt = attempt
        failure_context: dict[str, Any] = {"input_preview": input_preview}
        try:
            raw = await spec.provider(task_input)
        except Exception as error:  # noqa: BLE001
            classification = classify_provider_error(error)
            state.record_failure(FailureClass.PROVIDER_ERROR, _describe_error(error))
            failure_context.update(classification.to_event_context())
        else:
            validation, parsed_from_text = _accept_output(spec, raw, state)
            if validation is not None:
                emit_safely(
                    sink,
                    DiagnosticEvent(
                        task=spec.name,
                        attempt=attempt,
                        level=LEVEL_INFO,
                        message="Attempt succeeded.",
                        context={
                            "parsed_from_text": parsed_from_text,
                            "item_count": _item_count(validation.payload),
                        },
                    ),
                )
                return TaskOutcome(
                    task_name=spec.name,
                    status=TaskStatus.SUCCEEDED,
                    value=validation.payload,
                    attempts=attempt + 1,
                    elapsed_seconds=time.monotonic() - started,
                )
            failure_context["parsed_from_text"] = parsed_from_text

        failure_context["failure_class"] = _failure_value(state.last_failure_class)
        emit_safely(
            sink,
            DiagnosticEvent(
                task=spec.name,
                attempt=attempt,
                level=LEVEL_WARNING,
                message=f"Attempt failed: {state.last_error}",
                context=failure_context,
            ),
        )
        if attempt < spec.max_attempts - 1:
            delay = spec.backoff_seconds(attempt)
            state.accumulated_backoff_seconds += delay
            await sleep(delay)

    elapsed = time.monotonic() - started
    emit_safely(
        sink,
        DiagnosticEvent(
            task=spec.name,
            attempt=state.attempt,
            level=LEVEL_ERROR,
            message="Retries exhausted; using default output.",
            context={
                "attempts": spec.max_attempts,
                "failure_class": _failure_value(state.last_failure_class),
                "last_error": state.last_error,
                "backoff_seconds": state.accumulated_backoff_seconds,
            },
        ),
    )
    logger.warning(
        "Task %s degraded after %d attempts: %s",
        spec.name,
        spec.max_attempts,
        state.last_error,
    )
    return degraded_outcome(
        spec,
        attempts=spec.max_attempts,
        failure_class=state.last_failure_class,
        error=state.last_error,
        elapsed_seconds=elapsed,
    )


def _accept_output(
    spec: TaskSpec,
    raw: Any,
    state: RetryState,
) -> tuple[ValidationResult | None, bool]:
    """Coerce and validate one raw result; failures are recorded on ``state``."""

    try:
        coerced = coerce_raw_output(raw, accepts_text=spec.schema.accepts_text)
    except Exception as error:  # noqa: BLE001
        state.record_failure(
            FailureClass.OUTPUT_SHAPE_ERROR,
            f"Output could not be coerced: {_describe_error(error)}",
        )
        return None, False
    if not coerced.ok:
        state.record_failure(FailureClass.OUTPUT_SHAPE_ERROR, coerced.error or "")
        return None, coerced.parsed_from_text

    try:
        validation = spec.schema.validate(coerced.value)
    except Exception as error:  # noqa: BLE001
        state.record_failure(
            FailureClass.SCHEMA_VALIDATION_ERROR,
            f"Schema check raised {_describe_error(error)}",
        )
        return None, coerced.parsed_from_text
    if not validation.is_valid:
        state.record_failure(
            validation.failure_class or FailureClass.SCHEMA_VALIDATION_ERROR,
            validation.error_summary or "Output failed schema validation.",
        )
        return None, coerced.parsed_from_text
    return validation, coerced.parsed_from_text


def _describe_error(error: BaseException) -> str:
    message = str(error).strip()
    if not message:
        return type(error).__name__
    return f"{type(error).__name__}: {message}"


def _failure_value(failure_class: FailureClass | None) -> str | None:
    return failure_class.value if failure_class is not None else None


def _item_count(payload: Any) -> int | None:
    if isinstance(payload, list | tuple):
        return len(payload)
    return None


def _preview(task_input: Any) -> str:
    text = repr(task_input)
    if len(text) <= _INPUT_PREVIEW_CHARS:
        return text
    return text[:_INPUT_PREVIEW_CHARS]
