"""Stage scheduler that walks a `StageGraph` and aggregates outcomes."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from types import MappingProxyType
from typing import Any
from uuid import uuid4

from critical_insights.pipeline.events import EventSink
from critical_insights.pipeline.graph import StageContext, StageGraph, StageNode
from critical_insights.pipeline.invoker import SleepFn, degraded_outcome, invoke_task
from critical_insights.pipeline.models import (
    FailureClass,
    PipelineResult,
    PipelineState,
    PipelineStatus,
    TaskOutcome,
)
from critical_insights.pipeline.report import build_summary, resolve_status
from critical_insights.pipeline.schemas import SchemaContract

logger = logging.getLogger(__name__)

_SKIPPED_HALTED = "Not started: pipeline halted."
_SKIPPED_INPUT = "Not started: pipeline input invalid."


class _PipelineRun:
    """Mutable state of one run; outcome slots are written exactly once."""

    def __init__(self, graph: StageGraph) -> None:
        self.run_id = str(uuid4())
        self.graph = graph
        self.outcomes: dict[str, TaskOutcome] = {}
        self.transitions: list[PipelineState] = [PipelineState.NOT_STARTED]
        self.started = time.monotonic()

    @property
    def state(self) -> PipelineState:
        return self.transitions[-1]

    def transition(self, state: PipelineState) -> None:
        logger.debug("Run %s: %s -> %s", self.run_id[:12], self.state.value, state.value)
        self.transitions.append(state)

    def record(self, outcome: TaskOutcome) -> None:
        if outcome.task_name in self.outcomes:
            raise RuntimeError(f"Outcome for {outcome.task_name!r} already recorded")
        self.outcomes[outcome.task_name] = outcome

    def context_for(self, node: StageNode, pipeline_input: Any) -> StageContext:
        names = self.graph.visible_names(node)
        return StageContext(
            pipeline_input=pipeline_input,
            values=MappingProxyType({name: self.outcomes[name].value for name in names}),
        )

    def fill_defaults(self, reason: str) -> None:
        for node in self.graph:
            if node.name not in self.outcomes:
                self.record(
                    degraded_outcome(node.spec, attempts=0, failure_class=None, error=reason),
                )


class PipelineCoordinator:
    """Drive critical -> fan-out -> dependent chain -> terminal for one graph.

    Only the critical task can halt a run.  Every other failure is masked by
    the failing task's default so downstream tasks always receive a
    well-typed input.  ``run`` never raises for task failures.
    """

    def __init__(  # noqa: PLR0913
        self,
        graph: StageGraph,
        *,
        input_schema: SchemaContract | None = None,
        sink: EventSink | None = None,
        sleep: SleepFn = asyncio.sleep,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self._graph = graph
        self._input_schema = input_schema
        self._sink = sink
        self._sleep = sleep
        self._on_progress = on_progress or (lambda _msg: None)

    @property
    def graph(self) -> StageGraph:
        return self._graph

    def _emit(self, msg: str) -> None:
        """Log and notify progress callback; callback failures never reach the run."""
        logger.info(msg)
        try:
            self._on_progress(msg)
        except Exception:  # noqa: BLE001
            logger.debug("Progress callback failed for %r", msg, exc_info=True)

    async def run(self, pipeline_input: Any) -> PipelineResult:
        """Execute one pipeline run and return its aggregated result."""

        run = _PipelineRun(self._graph)
        self._emit(f"Pipeline {run.run_id[:12]} started: {len(self._graph)} tasks")

        if self._input_schema is not None:
            check = self._input_schema.validate(pipeline_input)
            if not check.is_valid:
                reason = f"Invalid input provided: {check.error_summary}"
                self._emit(reason)
                run.transition(PipelineState.HALTED)
                run.fill_defaults(_SKIPPED_INPUT)
                return self._finish(run, halt_reason=reason, failure=FailureClass.INPUT_INVALID)
            pipeline_input = check.payload

        run.transition(PipelineState.RUNNING_CRITICAL)
        critical = self._graph.critical
        outcome = await self._invoke(run, critical, pipeline_input)
        run.record(outcome)
        if outcome.degraded:
            self._emit(f"[{critical.display_name}] failed critically; halting pipeline")
            run.transition(PipelineState.HALTED)
            run.fill_defaults(_SKIPPED_HALTED)
            return self._finish(run, failure=FailureClass.CRITICAL_TASK_EXHAUSTED)

        run.transition(PipelineState.RUNNING_FAN_OUT)
        fan_out = self._graph.independent
        if fan_out:
            self._emit(f"Fan-out: {len(fan_out)} independent tasks")
            results = await asyncio.gather(
                *(self._invoke(run, node, pipeline_input) for node in fan_out),
            )
            for result in results:
                run.record(result)

        run.transition(PipelineState.RUNNING_DEPENDENT_CHAIN)
        for node in self._graph.dependent:
            run.record(await self._invoke(run, node, pipeline_input))

        run.transition(PipelineState.RUNNING_TERMINAL)
        terminal = self._graph.terminal
        if terminal is not None:
            run.record(await self._invoke(run, terminal, pipeline_input))

        run.transition(PipelineState.DONE)
        return self._finish(run)

    async def _invoke(
        self,
        run: _PipelineRun,
        node: StageNode,
        pipeline_input: Any,
    ) -> TaskOutcome:
        try:
            task_input = node.resolve_input(run.context_for(node, pipeline_input))
        except Exception as error:  # noqa: BLE001
            logger.exception("Building input for %s failed", node.name)
            self._emit(f"[{node.display_name}] input could not be built: {error}")
            return degraded_outcome(
                node.spec,
                attempts=0,
                failure_class=FailureClass.INPUT_INVALID,
                error=f"Input could not be built: {error}",
            )
        outcome = await invoke_task(node.spec, task_input, sink=self._sink, sleep=self._sleep)
        if outcome.degraded:
            self._emit(
                f"[{node.display_name}] degraded after {outcome.attempts} attempts "
                f"in {outcome.elapsed_seconds:.1f}s",
            )
        else:
            self._emit(f"[{node.display_name}] completed in {outcome.elapsed_seconds:.1f}s")
        return outcome

    def _finish(
        self,
        run: _PipelineRun,
        *,
        halt_reason: str | None = None,
        failure: FailureClass | None = None,
    ) -> PipelineResult:
        outcomes = {node.name: run.outcomes[node.name] for node in self._graph}
        if failure is not None:
            status = PipelineStatus.HALTED
        else:
            status = resolve_status(self._graph, outcomes)
        summary = build_summary(self._graph, outcomes, status=status, halt_reason=halt_reason)
        elapsed = time.monotonic() - run.started
        self._emit(f"Pipeline {run.run_id[:12]} finished: {status.value} in {elapsed:.1f}s")
        return PipelineResult(
            run_id=run.run_id,
            status=status,
            summary=summary,
            outcomes=MappingProxyType(outcomes),
            failure_class=failure,
            transitions=tuple(run.transitions),
            elapsed_seconds=elapsed,
        )
