"""Static stage table describing task roles and data dependencies."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from critical_insights.pipeline.invoker import TaskSpec


class StageRole(str, Enum):
    """Scheduling role of a task within the pipeline."""

    CRITICAL = "critical"
    INDEPENDENT = "independent"
    DEPENDENT = "dependent"
    TERMINAL = "terminal"


class StageGraphError(ValueError):
    """Raised when a stage table violates the scheduling rules."""


@dataclass(frozen=True, slots=True)
class StageContext:
    """Read-only view of what a node may see when building its input."""

    pipeline_input: Any
    values: Mapping[str, Any] = field(default_factory=dict)

    def __getitem__(self, task_name: str) -> Any:
        return self.values[task_name]

    def __contains__(self, task_name: object) -> bool:
        return task_name in self.values


InputBuilder = Callable[[StageContext], Any]


@dataclass(frozen=True, slots=True)
class StageNode:
    """One task plus its role, upstream requirements and input builder."""

    spec: TaskSpec
    role: StageRole
    requires: tuple[str, ...] = ()
    build_input: InputBuilder | None = None
    label: str | None = None

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def display_name(self) -> str:
        return self.label or self.spec.name

    def resolve_input(self, context: StageContext) -> Any:
        if self.build_input is not None:
            return self.build_input(context)
        if self.role is StageRole.CRITICAL:
            return context.pipeline_input
        if self.role is StageRole.INDEPENDENT and len(context.values) == 1:
            return next(iter(context.values.values()))
        return dict(context.values)


class StageGraph:
    """Validated stage table walked by the pipeline coordinator.

    Rules: exactly one critical node; independent nodes see only the critical
    output; dependent nodes run in declared order and may require independent
    nodes or earlier dependent nodes; at most one terminal node, which sees
    every other value.
    """

    def __init__(self, nodes: list[StageNode] | tuple[StageNode, ...]) -> None:
        self._nodes = tuple(nodes)
        self._by_name = _index_nodes(self._nodes)
        critical = [node for node in self._nodes if node.role is StageRole.CRITICAL]
        if len(critical) != 1:
            raise StageGraphError(
                f"Stage graph needs exactly one critical node, found {len(critical)}.",
            )
        terminal = [node for node in self._nodes if node.role is StageRole.TERMINAL]
        if len(terminal) > 1:
            raise StageGraphError(
                f"Stage graph allows at most one terminal node, found {len(terminal)}.",
            )
        self._critical = critical[0]
        self._terminal = terminal[0] if terminal else None
        self._independent = tuple(
            node for node in self._nodes if node.role is StageRole.INDEPENDENT
        )
        self._dependent = tuple(node for node in self._nodes if node.role is StageRole.DEPENDENT)
        self._validate_requirements()

    @property
    def critical(self) -> StageNode:
        return self._critical

    @property
    def independent(self) -> tuple[StageNode, ...]:
        return self._independent

    @property
    def dependent(self) -> tuple[StageNode, ...]:
        return self._dependent

    @property
    def terminal(self) -> StageNode | None:
        return self._terminal

    def node(self, name: str) -> StageNode:
        return self._by_name[name]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[StageNode]:
        """Iterate nodes in execution order: critical, fan-out, chain, terminal."""

        yield self._critical
        yield from self._independent
        yield from self._dependent
        if self._terminal is not None:
            yield self._terminal

    def visible_names(self, node: StageNode) -> tuple[str, ...]:
        """Names of upstream values ``node`` may read."""

        if node.role is StageRole.CRITICAL:
            return ()
        if node.role is StageRole.INDEPENDENT:
            return (self._critical.name,)
        if node.role is StageRole.DEPENDENT:
            return (self._critical.name, *node.requires)
        return tuple(other.name for other in self if other is not node)

    def _validate_requirements(self) -> None:
        independent_names = {node.name for node in self._independent}
        earlier_dependents: set[str] = set()
        for node in self._nodes:
            if node.role in {StageRole.CRITICAL, StageRole.INDEPENDENT, StageRole.TERMINAL}:
                if node.requires:
                    raise StageGraphError(
                        f"{node.role.value} node {node.name!r} cannot declare requirements.",
                    )
                continue
            for required in node.requires:
                if required not in self._by_name:
                    raise StageGraphError(
                        f"Dependent node {node.name!r} requires unknown task {required!r}.",
                    )
                if required not in independent_names and required not in earlier_dependents:
                    raise StageGraphError(
                        f"Dependent node {node.name!r} may only require independent tasks "
                        f"or earlier dependent tasks, got {required!r}.",
                    )
            earlier_dependents.add(node.name)


def _index_nodes(nodes: tuple[StageNode, ...]) -> dict[str, StageNode]:
    by_name: dict[str, StageNode] = {}
    for node in nodes:
        if node.name in by_name:
            raise StageGraphError(f"Duplicate task name in stage graph: {node.name!r}.")
        by_name[node.name] = node
    return by_name
