from __future__ import annotations

import allure
import pytest

from critical_insights.pipeline.graph import (
    StageContext,
    StageGraph,
    StageGraphError,
    StageNode,
    StageRole,
)
from critical_insights.pipeline.invoker import TaskSpec
from critical_insights.pipeline.schemas import PydanticSchema

pytestmark = [
    allure.epic("Pipeline Coordination"),
    allure.feature("Stage Graph"),
]

_TEXT = PydanticSchema(str, name="text")


async def _noop(task_input: object) -> str:
    return "ok"


def _node(name: str, role: StageRole, requires: tuple[str, ...] = ()) -> StageNode:
    spec = TaskSpec(name=name, provider=_noop, schema=_TEXT, default="default")
    return StageNode(spec=spec, role=role, requires=requires)


def _graph(*nodes: StageNode) -> StageGraph:
    return StageGraph(list(nodes))


def test_iterates_in_execution_order_regardless_of_declaration() -> None:
    graph = _graph(
        _node("synth", StageRole.TERMINAL),
        _node("crit", StageRole.DEPENDENT, ("a",)),
        _node("a", StageRole.INDEPENDENT),
        _node("root", StageRole.CRITICAL),
        _node("b", StageRole.INDEPENDENT),
    )

    assert [node.name for node in graph] == ["root", "a", "b", "crit", "synth"]
    assert graph.critical.name == "root"
    assert graph.terminal is not None
    assert graph.terminal.name == "synth"
    assert len(graph) == 5


def test_requires_exactly_one_critical_node() -> None:
    with pytest.raises(StageGraphError, match="exactly one critical"):
        _graph(_node("a", StageRole.INDEPENDENT))
    with pytest.raises(StageGraphError, match="exactly one critical"):
        _graph(_node("a", StageRole.CRITICAL), _node("b", StageRole.CRITICAL))


def test_rejects_second_terminal_node() -> None:
    with pytest.raises(StageGraphError, match="at most one terminal"):
        _graph(
            _node("root", StageRole.CRITICAL),
            _node("t1", StageRole.TERMINAL),
            _node("t2", StageRole.TERMINAL),
        )


def test_rejects_duplicate_names() -> None:
    with pytest.raises(StageGraphError, match="Duplicate"):
        _graph(_node("root", StageRole.CRITICAL), _node("root", StageRole.INDEPENDENT))


def test_independent_nodes_cannot_declare_requirements() -> None:
    with pytest.raises(StageGraphError, match="cannot declare requirements"):
        _graph(
            _node("root", StageRole.CRITICAL),
            _node("a", StageRole.INDEPENDENT),
            _node("b", StageRole.INDEPENDENT, ("a",)),
        )


@pytest.mark.parametrize(
    ("requires", "message"),
    [
        (("missing",), "unknown task"),
        (("root",), "may only require"),
        (("later",), "may only require"),
        (("synth",), "may only require"),
    ],
)
def test_dependent_requirements_must_point_upstream(requires, message) -> None:
    with pytest.raises(StageGraphError, match=message):
        _graph(
            _node("root", StageRole.CRITICAL),
            _node("a", StageRole.INDEPENDENT),
            _node("dep", StageRole.DEPENDENT, requires),
            _node("later", StageRole.DEPENDENT, ("a",)),
            _node("synth", StageRole.TERMINAL),
        )


def test_dependent_chain_may_require_earlier_dependent() -> None:
    graph = _graph(
        _node("root", StageRole.CRITICAL),
        _node("research", StageRole.INDEPENDENT),
        _node("critique", StageRole.DEPENDENT, ("research",)),
        _node("challenge", StageRole.DEPENDENT, ("critique",)),
    )

    assert [node.name for node in graph.dependent] == ["critique", "challenge"]
    assert graph.visible_names(graph.node("challenge")) == ("root", "critique")


def test_visible_names_limit_what_each_role_sees() -> None:
    graph = _graph(
        _node("root", StageRole.CRITICAL),
        _node("a", StageRole.INDEPENDENT),
        _node("b", StageRole.INDEPENDENT),
        _node("dep", StageRole.DEPENDENT, ("b",)),
        _node("synth", StageRole.TERMINAL),
    )

    assert graph.visible_names(graph.node("root")) == ()
    assert graph.visible_names(graph.node("a")) == ("root",)
    assert graph.visible_names(graph.node("dep")) == ("root", "b")
    assert graph.visible_names(graph.node("synth")) == ("root", "a", "b", "dep")


def test_default_input_resolution_by_role() -> None:
    critical = _node("root", StageRole.CRITICAL)
    independent = _node("a", StageRole.INDEPENDENT)
    dependent = _node("dep", StageRole.DEPENDENT, ("a",))

    assert critical.resolve_input(StageContext(pipeline_input="query")) == "query"
    assert independent.resolve_input(StageContext("query", {"root": "answer"})) == "answer"
    assert dependent.resolve_input(StageContext("query", {"root": "answer", "a": "x"})) == {
        "root": "answer",
        "a": "x",
    }


def test_label_falls_back_to_task_name() -> None:
    node = _node("root", StageRole.CRITICAL)

    assert node.display_name == "root"
