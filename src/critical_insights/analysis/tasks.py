"""Stage graph of the critical-insights analysis pipeline."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from critical_insights.analysis.backend import CliAgentProvider, EchoAgentProvider
from critical_insights.analysis.contracts import (
    CRITIQUE_FAILED,
    DEFAULT_INITIAL_ANSWER,
    DEFAULT_SYNTHESIS,
    AnalysisQuery,
    AnswerInput,
    Assumption,
    ChallengeInput,
    ClaimInput,
    CritiqueInput,
    CritiqueText,
    Evidence,
    InformationGap,
    InitialAnswer,
    PotentialFailure,
    Synthesis,
    SynthesisInput,
)
from critical_insights.config import RetrySettings, Settings
from critical_insights.pipeline.coordinator import PipelineCoordinator
from critical_insights.pipeline.events import EventSink
from critical_insights.pipeline.graph import StageContext, StageGraph, StageNode, StageRole
from critical_insights.pipeline.invoker import TaskProvider, TaskSpec
from critical_insights.pipeline.schemas import PydanticSchema

INITIAL_ANSWER = "initial_answer"
ASSUMPTIONS = "assumptions"
RESEARCH = "research"
COUNTER_EVIDENCE = "counter_evidence"
PREMORTEM = "premortem_analysis"
INFORMATION_GAPS = "information_gaps"
CRITIQUE = "critique"
CHALLENGES = "challenges"
SYNTHESIS = "synthesis"

TASK_NAMES: tuple[str, ...] = (
    INITIAL_ANSWER,
    ASSUMPTIONS,
    RESEARCH,
    COUNTER_EVIDENCE,
    PREMORTEM,
    INFORMATION_GAPS,
    CRITIQUE,
    CHALLENGES,
    SYNTHESIS,
)

SCHEMAS: dict[str, PydanticSchema] = {
    INITIAL_ANSWER: PydanticSchema(InitialAnswer),
    ASSUMPTIONS: PydanticSchema(list[Assumption], name="assumptions"),
    RESEARCH: PydanticSchema(list[Evidence], name="research"),
    COUNTER_EVIDENCE: PydanticSchema(list[Evidence], name="counter_evidence"),
    PREMORTEM: PydanticSchema(list[PotentialFailure], name="premortem_analysis"),
    INFORMATION_GAPS: PydanticSchema(list[InformationGap], name="information_gaps"),
    CRITIQUE: PydanticSchema(CritiqueText, name="critique"),
    CHALLENGES: PydanticSchema(list[str], name="challenges"),
    SYNTHESIS: PydanticSchema(Synthesis),
}

DEFAULTS: dict[str, object] = {
    INITIAL_ANSWER: DEFAULT_INITIAL_ANSWER,
    ASSUMPTIONS: [],
    RESEARCH: [],
    COUNTER_EVIDENCE: [],
    PREMORTEM: [],
    INFORMATION_GAPS: [],
    CRITIQUE: CRITIQUE_FAILED,
    CHALLENGES: [],
    SYNTHESIS: DEFAULT_SYNTHESIS,
}

LABELS: dict[str, str] = {
    INITIAL_ANSWER: "Initial Answer",
    ASSUMPTIONS: "Assumptions",
    RESEARCH: "Supporting Evidence",
    COUNTER_EVIDENCE: "Counter Evidence",
    PREMORTEM: "Potential Failures",
    INFORMATION_GAPS: "Information Gaps",
    CRITIQUE: "Critique",
    CHALLENGES: "Challenges",
    SYNTHESIS: "Final Synthesis",
}

INPUT_SCHEMA = PydanticSchema(AnalysisQuery)


def _answer_text(context: StageContext) -> str:
    return context[INITIAL_ANSWER].answer


def _answer_input(context: StageContext) -> AnswerInput:
    return AnswerInput(answer=_answer_text(context))


def _claim_input(context: StageContext) -> ClaimInput:
    return ClaimInput(claim=_answer_text(context))


def _critique_input(context: StageContext) -> CritiqueInput:
    return CritiqueInput(answer=_answer_text(context), evidence=context[RESEARCH])


def _challenge_input(context: StageContext) -> ChallengeInput:
    return ChallengeInput(answer=_answer_text(context), critique=context[CRITIQUE])


def _synthesis_input(context: StageContext) -> SynthesisInput:
    return SynthesisInput(
        initial_answer=context[INITIAL_ANSWER],
        assumptions=context[ASSUMPTIONS],
        evidence=context[RESEARCH],
        counter_evidence=context[COUNTER_EVIDENCE],
        critique=context[CRITIQUE],
        challenges=context[CHALLENGES],
        potential_failures=context[PREMORTEM],
        information_gaps=context[INFORMATION_GAPS],
    )


_LAYOUT: tuple[tuple[str, StageRole, tuple[str, ...], Callable[[StageContext], object]], ...] = (
    (INITIAL_ANSWER, StageRole.CRITICAL, (), lambda context: context.pipeline_input),
    (ASSUMPTIONS, StageRole.INDEPENDENT, (), _answer_input),
    (RESEARCH, StageRole.INDEPENDENT, (), _claim_input),
    (COUNTER_EVIDENCE, StageRole.INDEPENDENT, (), _claim_input),
    (PREMORTEM, StageRole.INDEPENDENT, (), _answer_input),
    (INFORMATION_GAPS, StageRole.INDEPENDENT, (), _answer_input),
    (CRITIQUE, StageRole.DEPENDENT, (RESEARCH,), _critique_input),
    (CHALLENGES, StageRole.DEPENDENT, (CRITIQUE,), _challenge_input),
    (SYNTHESIS, StageRole.TERMINAL, (), _synthesis_input),
)


def build_analysis_graph(
    providers: Mapping[str, TaskProvider],
    *,
    retry: RetrySettings | None = None,
    overrides: Mapping[str, RetrySettings] | None = None,
) -> StageGraph:
    """Wire the nine analysis tasks into a stage graph.

    ``providers`` must supply one async callable per name in `TASK_NAMES`.
    ``overrides`` replaces the retry policy for individual tasks.
    """

    missing = [name for name in TASK_NAMES if name not in providers]
    if missing:
        raise ValueError(f"Missing providers for tasks: {', '.join(missing)}")
    retry = retry or RetrySettings()
    overrides = overrides or {}

    nodes: list[StageNode] = []
    for name, role, requires, builder in _LAYOUT:
        policy = overrides.get(name, retry)
        nodes.append(
            StageNode(
                spec=TaskSpec(
                    name=name,
                    provider=providers[name],
                    schema=SCHEMAS[name],
                    default=DEFAULTS[name],
                    max_attempts=policy.max_attempts,
                    backoff_base_seconds=policy.backoff_base_seconds,
                ),
                role=role,
                requires=requires,
                build_input=builder,
                label=LABELS[name],
            ),
        )
    return StageGraph(nodes)


def build_providers(settings: Settings) -> dict[str, TaskProvider]:
    """Providers for every task according to the configured backend."""

    if settings.agent.backend == "cli":
        return {
            name: CliAgentProvider(name, SCHEMAS[name], settings.agent) for name in TASK_NAMES
        }
    return {name: EchoAgentProvider(name) for name in TASK_NAMES}


def build_analysis_coordinator(
    settings: Settings,
    *,
    providers: Mapping[str, TaskProvider] | None = None,
    sink: EventSink | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> PipelineCoordinator:
    """Coordinator for the analysis graph with input validation enabled."""

    graph = build_analysis_graph(
        providers if providers is not None else build_providers(settings),
        retry=settings.retry,
    )
    return PipelineCoordinator(
        graph,
        input_schema=INPUT_SCHEMA,
        sink=sink,
        on_progress=on_progress,
    )
