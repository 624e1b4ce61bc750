"""Typed input/output contracts and degraded defaults for analysis tasks."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

NonBlankText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
RiskLevel = Literal["High", "Medium", "Low"]
EvidenceQuality = Literal["high", "moderate", "low"]

INITIAL_ANSWER_FAILED = "Initial answer generation failed."
CRITIQUE_FAILED = "Critique generation failed."


class _Contract(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class AnalysisQuery(_Contract):
    """Pipeline input: the user's question."""

    query: NonBlankText = Field(..., description="Question to answer and analyze.")


class InitialAnswer(_Contract):
    """Output of the responder (critical) task."""

    answer: NonBlankText = Field(..., description="Comprehensive, well-reasoned answer.")

    @field_validator("answer")
    @classmethod
    def _reject_failure_marker(cls, value: str) -> str:
        if value == INITIAL_ANSWER_FAILED:
            raise ValueError("answer repeats the generation failure marker")
        return value


class AnswerInput(_Contract):
    answer: str


class ClaimInput(_Contract):
    claim: str


class Assumption(_Contract):
    assumption: str = Field(..., description="Hidden assumption being made.")
    risk: RiskLevel
    alternative: str = Field(..., description="Perspective that challenges the assumption.")


class Evidence(_Contract):
    """One piece of supporting or counter evidence."""

    claim: str = Field(..., description="Aspect of the claim being supported or challenged.")
    support: str = Field(..., description="Evidence with statistics, studies or consensus.")
    quality: EvidenceQuality
    source: str = Field(..., description="Source citation.")


class PotentialFailure(_Contract):
    failure: str
    probability: str = Field(..., description="High (60-80%) | Moderate (30-60%) | Low (10-30%)")
    mitigation: str


class InformationGap(_Contract):
    gap: str
    impact: RiskLevel


class CritiqueInput(_Contract):
    answer: str
    evidence: list[Evidence]


class ChallengeInput(_Contract):
    answer: str
    critique: str


class SynthesisInput(_Contract):
    """Everything the terminal task sees, degraded values included."""

    initial_answer: InitialAnswer
    assumptions: list[Assumption]
    evidence: list[Evidence]
    counter_evidence: list[Evidence]
    critique: str
    challenges: list[str]
    potential_failures: list[PotentialFailure]
    information_gaps: list[InformationGap]


class Synthesis(_Contract):
    """Output of the terminal synthesis task."""

    confidence: RiskLevel
    summary: str
    key_strengths: list[str]
    key_weaknesses: list[str]
    actionable_recommendations: list[str]
    remaining_uncertainties: list[str]


CritiqueText = NonBlankText

# Built without validation: the marker is only valid as the degraded default.
DEFAULT_INITIAL_ANSWER = InitialAnswer.model_construct(answer=INITIAL_ANSWER_FAILED)
DEFAULT_SYNTHESIS = Synthesis(
    confidence="Medium",
    summary="Final synthesis could not be generated.",
    key_strengths=[],
    key_weaknesses=[],
    actionable_recommendations=[],
    remaining_uncertainties=["Synthesis step failed or was skipped."],
)
