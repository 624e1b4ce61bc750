"""Prompt rendering for CLI-agent providers.

The prompt embeds the task input and the JSON schema the answer must satisfy.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

TASK_INSTRUCTIONS: dict[str, str] = {
    "initial_answer": "Answer the question comprehensively and with clear reasoning.",
    "assumptions": "List the hidden assumptions in the answer, their risk and an alternative view.",
    "research": "Find up to 10 pieces of evidence supporting the claim.",
    "counter_evidence": "Find up to 10 pieces of evidence challenging the claim.",
    "premortem_analysis": "Imagine the answer turned out wrong: list how it fails and mitigations.",
    "information_gaps": "List missing information critical to evaluating the answer.",
    "critique": "Critically analyze the answer against the supporting evidence.",
    "challenges": "Act as devil's advocate: list counterarguments to the answer and critique.",
    "synthesis": "Synthesize all analyses into a final assessment.",
}


def render_prompt(task_name: str, task_input: Any, output_schema: dict[str, Any]) -> str:
    """Build the full prompt text for one task attempt."""

    instruction = TASK_INSTRUCTIONS.get(task_name, f"Perform the {task_name} analysis.")
    return (
        f"{instruction}\n"
        f"\n"
        f"Input (JSON):\n"
        f"{_dump_input(task_input)}\n"
        f"\n"
        f"Return ONLY valid JSON matching this JSON schema, with no text before or after it:\n"
        f"{json.dumps(output_schema, ensure_ascii=False, indent=2)}\n"
    )


def _dump_input(task_input: Any) -> str:
    if isinstance(task_input, BaseModel):
        return task_input.model_dump_json(by_alias=True, indent=2)
    return json.dumps(task_input, ensure_ascii=False, indent=2, default=str)
