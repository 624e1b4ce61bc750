"""Task providers: a deterministic echo agent and a subprocess CLI agent."""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
import tempfile
from pathlib import Path
from typing import Any

from critical_insights.analysis.prompts import render_prompt
from critical_insights.config import AgentSettings
from critical_insights.pipeline.schemas import PydanticSchema

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 400
_TRANSIENT_EXIT_CODES = (75, 124, 137)


class BackendRunError(RuntimeError):
    """Provider execution error with retryability hint."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class EchoAgentProvider:
    """Local deterministic agent for smoke runs; answers with JSON text."""

    def __init__(self, task_name: str) -> None:
        self.task_name = task_name

    async def __call__(self, task_input: Any) -> str:
        builder = _ECHO_BUILDERS.get(self.task_name)
        if builder is None:
            raise BackendRunError(
                f"Echo agent has no output for {self.task_name!r}",
                transient=False,
            )
        payload = builder(task_input)
        if isinstance(payload, str):
            return payload
        return json.dumps(payload, ensure_ascii=False)


class CliAgentProvider:
    """Run an external CLI agent per attempt and return its stdout.

    The command template may reference ``{prompt}``, ``{prompt_file}`` and
    ``{model}``.  Non-zero exit codes and timeouts raise `BackendRunError`,
    which the task invoker records and retries.
    """

    def __init__(self, task_name: str, schema: PydanticSchema, settings: AgentSettings) -> None:
        self.task_name = task_name
        self._schema = schema
        self._settings = settings

    async def __call__(self, task_input: Any) -> str:
        prompt = render_prompt(self.task_name, task_input, self._schema.json_schema())
        with tempfile.TemporaryDirectory(prefix="critical-insights-") as tmp_dir:
            prompt_file = Path(tmp_dir) / "task_prompt.txt"
            prompt_file.write_text(prompt, "utf-8")
            argv = build_run_args(
                command_template=self._settings.command_template,
                model=self._settings.model,
                prompt=prompt,
                prompt_file=prompt_file,
            )
            return await self._run(argv)

    async def _run(self, argv: list[str]) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as error:
            raise BackendRunError(
                f"CLI agent command not found: {argv[0]}",
                transient=False,
            ) from error
        except OSError as error:
            raise BackendRunError(f"CLI agent failed to start: {error}", transient=True) from error

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self._settings.timeout_seconds,
            )
        except TimeoutError as error:
            _kill(process)
            await process.wait()
            raise BackendRunError(
                f"CLI agent timed out after {self._settings.timeout_seconds:.0f}s",
                transient=True,
            ) from error

        if process.returncode != 0:
            tail = stderr.decode("utf-8", errors="replace").strip()[-_STDERR_TAIL_CHARS:]
            raise BackendRunError(
                f"CLI agent exit code {process.returncode}: {tail}",
                transient=process.returncode in _TRANSIENT_EXIT_CODES,
            )
        logger.debug("CLI agent for %s returned %d bytes", self.task_name, len(stdout))
        return stdout.decode("utf-8", errors="replace")


def build_run_args(
    *,
    command_template: str,
    model: str,
    prompt: str,
    prompt_file: Path,
) -> list[str]:
    """Render a POSIX command template into an argv list."""

    stripped = command_template.strip()
    if not stripped:
        raise BackendRunError("CLI agent command template is empty.", transient=False)
    if "{prompt}" not in stripped and "{prompt_file}" not in stripped:
        raise BackendRunError(
            "CLI agent command template must include {prompt} or {prompt_file}.",
            transient=False,
        )
    try:
        rendered = stripped.format(
            model=shlex.quote(model),
            prompt=shlex.quote(prompt),
            prompt_file=shlex.quote(str(prompt_file)),
        )
    except (KeyError, IndexError) as error:
        raise BackendRunError(
            f"Unsupported command template placeholder: {error}",
            transient=False,
        ) from error
    argv = shlex.split(rendered)
    if not argv:
        raise BackendRunError("CLI agent command template rendered empty command.", transient=False)
    return argv


def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        return


def _field(task_input: Any, name: str, default: Any = "") -> Any:
    if isinstance(task_input, dict):
        return task_input.get(name, default)
    return getattr(task_input, name, default)


def _short(text: str, limit: int = 60) -> str:
    compact = " ".join(str(text).split())
    return compact if len(compact) <= limit else f"{compact[:limit]}..."


def _echo_answer(task_input: Any) -> dict[str, Any]:
    return {"answer": f"Echo answer to: {_short(_field(task_input, 'query'))}"}


def _echo_assumptions(task_input: Any) -> list[dict[str, Any]]:
    answer = _short(_field(task_input, "answer"))
    return [
        {
            "assumption": f"The answer '{answer}' applies in general.",
            "risk": "Medium",
            "alternative": "The answer may only hold in specific contexts.",
        },
    ]


def _echo_evidence(stance: str) -> Any:
    def _build(task_input: Any) -> list[dict[str, Any]]:
        claim = _short(_field(task_input, "claim"))
        return [
            {
                "claim": claim,
                "support": f"Echo {stance} evidence for the claim.",
                "quality": "moderate",
                "source": "echo-agent",
            },
        ]

    return _build


def _echo_premortem(task_input: Any) -> list[dict[str, Any]]:
    return [
        {
            "failure": f"Key premise of '{_short(_field(task_input, 'answer'))}' is false.",
            "probability": "Low (10-30%)",
            "mitigation": "Verify the premise against primary sources.",
        },
    ]


def _echo_gaps(task_input: Any) -> list[dict[str, Any]]:  # noqa: ARG001
    return [{"gap": "No primary data was consulted.", "impact": "Medium"}]


def _echo_critique(task_input: Any) -> str:
    evidence = _field(task_input, "evidence", [])
    return f"Echo critique based on {len(evidence)} evidence items."


def _echo_challenges(task_input: Any) -> list[str]:
    return [f"Counterpoint to: {_short(_field(task_input, 'critique'))}"]


def _echo_synthesis(task_input: Any) -> dict[str, Any]:
    gaps = _field(task_input, "information_gaps", [])
    return {
        "confidence": "Medium",
        "summary": "Echo synthesis of all analyses.",
        "keyStrengths": ["Answer was produced."],
        "keyWeaknesses": [f"{len(_field(task_input, 'challenges', []))} challenges raised."],
        "actionableRecommendations": ["Validate with a real model backend."],
        "remainingUncertainties": [_field(gap, "gap") for gap in gaps],
    }


_ECHO_BUILDERS = {
    "initial_answer": _echo_answer,
    "assumptions": _echo_assumptions,
    "research": _echo_evidence("supporting"),
    "counter_evidence": _echo_evidence("counter"),
    "premortem_analysis": _echo_premortem,
    "information_gaps": _echo_gaps,
    "critique": _echo_critique,
    "challenges": _echo_challenges,
    "synthesis": _echo_synthesis,
}
