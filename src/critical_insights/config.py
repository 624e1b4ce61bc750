"""Runtime configuration for the analysis pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

SUPPORTED_BACKENDS = ("echo", "cli")
SUPPORTED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(slots=True)
class RetrySettings:
    """Per-task retry policy applied by the task invoker."""

    max_attempts: int = 3
    backoff_base_seconds: float = 1.0


@dataclass(slots=True)
class AgentSettings:
    """How task providers reach the model."""

    backend: str = "echo"
    command_template: str = "claude -p {prompt}"
    model: str = ""
    timeout_seconds: float = 600.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    retry: RetrySettings = field(default_factory=RetrySettings)
    agent: AgentSettings = field(default_factory=AgentSettings)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults suitable for local runs."""

        return cls(
            retry=RetrySettings(
                max_attempts=_env_int("CRITICAL_INSIGHTS_MAX_ATTEMPTS", 3),
                backoff_base_seconds=_env_float("CRITICAL_INSIGHTS_BACKOFF_BASE_SECONDS", 1.0),
            ),
            agent=AgentSettings(
                backend=os.getenv("CRITICAL_INSIGHTS_AGENT_BACKEND", "echo").strip().lower(),
                command_template=os.getenv(
                    "CRITICAL_INSIGHTS_AGENT_COMMAND",
                    "claude -p {prompt}",
                ),
                model=os.getenv("CRITICAL_INSIGHTS_AGENT_MODEL", "").strip(),
                timeout_seconds=_env_float("CRITICAL_INSIGHTS_AGENT_TIMEOUT_SECONDS", 600.0),
            ),
            log_level=os.getenv("CRITICAL_INSIGHTS_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if self.retry.max_attempts < 1:
            raise ValueError("CRITICAL_INSIGHTS_MAX_ATTEMPTS must be >= 1.")
        if self.retry.backoff_base_seconds < 0:
            raise ValueError("CRITICAL_INSIGHTS_BACKOFF_BASE_SECONDS must be >= 0.")
        if self.agent.backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"CRITICAL_INSIGHTS_AGENT_BACKEND must be one of {', '.join(SUPPORTED_BACKENDS)}, "
                f"got {self.agent.backend!r}.",
            )
        if self.agent.backend == "cli" and "{prompt" not in self.agent.command_template:
            raise ValueError(
                "CRITICAL_INSIGHTS_AGENT_COMMAND must include {prompt} or {prompt_file}.",
            )
        if self.agent.timeout_seconds <= 0:
            raise ValueError("CRITICAL_INSIGHTS_AGENT_TIMEOUT_SECONDS must be > 0.")
        if self.log_level not in SUPPORTED_LOG_LEVELS:
            raise ValueError(
                f"CRITICAL_INSIGHTS_LOG_LEVEL must be one of {', '.join(SUPPORTED_LOG_LEVELS)}.",
            )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {raw!r}") from error
