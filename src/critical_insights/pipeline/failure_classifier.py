"""Deterministic classification of provider errors for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass

FAILURE_CLASSIFIER_VERSION = 1

_BILLING_OR_QUOTA_PATTERNS: tuple[str, ...] = (
    "quota",
    "resource_exhausted",
    "insufficient",
    "billing",
    "payment",
    "credits",
    "usage limit",
)
_ACCESS_OR_AUTH_PATTERNS: tuple[str, ...] = (
    "unauthorized",
    "forbidden",
    "permission denied",
    "invalid api key",
    "authentication",
)
_MODEL_NOT_AVAILABLE_PATTERNS: tuple[str, ...] = (
    "model not found",
    "unknown model",
    "unsupported model",
    "invalid model",
    "model is not available",
)
_RATE_LIMIT_PATTERNS: tuple[str, ...] = (
    "too many requests",
    "rate limit",
    "429",
    "please retry",
    "try again later",
)
_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "timed out",
    "timeout",
    "temporarily unavailable",
    "temporary failure",
    "connection reset",
    "connection refused",
    "network error",
    "could not resolve host",
)
_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("billing_or_quota", _BILLING_OR_QUOTA_PATTERNS),
    ("access_or_auth", _ACCESS_OR_AUTH_PATTERNS),
    ("model_not_available", _MODEL_NOT_AVAILABLE_PATTERNS),
    ("rate_limit_transient", _RATE_LIMIT_PATTERNS),
    ("backend_transient", _TRANSIENT_PATTERNS),
)


@dataclass(slots=True)
class ProviderFailureClassification:
    """Normalized classification of one provider error."""

    reason_code: str
    matched_rule: str
    matched_pattern: str | None
    transient: bool

    def to_event_context(self) -> dict[str, object]:
        """Serialize classifier diagnostics for a diagnostic event."""

        return {
            "classifier_version": FAILURE_CLASSIFIER_VERSION,
            "reason_code": self.reason_code,
            "matched_rule": self.matched_rule,
            "matched_pattern": self.matched_pattern,
            "transient": self.transient,
        }


def classify_provider_error(error: BaseException) -> ProviderFailureClassification:
    """Classify a raised provider error by type and message."""

    if isinstance(error, TimeoutError):
        return ProviderFailureClassification(
            reason_code="provider_timeout",
            matched_rule="timeout_error",
            matched_pattern=None,
            transient=True,
        )

    haystack = f"{type(error).__name__}\n{error}".lower()

    for rule, patterns in _RULES:
        pattern = _first_match(haystack, patterns)
        if pattern is not None:
            return ProviderFailureClassification(
                reason_code=f"provider_{rule}",
                matched_rule=rule,
                matched_pattern=pattern,
                transient=rule in {"rate_limit_transient", "backend_transient"},
            )

    transient_hint = getattr(error, "transient", None)
    if isinstance(transient_hint, bool):
        return ProviderFailureClassification(
            reason_code="provider_transient" if transient_hint else "provider_non_retryable",
            matched_rule="transient_hint",
            matched_pattern=None,
            transient=transient_hint,
        )

    return ProviderFailureClassification(
        reason_code="provider_unclassified",
        matched_rule="fallback_unclassified",
        matched_pattern=None,
        transient=False,
    )


def _first_match(haystack: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None
