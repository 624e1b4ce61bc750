"""Schema contracts deciding whether a task result is usable."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import PydanticInvalidForJsonSchema, TypeAdapter, ValidationError

from critical_insights.pipeline.models import FailureClass

_MAX_REPORTED_ERRORS = 3


@dataclass(slots=True)
class ValidationResult:
    """Result of validating one candidate value against a schema."""

    is_valid: bool
    failure_class: FailureClass | None
    error_summary: str | None
    payload: Any = None

    @classmethod
    def ok(cls, payload: Any) -> ValidationResult:
        return cls(is_valid=True, failure_class=None, error_summary=None, payload=payload)

    @classmethod
    def failed(cls, failure_class: FailureClass, error_summary: str) -> ValidationResult:
        return cls(is_valid=False, failure_class=failure_class, error_summary=error_summary)


class SchemaContract(Protocol):
    """Structural shape expected from one task's result."""

    name: str
    accepts_text: bool

    def validate(self, value: object) -> ValidationResult:
        """Validate ``value`` and return the normalized payload on success."""

    def dump(self, value: Any) -> Any:
        """Convert a valid value into JSON-compatible data."""


class PydanticSchema:
    """`SchemaContract` backed by a pydantic ``TypeAdapter``.

    Accepts any type pydantic understands: models, ``list[Model]``, ``str``,
    annotated constrained types.  When the declared shape is plain text,
    ``accepts_text`` is set so the invoker does not try to JSON-decode it.
    """

    def __init__(self, shape: Any, *, name: str | None = None) -> None:
        self._adapter: TypeAdapter[Any] = TypeAdapter(shape)
        self.name = name or _shape_name(shape)
        self.accepts_text = _is_text_shape(self._adapter)

    def validate(self, value: object) -> ValidationResult:
        if value is None:
            return ValidationResult.failed(
                FailureClass.OUTPUT_SHAPE_ERROR,
                f"{self.name}: output is empty (null).",
            )
        try:
            payload = self._adapter.validate_python(value)
        except ValidationError as error:
            return ValidationResult.failed(
                FailureClass.SCHEMA_VALIDATION_ERROR,
                f"{self.name}: {summarize_validation_error(error)}",
            )
        return ValidationResult.ok(payload)

    def dump(self, value: Any) -> Any:
        return self._adapter.dump_python(value, mode="json", by_alias=True)

    def json_schema(self) -> dict[str, Any]:
        return self._adapter.json_schema(by_alias=True)


def summarize_validation_error(error: ValidationError) -> str:
    """Render the first few pydantic errors as one compact line."""

    parts: list[str] = []
    for item in error.errors()[:_MAX_REPORTED_ERRORS]:
        location = ".".join(str(token) for token in item.get("loc", ())) or "<root>"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    remaining = error.error_count() - len(parts)
    if remaining > 0:
        parts.append(f"... and {remaining} more")
    return "; ".join(parts)


def _shape_name(shape: Any) -> str:
    return getattr(shape, "__name__", None) or repr(shape)


def _is_text_shape(adapter: TypeAdapter[Any]) -> bool:
    try:
        schema = adapter.json_schema()
    except PydanticInvalidForJsonSchema:
        return False
    return schema.get("type") == "string"
