"""Best-effort recovery of structured data from text task output."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\[{].*?[\]}])\s*```", re.DOTALL | re.IGNORECASE)
_BRACKETS = (("{", "}"), ("[", "]"))


@dataclass(slots=True)
class CoercionResult:
    """Outcome of turning a raw provider result into a candidate value."""

    value: Any
    parsed_from_text: bool
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def coerce_raw_output(raw: object, *, accepts_text: bool = False) -> CoercionResult:
    """Prepare a raw provider result for schema validation.

    Structured values pass through untouched.  Text is decoded as JSON unless
    the target shape is text itself, in which case it is kept verbatim.
    """

    if isinstance(raw, bytes | bytearray):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as error:
            return CoercionResult(
                value=None,
                parsed_from_text=False,
                error=f"Output bytes are not UTF-8: {error}",
            )
    if not isinstance(raw, str):
        return CoercionResult(value=raw, parsed_from_text=False)
    if accepts_text:
        return CoercionResult(value=raw, parsed_from_text=False)

    text = raw.strip()
    if not text:
        return CoercionResult(value=None, parsed_from_text=True, error="Output text is empty.")
    found, payload = parse_json_payload(text)
    if not found:
        return CoercionResult(
            value=None,
            parsed_from_text=True,
            error=f"Output text is not valid JSON: {_preview(text)}",
        )
    return CoercionResult(value=payload, parsed_from_text=True)


def parse_json_payload(text: str) -> tuple[bool, Any]:
    """Find a JSON document in ``text``: whole text, fenced block, or bracketed span."""

    found, payload = _try_load(text)
    if found:
        return True, payload

    for match in _FENCED_JSON.finditer(text):
        found, payload = _try_load(match.group(1))
        if found:
            return True, payload

    for opening, closing in sorted(_BRACKETS, key=lambda pair: _position(text, pair[0])):
        start = text.find(opening)
        end = text.rfind(closing)
        if start == -1 or end == -1 or end <= start:
            continue
        found, payload = _try_load(text[start : end + 1])
        if found:
            return True, payload
    return False, None


def _try_load(raw: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(raw)
    except (ValueError, RecursionError):
        return False, None


def _position(text: str, char: str) -> int:
    index = text.find(char)
    return len(text) if index == -1 else index


def _preview(text: str, limit: int = 80) -> str:
    compact = " ".join(text.split())
    if len(compact) <= limit:
        return compact
    return f"{compact[:limit]}..."
