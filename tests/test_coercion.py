from __future__ import annotations

import allure
import pytest

from critical_insights.pipeline.coercion import coerce_raw_output, parse_json_payload

pytestmark = [
    allure.epic("Pipeline Coordination"),
    allure.feature("Output Coercion"),
]


def test_structured_values_pass_through_untouched() -> None:
    value = [{"a": 1}]
    result = coerce_raw_output(value)

    assert result.ok
    assert result.value is value
    assert result.parsed_from_text is False


def test_json_text_is_decoded() -> None:
    result = coerce_raw_output('[{"a":1}]')

    assert result.ok
    assert result.value == [{"a": 1}]
    assert result.parsed_from_text is True


def test_bytes_are_decoded_before_parsing() -> None:
    assert coerce_raw_output(b'{"answer": "yes"}').value == {"answer": "yes"}


def test_invalid_utf8_bytes_are_rejected() -> None:
    result = coerce_raw_output(b"\xff\xfe")

    assert not result.ok
    assert "not UTF-8" in (result.error or "")


def test_text_shape_keeps_raw_text() -> None:
    result = coerce_raw_output('["not", "parsed"]', accepts_text=True)

    assert result.value == '["not", "parsed"]'


@pytest.mark.parametrize("raw", ["", "   \n"])
def test_blank_text_is_an_error(raw) -> None:
    result = coerce_raw_output(raw)

    assert result.error == "Output text is empty."


def test_non_json_text_reports_preview() -> None:
    result = coerce_raw_output("I could not   find any evidence.")

    assert result.error == "Output text is not valid JSON: I could not find any evidence."


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('{"a": 1}', {"a": 1}),
        ('Here you go:\n```json\n[1, 2]\n```\nDone.', [1, 2]),
        ('```\n{"b": true}\n```', {"b": True}),
        ('Result: {"c": [1]} as requested', {"c": [1]}),
        ('Items: [{"d": 1}] and {"ignored": 1}', [{"d": 1}]),
    ],
)
def test_parse_json_payload_recovers_embedded_documents(text, expected) -> None:
    found, payload = parse_json_payload(text)

    assert found
    assert payload == expected


def test_parse_json_payload_reports_missing_document() -> None:
    assert parse_json_payload("no brackets here") == (False, None)


def test_too_deeply_nested_json_is_reported_as_unparseable() -> None:
    result = coerce_raw_output("[" * 100_000 + "]" * 100_000)

    assert not result.ok
    assert result.error is not None
    assert result.error.startswith("Output text is not valid JSON:")
