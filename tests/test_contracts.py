from __future__ import annotations

import allure
import pytest
from pydantic import ValidationError

from critical_insights.analysis.contracts import (
    DEFAULT_INITIAL_ANSWER,
    INITIAL_ANSWER_FAILED,
    InitialAnswer,
)
from critical_insights.analysis.tasks import DEFAULTS, INITIAL_ANSWER, SCHEMAS, TASK_NAMES

pytestmark = [
    allure.epic("Critical Insights"),
    allure.feature("Task Contracts"),
]


@pytest.mark.parametrize("answer", [INITIAL_ANSWER_FAILED, f"  {INITIAL_ANSWER_FAILED} "])
def test_initial_answer_rejects_failure_marker(answer) -> None:
    with pytest.raises(ValidationError, match="failure marker"):
        InitialAnswer(answer=answer)


def test_initial_answer_schema_rejects_marker_but_keeps_default_valid() -> None:
    schema = SCHEMAS[INITIAL_ANSWER]

    assert not schema.validate({"answer": INITIAL_ANSWER_FAILED}).is_valid
    assert schema.validate(DEFAULT_INITIAL_ANSWER).is_valid
    assert DEFAULT_INITIAL_ANSWER.answer == INITIAL_ANSWER_FAILED


@pytest.mark.parametrize("task_name", TASK_NAMES)
def test_every_default_satisfies_its_schema(task_name) -> None:
    assert SCHEMAS[task_name].validate(DEFAULTS[task_name]).is_valid
