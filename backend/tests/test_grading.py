"""Tests for quiz grading: grade table, motivation bands and the AI/fallback paths."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from kapsa.errors import InferenceFailed
from kapsa.services import grading, inference_client
from kapsa.services.language import ENGLISH, SPANISH


def _question(question: str, correct_answer: str):
    return SimpleNamespace(id=uuid4(), question=question, correct_answer=correct_answer)


@pytest.mark.parametrize(
    "score,grade",
    [
        (1.0, "A+"),
        (0.97, "A+"),
        (0.965, "A"),
        (0.95, "A"),
        (0.9, "A-"),
        (0.85, "B"),
        (0.75, "C"),
        (0.6, "D"),
        (0.59, "F"),
        (0.0, "F"),
    ],
)
def test_calculate_grade(score, grade):
    assert grading.calculate_grade(score) == grade


def test_motivation_bands():
    english = grading.MOTIVATION[ENGLISH]
    assert grading.motivation_text(0.95, ENGLISH) == english[0]
    assert grading.motivation_text(0.7, ENGLISH) == english[1]
    assert grading.motivation_text(0.5, ENGLISH) == english[2]
    assert grading.motivation_text(0.2, ENGLISH) == english[3]
    assert grading.motivation_text(1.0, SPANISH).startswith("¡Trabajo excepcional!")
    assert grading.motivation_text(1.0, "Klingon") == english[0]


@pytest.mark.parametrize(
    "user_answer,correct,expected",
    [
        ("paris", "Paris", True),
        ("  ATP ", "Produces ATP", True),
        ("", "ATP", False),
        ("   ", "ATP", False),
        ("glucose", "ATP", False),
    ],
)
def test_answers_match(user_answer, correct, expected):
    assert grading.answers_match(user_answer, correct) is expected


async def test_model_grading_uses_entries_in_order():
    q1 = _question("Capital of France?", "Paris")
    q2 = _question("What does the mitochondria produce?", "ATP")
    answers = {q1.id: "Paris", q2.id: "sugar"}
    raw = '[{"is_correct": true, "ai_insight": "Exactly right."}, {"is_correct": "true"}]'

    with patch.object(inference_client, "generate_text", new=AsyncMock(return_value=raw)) as mock:
        graded = await grading.grade_answers([q1, q2], answers, ENGLISH)

    assert [g.is_correct for g in graded] == [True, False]
    assert graded[0].ai_insight == "Exactly right."
    assert graded[1].ai_insight == grading.DEFAULT_INSIGHTS[ENGLISH][1]
    assert graded[1].user_answer == "sugar"
    prompt = mock.await_args.args[0]
    assert "Student Answer: sugar" in prompt


async def test_missing_evaluation_entries_are_incorrect():
    q1 = _question("Q1", "A")
    q2 = _question("Q2", "B")
    raw = '[{"is_correct": true, "ai_insight": "Good"}]'

    with patch.object(inference_client, "generate_text", new=AsyncMock(return_value=raw)):
        graded = await grading.grade_answers([q1, q2], {q1.id: "A", q2.id: "B"}, ENGLISH)

    assert graded[1].is_correct is False


async def test_falls_back_to_string_matching_on_inference_failure():
    q1 = _question("Capital of France?", "Paris")
    q2 = _question("What does the mitochondria produce?", "ATP")

    with patch.object(inference_client, "generate_text", new=AsyncMock(side_effect=InferenceFailed())):
        graded = await grading.grade_answers([q1, q2], {q1.id: "paris"}, SPANISH)

    assert [g.is_correct for g in graded] == [True, False]
    assert graded[0].ai_insight == grading.FALLBACK_INSIGHTS[SPANISH][0]
    assert graded[1].user_answer == ""
    assert graded[1].ai_insight == grading.FALLBACK_INSIGHTS[SPANISH][1]


async def test_falls_back_on_unparsable_output():
    q1 = _question("Q1", "mitochondria")

    with patch.object(inference_client, "generate_text", new=AsyncMock(return_value="All correct!")):
        graded = await grading.grade_answers([q1], {q1.id: "Mitochondria"}, ENGLISH)

    assert graded[0].is_correct is True


async def test_no_questions_skips_the_model():
    mock = AsyncMock()
    with patch.object(inference_client, "generate_text", new=mock):
        assert await grading.grade_answers([], {}, ENGLISH) == []
    mock.assert_not_awaited()
