"""Tests for quiz generation and evaluation."""

import json
import uuid
from unittest.mock import AsyncMock, patch

from sqlalchemy import select

from kapsa.db.models import Test, TestQuestion
from kapsa.errors import InferenceTimeout
from kapsa.services import grading, inference_client
from kapsa.services.language import ENGLISH

QUESTIONS = [
    {"question": "What is the powerhouse of the cell?", "correct_answer": "The mitochondria"},
    {"question": "What molecule stores energy?", "correct_answer": "ATP"},
    {"question": "What surrounds the cell?", "correct_answer": "The membrane"},
]


async def test_generate_quiz(client, auth_headers, session_factory, course, material):
    mock = AsyncMock(return_value=json.dumps(QUESTIONS))
    with patch.object(inference_client, "generate_text", new=mock):
        response = await client.post(
            "/ai-generate-quiz",
            json={"action": "generate", "courseId": str(course.id), "count": 3},
            headers=auth_headers,
        )

    assert response.status_code == 200
    data = response.json()
    assert data["test"]["title"] == "Biology 101 - Quiz"
    assert data["test"]["status"] == "questions_generated"
    assert data["test"]["total_count"] == 3
    assert data["test"]["score"] is None
    assert sorted(q["question_number"] for q in data["questions"]) == [1, 2, 3]
    assert "generate 3 quiz questions" in mock.await_args.args[0]

    async with session_factory() as session:
        rows = (await session.execute(select(TestQuestion))).scalars().all()
    assert len(rows) == 3


async def test_generate_quiz_count_is_clamped(client, auth_headers, course):
    mock = AsyncMock(return_value=json.dumps(QUESTIONS))
    with patch.object(inference_client, "generate_text", new=mock):
        response = await client.post(
            "/ai-generate-quiz",
            json={"action": "generate", "courseId": str(course.id), "count": 0},
            headers=auth_headers,
        )

    assert response.status_code == 200
    assert "generate 1 quiz questions" in mock.await_args.args[0]
    assert response.json()["test"]["total_count"] == 1


async def test_generate_invalid_course_id_never_calls_model(client, auth_headers):
    mock = AsyncMock()
    with patch.object(inference_client, "generate_text", new=mock):
        response = await client.post(
            "/ai-generate-quiz",
            json={"action": "generate", "courseId": "12345"},
            headers=auth_headers,
        )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid course ID"}
    mock.assert_not_awaited()


async def test_evaluate_invalid_test_id_never_calls_model(client, auth_headers, quiz):
    _, (q1, _) = quiz
    mock = AsyncMock()
    with patch.object(inference_client, "generate_text", new=mock):
        response = await client.post(
            "/ai-generate-quiz",
            json={"action": "evaluate", "testId": "abc", "answers": [{"questionId": str(q1.id), "answer": "Paris"}]},
            headers=auth_headers,
        )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid test ID"}
    mock.assert_not_awaited()


async def test_invalid_action(client, auth_headers, course):
    response = await client.post(
        "/ai-generate-quiz",
        json={"action": "explode", "courseId": str(course.id)},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid action"}


async def test_evaluate_with_model(client, auth_headers, session_factory, quiz):
    test, (q1, q2) = quiz
    raw = '[{"is_correct": true, "ai_insight": "Spot on."}, {"is_correct": false}]'
    with patch.object(inference_client, "generate_text", new=AsyncMock(return_value=raw)):
        response = await client.post(
            "/ai-generate-quiz",
            json={
                "action": "evaluate",
                "testId": str(test.id),
                "answers": [
                    {"questionId": str(q1.id), "answer": "Paris"},
                    {"questionId": str(q2.id), "answer": "Glucose"},
                ],
            },
            headers=auth_headers,
        )

    assert response.status_code == 200
    data = response.json()
    assert data["test"]["status"] == "evaluated"
    assert data["test"]["correct_count"] == 1
    assert data["test"]["score"] == 0.5
    assert data["test"]["grade"] == "F"
    assert data["test"]["motivation_text"] == grading.MOTIVATION[ENGLISH][2]

    by_number = {q["question_number"]: q for q in data["questions"]}
    assert by_number[1]["is_correct"] is True
    assert by_number[1]["ai_insight"] == "Spot on."
    assert by_number[2]["is_correct"] is False
    assert by_number[2]["user_answer"] == "Glucose"
    assert by_number[2]["ai_insight"] == grading.DEFAULT_INSIGHTS[ENGLISH][1]

    async with session_factory() as session:
        stored = (await session.execute(select(Test).where(Test.id == test.id))).scalar_one()
    assert stored.status == "evaluated"
    assert stored.score == 0.5


async def test_evaluate_falls_back_when_model_fails(client, auth_headers, quiz):
    test, (q1, q2) = quiz
    with patch.object(inference_client, "generate_text", new=AsyncMock(side_effect=InferenceTimeout())):
        response = await client.post(
            "/ai-generate-quiz",
            json={
                "action": "evaluate",
                "testId": str(test.id),
                "answers": [
                    {"questionId": str(q1.id), "answer": "paris"},
                    {"questionId": str(uuid.uuid4()), "answer": "ATP"},
                ],
            },
            headers=auth_headers,
        )

    assert response.status_code == 200
    data = response.json()
    by_number = {q["question_number"]: q for q in data["questions"]}
    assert by_number[1]["is_correct"] is True
    assert by_number[1]["ai_insight"] == grading.FALLBACK_INSIGHTS[ENGLISH][0]
    # the answer sent for an unknown question id is ignored
    assert by_number[2]["user_answer"] == ""
    assert by_number[2]["is_correct"] is False
    assert data["test"]["score"] == 0.5


async def test_evaluate_requires_answers(client, auth_headers, quiz):
    test, _ = quiz
    response = await client.post(
        "/ai-generate-quiz",
        json={"action": "evaluate", "testId": str(test.id), "answers": []},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Answers are required"}


async def test_evaluate_rejects_non_string_answer(client, auth_headers, quiz):
    test, (q1, _) = quiz
    response = await client.post(
        "/ai-generate-quiz",
        json={"action": "evaluate", "testId": str(test.id), "answers": [{"questionId": str(q1.id), "answer": 4}]},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid answer format"}


async def test_evaluate_other_users_test(client, other_user, quiz, token_factory):
    test, (q1, _) = quiz
    response = await client.post(
        "/ai-generate-quiz",
        json={"action": "evaluate", "testId": str(test.id), "answers": [{"questionId": str(q1.id), "answer": "x"}]},
        headers={"Authorization": f"Bearer {token_factory(other_user.id)}"},
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Test not found"}
