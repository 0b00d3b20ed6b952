"""Tests for the personal study assistant (insights, chat, calendar suggestions)."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from sqlalchemy import func, select

from kapsa.db.models import CalendarEvent, CourseMaterial, Test, TestQuestion
from kapsa.services import inference_client


async def _post(client, headers, body):
    return await client.post("/ai-assistant", json=body, headers=headers)


async def test_insights(client, auth_headers, course):
    raw = 'Here is one: {"title": "Exam coming up", "body": "Review cell biology tonight.", "type": "exam_prep"}'
    mock = AsyncMock(return_value=raw)
    with patch.object(inference_client, "chat", new=mock):
        response = await _post(client, auth_headers, {"mode": "insights"})

    assert response.status_code == 200
    assert response.json() == {
        "title": "Exam coming up",
        "body": "Review cell biology tonight.",
        "type": "exam_prep",
    }
    system_prompt = mock.await_args.kwargs["system_prompt"]
    assert "- Name: Ana Lopez" in system_prompt
    assert "- Streak: 3 days" in system_prompt
    assert "- Biology 101 (0%)" in system_prompt


async def test_insight_with_unknown_type(client, auth_headers):
    raw = '{"title": "Keep going", "body": "Nice streak.", "type": "celebration"}'
    with patch.object(inference_client, "chat", new=AsyncMock(return_value=raw)):
        response = await _post(client, auth_headers, {"mode": "insights"})

    assert response.json()["type"] == "progress"


async def test_insight_without_json_uses_raw_text(client, auth_headers):
    raw = "You are doing great, keep reviewing your flashcards every day. " * 5
    with patch.object(inference_client, "chat", new=AsyncMock(return_value=raw)):
        response = await _post(client, auth_headers, {"mode": "insights"})

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Study Tip"
    assert data["type"] == "progress"
    assert data["body"] == raw.strip()[:200]


async def test_insight_in_spanish_when_materials_are_spanish(client, auth_headers, add_rows, user, course):
    await add_rows(
        CourseMaterial(
            user_id=user.id,
            course_id=course.id,
            title="Apuntes",
            content="La mitocondria es el orgánulo que produce energía para la célula y también regula el metabolismo.",
        )
    )
    mock = AsyncMock(return_value="sin json")
    with patch.object(inference_client, "chat", new=mock):
        response = await _post(client, auth_headers, {"mode": "insights"})

    assert response.json()["title"] == "Consejo de Estudio"
    assert mock.await_args.args[0].startswith("Basado en los datos del estudiante")


async def test_weak_topics_reach_the_prompt(client, auth_headers, add_rows, user, course):
    test = await add_rows(
        Test(user_id=user.id, course_id=course.id, title="Midterm", total_count=1, grade="D", correct_count=0)
    )
    await add_rows(
        TestQuestion(
            test_id=test.id,
            question_number=1,
            question="Explain the Krebs cycle",
            correct_answer="...",
            is_correct=False,
        )
    )
    mock = AsyncMock(return_value='{"title": "t", "body": "b", "type": "weak_area"}')
    with patch.object(inference_client, "chat", new=mock):
        await _post(client, auth_headers, {"mode": "insights"})

    system_prompt = mock.await_args.kwargs["system_prompt"]
    assert "Weak areas: Explain the Krebs cycle" in system_prompt
    assert "- Midterm: D (0/1)" in system_prompt


async def test_chat_mode(client, auth_headers):
    history = [{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello Ana!"}]
    mock = AsyncMock(return_value="  You're on track.  ")
    with patch.object(inference_client, "chat", new=mock):
        response = await _post(
            client, auth_headers, {"mode": "chat", "message": "How am I doing?", "history": history}
        )

    assert response.status_code == 200
    assert response.json() == {"role": "assistant", "content": "You're on track."}
    assert mock.await_args.args[0] == "User: Hi\nAssistant: Hello Ana!\nUser: How am I doing?\nAssistant:"


async def test_chat_mode_requires_message(client, auth_headers):
    response = await _post(client, auth_headers, {"mode": "chat"})
    assert response.status_code == 400
    assert response.json() == {"error": "message: Field required"}

    response = await _post(client, auth_headers, {"mode": "chat", "message": "  "})
    assert response.json() == {"error": "Message must not be empty"}


async def test_invalid_mode(client, auth_headers):
    response = await _post(client, auth_headers, {"mode": "horoscope"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid mode"}


async def test_missing_mode(client, auth_headers):
    response = await _post(client, auth_headers, {})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid mode"}


async def test_calendar_suggestions_create_at_most_five_events(client, auth_headers, session_factory, user):
    suggestions = [
        {"title": f"Review {i}", "days_from_today": i, "start_hour": 30, "duration_minutes": 60}
        for i in range(7)
    ]
    with patch.object(inference_client, "chat", new=AsyncMock(return_value=json.dumps(suggestions))):
        response = await _post(client, auth_headers, {"mode": "calendar_suggestions"})

    assert response.status_code == 200
    events = response.json()["suggestions"]
    assert len(events) == 5
    assert all(e["type"] == "suggestion" for e in events)

    today = datetime.now(timezone.utc).date()
    first = next(e for e in events if e["title"] == "Review 0")
    start = datetime.fromisoformat(first["start_time"])
    end = datetime.fromisoformat(first["end_time"])
    assert start.date() == today
    assert start.hour == 23
    assert end - start == timedelta(minutes=60)

    async with session_factory() as session:
        count = (
            await session.execute(
                select(func.count()).select_from(CalendarEvent).where(CalendarEvent.user_id == user.id)
            )
        ).scalar_one()
    assert count == 5


async def test_calendar_suggestions_unparsable(client, auth_headers, session_factory):
    with patch.object(inference_client, "chat", new=AsyncMock(return_value="Study a lot this week!")):
        response = await _post(client, auth_headers, {"mode": "calendar_suggestions"})

    assert response.status_code == 200
    assert response.json() == {"suggestions": []}
    async with session_factory() as session:
        assert (await session.execute(select(CalendarEvent))).first() is None
