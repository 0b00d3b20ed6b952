"""
Field-by-field coercion of model output into storable records.

Parsed model JSON is an untrusted tree: any field may be missing or of the
wrong type. Each ``clean_*`` function returns only the keys the target row
needs, every value type-checked and length-bounded.
"""

import math
from datetime import datetime, time, timedelta
from typing import Any

ALLOWED_INSIGHT_TYPES = ("exam_prep", "weak_area", "streak", "review", "progress")


def clean_text(value: Any, max_len: int, default: str = "") -> str:
    """Non-strings become ``default``; strings are stripped and truncated."""
    if not isinstance(value, str):
        return default
    value = value.strip()
    return value[:max_len] if value else default


def clean_int(value: Any, *, default: int, minimum: int, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    return max(minimum, min(maximum, int(value)))


def only_objects(items: list[Any]) -> list[dict]:
    """Drop entries of a model array that are not JSON objects."""
    return [item for item in items if isinstance(item, dict)]


def clean_flashcard(item: dict) -> dict[str, str]:
    return {
        "topic": clean_text(item.get("topic"), 200, "General"),
        "question_before": clean_text(item.get("question_before"), 1000),
        "keyword": clean_text(item.get("keyword"), 200),
        "question_after": clean_text(item.get("question_after"), 1000),
        "answer": clean_text(item.get("answer"), 2000),
    }


def clean_quiz_question(item: dict) -> dict[str, str]:
    return {
        "question": clean_text(item.get("question"), 1000),
        "correct_answer": clean_text(item.get("correct_answer"), 2000),
    }


def clean_evaluation(item: Any) -> dict[str, Any]:
    """One entry of the grading array. Only a literal ``true`` counts as correct."""
    if not isinstance(item, dict):
        return {"is_correct": False, "ai_insight": ""}
    return {
        "is_correct": item.get("is_correct") is True,
        "ai_insight": clean_text(item.get("ai_insight"), 500),
    }


def clean_insight(item: dict, *, fallback_title: str) -> dict[str, str]:
    insight_type = item.get("type")
    return {
        "title": clean_text(item.get("title"), 100, fallback_title),
        "body": clean_text(item.get("body"), 500),
        "type": insight_type if insight_type in ALLOWED_INSIGHT_TYPES else "progress",
    }


def clean_calendar_suggestion(item: dict, *, today: datetime, default_title: str) -> dict[str, Any]:
    """
    Turn a suggestion into calendar_events columns.

    ``days_from_today`` is clamped to 0-7, ``start_hour`` to 0-23 and
    ``duration_minutes`` to 15-240. ``today`` should be tz-aware midnight.
    """
    days = clean_int(item.get("days_from_today"), default=0, minimum=0, maximum=7)
    hour = clean_int(item.get("start_hour"), default=14, minimum=0, maximum=23)
    duration = clean_int(item.get("duration_minutes"), default=45, minimum=15, maximum=240)

    day = (today + timedelta(days=days)).date()
    start = datetime.combine(day, time(hour=hour), tzinfo=today.tzinfo)
    return {
        "title": clean_text(item.get("title"), 200, default_title),
        "type": "suggestion",
        "start_time": start,
        "end_time": start + timedelta(minutes=duration),
        "description": clean_text(item.get("description"), 1000),
        "ai_suggestion": clean_text(item.get("ai_suggestion"), 500),
    }
