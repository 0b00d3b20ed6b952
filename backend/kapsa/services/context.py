"""Context building for prompts: course materials and the student's progress snapshot."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kapsa.db.models import CalendarEvent, Course, CourseMaterial, Profile, Test, TestQuestion, User
from kapsa.services.language import detect_language
from kapsa.services.persistence import get_flashcard_stats

logger = logging.getLogger(__name__)


def format_materials(
    materials: Sequence[CourseMaterial], max_chars: int, *, include_type: bool = False
) -> str:
    """Render materials as ``--- title ---`` blocks, each body truncated."""
    blocks = []
    for m in materials:
        header = f"--- {m.title} ({m.type}) ---" if include_type else f"--- {m.title} ---"
        blocks.append(f"{header}\n{(m.content or '')[:max_chars]}")
    return "\n\n".join(blocks)


def materials_language(materials: Sequence[CourseMaterial], *, sample_chars: int | None = None) -> str:
    text = " ".join((m.content or "")[:sample_chars] for m in materials)
    return detect_language(text)


# =============================================================================
# STUDENT CONTEXT (assistant)
# =============================================================================


@dataclass
class StudentContext:
    """Everything the assistant's system prompt is built from."""

    first_name: str = "Student"
    last_name: str = ""
    streak_days: int = 0
    courses: list[Course] = field(default_factory=list)
    recent_tests: list[Test] = field(default_factory=list)
    flashcard_stats: dict[str, int] = field(default_factory=dict)
    weak_topics: list[str] = field(default_factory=list)
    upcoming_events: list[CalendarEvent] = field(default_factory=list)
    recent_materials: list[CourseMaterial] = field(default_factory=list)

    @property
    def material_sample(self) -> str:
        return " ".join((m.content or "")[:200] for m in self.recent_materials)


async def build_student_context(db: AsyncSession, user: User) -> StudentContext:
    """
    Gather the student's profile, courses, quiz results, flashcard stats,
    weak topics, upcoming events and recent materials. All queries are
    scoped to ``user.id``.
    """
    user_id: UUID = user.id
    ctx = StudentContext()

    profile = (await db.execute(select(Profile).where(Profile.id == user_id))).scalar_one_or_none()
    if profile is not None:
        full_name = (profile.full_name or "").strip()
        if full_name:
            first, _, rest = full_name.partition(" ")
            ctx.first_name, ctx.last_name = first, rest.strip()
        ctx.streak_days = profile.streak_days or 0

    result = await db.execute(
        select(Course).where(Course.user_id == user_id).order_by(Course.updated_at.desc())
    )
    ctx.courses = list(result.scalars().all())

    result = await db.execute(
        select(Test).where(Test.user_id == user_id).order_by(Test.created_at.desc()).limit(5)
    )
    ctx.recent_tests = list(result.scalars().all())

    ctx.flashcard_stats = await get_flashcard_stats(db, user_id)

    if ctx.recent_tests:
        result = await db.execute(
            select(TestQuestion.question)
            .join(Test, Test.id == TestQuestion.test_id)
            .where(
                Test.user_id == user_id,
                TestQuestion.test_id.in_([t.id for t in ctx.recent_tests]),
                TestQuestion.is_correct.is_(False),
            )
            .limit(10)
        )
        ctx.weak_topics = [question[:60] for question in result.scalars().all()]

    result = await db.execute(
        select(CalendarEvent)
        .where(CalendarEvent.user_id == user_id, CalendarEvent.start_time >= datetime.now(timezone.utc))
        .order_by(CalendarEvent.start_time)
        .limit(10)
    )
    ctx.upcoming_events = list(result.scalars().all())

    result = await db.execute(
        select(CourseMaterial)
        .where(CourseMaterial.user_id == user_id)
        .order_by(CourseMaterial.created_at.desc())
        .limit(10)
    )
    ctx.recent_materials = list(result.scalars().all())

    logger.debug(
        "Student context for %s: %d courses, %d tests, %d weak topics",
        user_id, len(ctx.courses), len(ctx.recent_tests), len(ctx.weak_topics),
    )
    return ctx
