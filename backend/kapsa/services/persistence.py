"""
User-scoped reads and writes.

Every query here filters by the caller's user id, including the ones that
run after an ownership check has already passed. Parent and children rows
(deck + cards, test + questions) are written in one transaction, and the
stored count always equals the number of child rows inserted.
"""

import logging
from collections.abc import Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from kapsa.db.models import (
    CalendarEvent,
    ChatMessage,
    ChatRole,
    ChatSession,
    Course,
    CourseMaterial,
    Flashcard,
    FlashcardDeck,
    FlashcardStatus,
    Profile,
    Test,
    TestQuestion,
    TestStatus,
    UsageTracking,
    User,
)

logger = logging.getLogger(__name__)


# =============================================================================
# READS
# =============================================================================


async def fetch_course_materials(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    *,
    material_id: UUID | None = None,
    limit: int = 5,
) -> Sequence[CourseMaterial]:
    """Materials with extracted content for a course, newest first."""
    stmt = select(CourseMaterial).where(
        CourseMaterial.user_id == user_id,
        CourseMaterial.course_id == course_id,
        CourseMaterial.content.is_not(None),
    )
    if material_id is not None:
        stmt = stmt.where(CourseMaterial.id == material_id)
    stmt = stmt.order_by(CourseMaterial.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()


async def fetch_test_questions(db: AsyncSession, user_id: UUID, test_id: UUID) -> Sequence[TestQuestion]:
    stmt = (
        select(TestQuestion)
        .join(Test, Test.id == TestQuestion.test_id)
        .where(TestQuestion.test_id == test_id, Test.user_id == user_id)
        .order_by(TestQuestion.question_number)
    )
    result = await db.execute(stmt)
    return result.scalars().all()


async def get_flashcard_stats(db: AsyncSession, user_id: UUID) -> dict[str, int]:
    """
    Count the user's flashcards by review status.

    Returns:
        {"mastered": n, "learning": n, "total_new": n}
    """
    stmt = (
        select(Flashcard.status, func.count(Flashcard.id))
        .join(FlashcardDeck, FlashcardDeck.id == Flashcard.deck_id)
        .where(FlashcardDeck.user_id == user_id)
        .group_by(Flashcard.status)
    )
    result = await db.execute(stmt)
    counts = {status: count for status, count in result.all()}
    return {
        "mastered": counts.get(FlashcardStatus.MASTERED.value, 0),
        "learning": counts.get(FlashcardStatus.LEARNING.value, 0),
        "total_new": counts.get(FlashcardStatus.NEW.value, 0),
    }


# =============================================================================
# WRITES
# =============================================================================


async def create_deck_with_cards(
    db: AsyncSession,
    *,
    user_id: UUID,
    course_id: UUID,
    title: str,
    cards: list[dict[str, str]],
) -> FlashcardDeck:
    """Insert a deck and its cards together. Returns the deck with ``cards`` loaded."""
    deck = FlashcardDeck(user_id=user_id, course_id=course_id, title=title, card_count=len(cards))
    db.add(deck)
    await db.flush()

    db.add_all(Flashcard(deck_id=deck.id, **card) for card in cards)
    await db.commit()

    result = await db.execute(
        select(FlashcardDeck)
        .options(selectinload(FlashcardDeck.cards))
        .where(FlashcardDeck.id == deck.id, FlashcardDeck.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def create_test_with_questions(
    db: AsyncSession,
    *,
    user_id: UUID,
    course_id: UUID,
    title: str,
    questions: list[dict[str, str]],
) -> tuple[Test, list[TestQuestion]]:
    """Insert a quiz and its numbered questions (starting at 1) together."""
    test = Test(
        user_id=user_id,
        course_id=course_id,
        title=title,
        status=TestStatus.QUESTIONS_GENERATED.value,
        total_count=len(questions),
    )
    db.add(test)
    await db.flush()

    rows = [
        TestQuestion(test_id=test.id, question_number=number, **question)
        for number, question in enumerate(questions, start=1)
    ]
    db.add_all(rows)
    await db.commit()

    await db.refresh(test)
    for row in rows:
        await db.refresh(row)
    return test, rows


async def apply_evaluation(
    db: AsyncSession,
    *,
    test: Test,
    questions: Sequence[TestQuestion],
    graded: Sequence[Any],
    score: float,
    grade: str,
    motivation_text: str,
) -> Test:
    """
    Persist graded answers and the test result in a single transaction.

    The test passes through answers_submitted to evaluated; a failure on any
    row rolls back every update.
    """
    by_id = {g.question_id: g for g in graded}
    test.status = TestStatus.ANSWERS_SUBMITTED.value
    for question in questions:
        result = by_id[question.id]
        question.user_answer = result.user_answer
        question.is_correct = result.is_correct
        question.ai_insight = result.ai_insight
    await db.flush()

    test.correct_count = sum(1 for g in graded if g.is_correct)
    test.score = score
    test.grade = grade
    test.motivation_text = motivation_text
    test.status = TestStatus.EVALUATED.value
    await db.commit()

    await db.refresh(test)
    return test


async def save_assistant_message(
    db: AsyncSession,
    *,
    user_id: UUID,
    session_id: UUID,
    content: str,
    citations: list[str],
) -> ChatMessage:
    message = ChatMessage(
        user_id=user_id,
        session_id=session_id,
        role=ChatRole.ASSISTANT.value,
        content=content,
        citations=citations,
    )
    db.add(message)
    await db.commit()
    await db.refresh(message)
    return message


async def save_material(
    db: AsyncSession,
    *,
    user_id: UUID,
    course_id: UUID,
    title: str,
    material_type: str,
    content: str,
    file_url: str,
) -> CourseMaterial:
    material = CourseMaterial(
        user_id=user_id,
        course_id=course_id,
        title=title,
        type=material_type,
        content=content,
        file_url=file_url,
    )
    db.add(material)
    await db.commit()
    await db.refresh(material)
    return material


async def create_calendar_events(
    db: AsyncSession, *, user_id: UUID, events: list[dict[str, Any]]
) -> list[CalendarEvent]:
    rows = [CalendarEvent(user_id=user_id, **event) for event in events]
    if not rows:
        return []
    db.add_all(rows)
    await db.commit()
    for row in rows:
        await db.refresh(row)
    return rows


# =============================================================================
# ACCOUNT ERASURE
# =============================================================================


async def erase_user_data(db: AsyncSession, user_id: UUID) -> None:
    """
    Delete everything the user owns, children before parents, then the user.

    Runs in one transaction. Once committed, the user row is gone and every
    outstanding token for it fails authentication.
    """
    session_ids = select(ChatSession.id).where(ChatSession.user_id == user_id)
    deck_ids = select(FlashcardDeck.id).where(FlashcardDeck.user_id == user_id)
    test_ids = select(Test.id).where(Test.user_id == user_id)

    statements = [
        delete(ChatMessage).where(
            (ChatMessage.session_id.in_(session_ids)) | (ChatMessage.user_id == user_id)
        ),
        delete(ChatSession).where(ChatSession.user_id == user_id),
        delete(Flashcard).where(Flashcard.deck_id.in_(deck_ids)),
        delete(FlashcardDeck).where(FlashcardDeck.user_id == user_id),
        delete(TestQuestion).where(TestQuestion.test_id.in_(test_ids)),
        delete(Test).where(Test.user_id == user_id),
        delete(CourseMaterial).where(CourseMaterial.user_id == user_id),
        delete(Course).where(Course.user_id == user_id),
        delete(CalendarEvent).where(CalendarEvent.user_id == user_id),
        delete(UsageTracking).where(UsageTracking.user_id == user_id),
        delete(Profile).where(Profile.id == user_id),
        delete(User).where(User.id == user_id),
    ]
    for stmt in statements:
        await db.execute(stmt, execution_options={"synchronize_session": False})
    await db.commit()
    logger.info("Erased all data for user %s", user_id)
