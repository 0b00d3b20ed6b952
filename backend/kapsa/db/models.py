"""
SQLAlchemy 2.0 Models for Kapsa.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys. Column types are the generic SQLAlchemy
ones (Uuid, DateTime, JSON with a JSONB variant) so the same metadata runs
against Postgres in production and SQLite in tests.
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kapsa.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# ENUMS
# =============================================================================


class MaterialType(str, PyEnum):
    """Source kind of a course material."""

    PDF = "pdf"
    AUDIO = "audio"
    NOTES = "notes"


class FlashcardStatus(str, PyEnum):
    """Spaced-repetition state of a flashcard."""

    NEW = "new"
    LEARNING = "learning"
    MASTERED = "mastered"


class TestStatus(str, PyEnum):
    """Quiz lifecycle: questions_generated -> answers_submitted -> evaluated."""

    QUESTIONS_GENERATED = "questions_generated"
    ANSWERS_SUBMITTED = "answers_submitted"
    EVALUATED = "evaluated"


class ChatRole(str, PyEnum):
    """Role in chat conversation."""

    USER = "user"
    ASSISTANT = "assistant"


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Identity resolved from the bearer credential.

    Created by the identity provider, never mutated here. Deleting the row
    is the last step of account erasure and revokes every outstanding token.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Profile(Base):
    """Display data for a user (1:1, keyed by the user id)."""

    __tablename__ = "profiles"

    id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    streak_days: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Course(Base):
    """Course owned by a user. Parent of materials, decks, tests and chat sessions."""

    __tablename__ = "courses"
    __table_args__ = (Index("idx_courses_user_updated_at", "user_id", "updated_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    exam_date: Mapped[Optional[date]] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    materials: Mapped[list["CourseMaterial"]] = relationship(
        "CourseMaterial", back_populates="course", passive_deletes=True
    )


class CourseMaterial(Base):
    """
    Extracted text of a captured file (scan, recording) or typed notes.

    Content length is unbounded at capture time; prompt builders truncate it.
    """

    __tablename__ = "course_materials"
    __table_args__ = (Index("idx_course_materials_user_course", "user_id", "course_id"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    course_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=MaterialType.NOTES.value)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    course: Mapped["Course"] = relationship("Course", back_populates="materials")


class FlashcardDeck(Base):
    """Group of flashcards produced by one generation request."""

    __tablename__ = "flashcard_decks"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    card_count: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    cards: Mapped[list["Flashcard"]] = relationship(
        "Flashcard", back_populates="deck", passive_deletes=True
    )


class Flashcard(Base):
    """Three-part question (before / keyword / after) with its answer."""

    __tablename__ = "flashcards"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    deck_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("flashcard_decks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    topic: Mapped[str] = mapped_column(String(255), nullable=False, default="General")
    question_before: Mapped[str] = mapped_column(Text, nullable=False, default="")
    keyword: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    question_after: Mapped[str] = mapped_column(Text, nullable=False, default="")
    answer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=FlashcardStatus.NEW.value)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    deck: Mapped["FlashcardDeck"] = relationship("FlashcardDeck", back_populates="cards")


class Test(Base):
    """
    Quiz over a course.

    score/grade/correct_count/motivation_text stay empty until the
    evaluate action runs.
    """

    __tablename__ = "tests"
    __test__ = False  # not a pytest test class
    __table_args__ = (Index("idx_tests_user_created_at", "user_id", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    course_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=TestStatus.QUESTIONS_GENERATED.value
    )
    total_count: Mapped[int] = mapped_column(nullable=False, default=0)
    correct_count: Mapped[Optional[int]] = mapped_column(nullable=True)
    score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    grade: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    motivation_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    questions: Mapped[list["TestQuestion"]] = relationship(
        "TestQuestion", back_populates="test", passive_deletes=True
    )


class TestQuestion(Base):
    """Question of a quiz with the student's answer and the grading result."""

    __tablename__ = "test_questions"
    __test__ = False
    __table_args__ = (Index("idx_test_questions_test_number", "test_id", "question_number"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    test_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False
    )
    question_number: Mapped[int] = mapped_column(nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False, default="")
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_answer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_correct: Mapped[Optional[bool]] = mapped_column(nullable=True)
    ai_insight: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    test: Mapped["Test"] = relationship("Test", back_populates="questions")


class ChatSession(Base):
    """Tutor conversation scoped to a course."""

    __tablename__ = "chat_sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="New Session")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    messages: Mapped[list["ChatMessage"]] = relationship(
        "ChatMessage", back_populates="session", passive_deletes=True
    )


class ChatMessage(Base):
    """
    Message in a chat session.

    Only assistant messages are written by this service; user messages are
    persisted by the client before it calls the chat handler.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (Index("idx_chat_messages_session_id", "session_id"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    session_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # 'user' or 'assistant'
    content: Mapped[str] = mapped_column(Text, nullable=False)
    citations: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    session: Mapped["ChatSession"] = relationship("ChatSession", back_populates="messages")


class CalendarEvent(Base):
    """Study event on the user's calendar, possibly suggested by the assistant."""

    __tablename__ = "calendar_events"
    __table_args__ = (Index("idx_calendar_events_user_start", "user_id", "start_time"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default="suggestion")
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ai_suggestion: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class UsageTracking(Base):
    """Per-feature usage counter rows (written by the billing side)."""

    __tablename__ = "usage_tracking"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    feature: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
