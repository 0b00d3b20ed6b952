"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

This migration creates the complete Kapsa database schema:
- Extensions: uuid-ossp
- Tables: users, profiles, courses, course_materials, flashcard_decks, flashcards,
  tests, test_questions, chat_sessions, chat_messages, calendar_events, usage_tracking
- Indexes: user-scoped lookups used by the AI handlers
- Triggers: courses.updated_at auto-update
- Functions: get_flashcard_stats(p_user_id)
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False
    )


def _user_id() -> sa.Column:
    return sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False
    )


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ==========================================================================
    # IDENTITY
    # ==========================================================================
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("streak_days", sa.Integer(), server_default="0", nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["id"], ["users.id"], ondelete="CASCADE"),
    )

    # ==========================================================================
    # COURSES & MATERIALS
    # ==========================================================================
    op.create_table(
        "courses",
        _id(),
        _user_id(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("subtitle", sa.String(255), nullable=True),
        sa.Column("progress", sa.Float(), server_default="0", nullable=False),
        sa.Column("exam_date", sa.Date(), nullable=True),
        _created_at(),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("progress >= 0 AND progress <= 1", name="valid_progress"),
    )
    op.create_index("ix_courses_user_id", "courses", ["user_id"])
    op.create_index("idx_courses_user_updated_at", "courses", ["user_id", "updated_at"])

    op.create_table(
        "course_materials",
        _id(),
        _user_id(),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), server_default="notes", nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("file_url", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="CASCADE"),
        sa.CheckConstraint("type IN ('pdf', 'audio', 'notes')", name="valid_material_type"),
    )
    op.create_index("idx_course_materials_user_course", "course_materials", ["user_id", "course_id"])

    # ==========================================================================
    # FLASHCARDS
    # ==========================================================================
    op.create_table(
        "flashcard_decks",
        _id(),
        _user_id(),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("card_count", sa.Integer(), server_default="0", nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_flashcard_decks_user_id", "flashcard_decks", ["user_id"])
    op.create_index("ix_flashcard_decks_course_id", "flashcard_decks", ["course_id"])

    op.create_table(
        "flashcards",
        _id(),
        sa.Column("deck_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("topic", sa.String(255), server_default="General", nullable=False),
        sa.Column("question_before", sa.Text(), server_default="", nullable=False),
        sa.Column("keyword", sa.String(255), server_default="", nullable=False),
        sa.Column("question_after", sa.Text(), server_default="", nullable=False),
        sa.Column("answer", sa.Text(), server_default="", nullable=False),
        sa.Column("status", sa.String(20), server_default="new", nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["deck_id"], ["flashcard_decks.id"], ondelete="CASCADE"),
        sa.CheckConstraint("status IN ('new', 'learning', 'mastered')", name="valid_flashcard_status"),
    )
    op.create_index("ix_flashcards_deck_id", "flashcards", ["deck_id"])

    # ==========================================================================
    # TESTS
    # ==========================================================================
    op.create_table(
        "tests",
        _id(),
        _user_id(),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("status", sa.String(30), server_default="questions_generated", nullable=False),
        sa.Column("total_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("correct_count", sa.Integer(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("grade", sa.String(2), nullable=True),
        sa.Column("motivation_text", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('questions_generated', 'answers_submitted', 'evaluated')",
            name="valid_test_status",
        ),
    )
    op.create_index("ix_tests_course_id", "tests", ["course_id"])
    op.create_index("idx_tests_user_created_at", "tests", ["user_id", "created_at"])

    op.create_table(
        "test_questions",
        _id(),
        sa.Column("test_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("question_number", sa.Integer(), nullable=False),
        sa.Column("question", sa.Text(), server_default="", nullable=False),
        sa.Column("correct_answer", sa.Text(), server_default="", nullable=False),
        sa.Column("user_answer", sa.Text(), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=True),
        sa.Column("ai_insight", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["test_id"], ["tests.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_test_questions_test_number", "test_questions", ["test_id", "question_number"])

    # ==========================================================================
    # CHAT
    # ==========================================================================
    op.create_table(
        "chat_sessions",
        _id(),
        _user_id(),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), server_default="New Session", nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_chat_sessions_user_id", "chat_sessions", ["user_id"])

    op.create_table(
        "chat_messages",
        _id(),
        _user_id(),
        sa.Column("session_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("citations", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["session_id"], ["chat_sessions.id"], ondelete="CASCADE"),
        sa.CheckConstraint("role IN ('user', 'assistant')", name="valid_chat_role"),
    )
    op.create_index("idx_chat_messages_session_id", "chat_messages", ["session_id"])

    # ==========================================================================
    # CALENDAR & USAGE
    # ==========================================================================
    op.create_table(
        "calendar_events",
        _id(),
        _user_id(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("type", sa.String(30), server_default="suggestion", nullable=False),
        sa.Column("start_time", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_time", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("ai_suggestion", sa.Text(), server_default="", nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("end_time > start_time", name="valid_event_range"),
    )
    op.create_index("idx_calendar_events_user_start", "calendar_events", ["user_id", "start_time"])

    op.create_table(
        "usage_tracking",
        _id(),
        _user_id(),
        sa.Column("feature", sa.String(50), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_usage_tracking_user_id", "usage_tracking", ["user_id"])

    # ==========================================================================
    # UPDATED_AT TRIGGER FUNCTION
    # ==========================================================================
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER update_courses_updated_at
            BEFORE UPDATE ON courses
            FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
    """)

    # ==========================================================================
    # FLASHCARD STATS (same counts as services.persistence.get_flashcard_stats)
    # ==========================================================================
    op.execute("""
        CREATE OR REPLACE FUNCTION get_flashcard_stats(p_user_id UUID)
        RETURNS TABLE (mastered BIGINT, learning BIGINT, total_new BIGINT) AS $$
            SELECT
                COUNT(*) FILTER (WHERE f.status = 'mastered'),
                COUNT(*) FILTER (WHERE f.status = 'learning'),
                COUNT(*) FILTER (WHERE f.status = 'new')
            FROM flashcards f
            JOIN flashcard_decks d ON d.id = f.deck_id
            WHERE d.user_id = p_user_id;
        $$ LANGUAGE sql STABLE;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS get_flashcard_stats(UUID)")
    op.execute("DROP TRIGGER IF EXISTS update_courses_updated_at ON courses")
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")

    # Drop tables in reverse dependency order
    op.drop_table("usage_tracking")
    op.drop_table("calendar_events")
    op.drop_table("chat_messages")
    op.drop_table("chat_sessions")
    op.drop_table("test_questions")
    op.drop_table("tests")
    op.drop_table("flashcards")
    op.drop_table("flashcard_decks")
    op.drop_table("course_materials")
    op.drop_table("courses")
    op.drop_table("profiles")
    op.drop_table("users")
