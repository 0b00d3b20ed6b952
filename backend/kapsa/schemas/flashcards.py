"""Flashcard generation schemas."""

from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from kapsa.config import get_settings
from kapsa.schemas.base import BaseSchema, CreatedAtMixin, IDMixin, RequestSchema
from kapsa.validation import clamp_count, parse_uuid, truncate_text


class FlashcardGenerateRequest(RequestSchema):
    """Request to generate a deck from a course's materials."""

    course_id: UUID = Field(alias="courseId")
    count: int = Field(default_factory=lambda: get_settings().default_flashcards)
    material_id: UUID | None = Field(None, alias="materialId")
    topic: str | None = None

    @field_validator("course_id", mode="before")
    @classmethod
    def validate_course_id(cls, v: Any) -> UUID:
        return parse_uuid(v, label="course ID")

    @field_validator("material_id", mode="before")
    @classmethod
    def validate_material_id(cls, v: Any) -> UUID | None:
        if v is None:
            return None
        return parse_uuid(v, label="material ID")

    @field_validator("count", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> int:
        settings = get_settings()
        return clamp_count(v, default=settings.default_flashcards, minimum=1, maximum=settings.max_flashcards)

    @field_validator("topic", mode="before")
    @classmethod
    def validate_topic(cls, v: Any) -> str | None:
        return truncate_text(v, get_settings().max_topic_chars, label="Topic")


class FlashcardRead(BaseSchema, IDMixin):
    """Flashcard as stored."""

    deck_id: UUID
    topic: str
    question_before: str
    keyword: str
    question_after: str
    answer: str
    status: str


class FlashcardDeckRead(BaseSchema, IDMixin, CreatedAtMixin):
    """Deck with the cards inserted alongside it."""

    user_id: UUID
    course_id: UUID
    title: str
    card_count: int
    cards: list[FlashcardRead] = Field(default_factory=list)
