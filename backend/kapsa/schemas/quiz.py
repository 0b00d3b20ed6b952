"""Quiz generation and evaluation schemas."""

from typing import Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from kapsa.config import get_settings
from kapsa.schemas.base import BaseSchema, CreatedAtMixin, IDMixin, RequestSchema
from kapsa.validation import clamp_count, parse_uuid


# Request schemas
class QuizGenerateRequest(RequestSchema):
    """action=generate: create a quiz for a course."""

    action: Literal["generate"]
    course_id: UUID = Field(alias="courseId")
    count: int = Field(default_factory=lambda: get_settings().default_quiz_questions)

    @field_validator("course_id", mode="before")
    @classmethod
    def validate_course_id(cls, v: Any) -> UUID:
        return parse_uuid(v, label="course ID")

    @field_validator("count", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> int:
        settings = get_settings()
        return clamp_count(
            v, default=settings.default_quiz_questions, minimum=1, maximum=settings.max_quiz_questions
        )


class SubmittedAnswer(BaseModel):
    """Student's answer to one question."""

    question_id: UUID = Field(alias="questionId")
    answer: str

    @field_validator("question_id", mode="before")
    @classmethod
    def validate_question_id(cls, v: Any) -> UUID:
        return parse_uuid(v, label="question ID")

    @field_validator("answer", mode="before")
    @classmethod
    def truncate_answer(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("Invalid answer format")
        return v[: get_settings().max_answer_chars]


class QuizEvaluateRequest(RequestSchema):
    """action=evaluate: grade submitted answers for a quiz."""

    action: Literal["evaluate"]
    test_id: UUID = Field(alias="testId")
    answers: list[SubmittedAnswer]

    @field_validator("test_id", mode="before")
    @classmethod
    def validate_test_id(cls, v: Any) -> UUID:
        return parse_uuid(v, label="test ID")

    @field_validator("answers", mode="before")
    @classmethod
    def require_answers(cls, v: Any) -> list:
        if not isinstance(v, list) or not v:
            raise ValueError("Answers are required")
        return v


# Discriminated on "action" at the route (Body(discriminator=...))
QuizRequest = Union[QuizGenerateRequest, QuizEvaluateRequest]


# Response schemas
class TestQuestionRead(BaseSchema, IDMixin):
    """Quiz question, with grading fields once evaluated."""

    __test__ = False

    test_id: UUID
    question_number: int
    question: str
    correct_answer: str
    user_answer: str | None = None
    is_correct: bool | None = None
    ai_insight: str | None = None


class TestRead(BaseSchema, IDMixin, CreatedAtMixin):
    """Quiz header row."""

    __test__ = False

    user_id: UUID
    course_id: UUID
    title: str
    status: str
    total_count: int
    correct_count: int | None = None
    score: float | None = None
    grade: str | None = None
    motivation_text: str | None = None


class QuizResponse(BaseModel):
    """Quiz with its questions (both actions return this shape)."""

    test: TestRead
    questions: list[TestQuestionRead]
