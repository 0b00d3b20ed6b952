"""Schemas for the personal study assistant."""

from datetime import datetime
from typing import Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from kapsa.config import get_settings
from kapsa.schemas.base import BaseSchema, CreatedAtMixin, IDMixin, RequestSchema
from kapsa.schemas.chat import HistoryEntry
from kapsa.validation import truncate_text


# Request schemas
class InsightsRequest(RequestSchema):
    mode: Literal["insights"]


class AssistantChatRequest(RequestSchema):
    """mode=chat: free conversation grounded in the student's progress."""

    mode: Literal["chat"]
    message: str
    history: list[HistoryEntry] = Field(default_factory=list)

    @field_validator("message", mode="before")
    @classmethod
    def validate_message(cls, v: Any) -> str:
        return truncate_text(v, get_settings().max_message_chars, required=True, label="Message")

    @field_validator("history", mode="before")
    @classmethod
    def validate_history(cls, v: Any) -> list:
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("History must be a list")
        return v


class CalendarSuggestionsRequest(RequestSchema):
    mode: Literal["calendar_suggestions"]


# Discriminated on "mode" at the route
AssistantRequest = Union[InsightsRequest, AssistantChatRequest, CalendarSuggestionsRequest]


# Response schemas
class InsightResponse(BaseModel):
    """Single dashboard insight card."""

    title: str
    body: str
    type: Literal["exam_prep", "weak_area", "streak", "review", "progress"]


class AssistantChatResponse(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class CalendarEventRead(BaseSchema, IDMixin, CreatedAtMixin):
    """Calendar event created from a model suggestion."""

    user_id: UUID
    title: str
    type: str
    start_time: datetime
    end_time: datetime
    description: str
    ai_suggestion: str


class CalendarSuggestionsResponse(BaseModel):
    suggestions: list[CalendarEventRead]
