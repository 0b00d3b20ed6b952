"""Pydantic schemas for the course tutor chat handler."""

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from kapsa.config import get_settings
from kapsa.schemas.base import BaseSchema, CreatedAtMixin, IDMixin, RequestSchema
from kapsa.validation import parse_uuid, truncate_text


class HistoryEntry(BaseModel):
    """Previous turn supplied by the client."""

    role: Literal["user", "assistant"] = "user"
    content: str = ""

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> str:
        return "user" if v == "user" else "assistant"

    @field_validator("content", mode="before")
    @classmethod
    def truncate_content(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("History entries must have string content")
        return v.strip()[: get_settings().max_history_entry_chars]


# Request schemas
class ChatRequest(RequestSchema):
    """Request to get a tutor reply in a chat session."""

    course_id: UUID = Field(alias="courseId")
    session_id: UUID = Field(alias="sessionId")
    message: str
    history: list[HistoryEntry] = Field(default_factory=list)

    @field_validator("course_id", mode="before")
    @classmethod
    def validate_course_id(cls, v: Any) -> UUID:
        return parse_uuid(v, label="course ID")

    @field_validator("session_id", mode="before")
    @classmethod
    def validate_session_id(cls, v: Any) -> UUID:
        return parse_uuid(v, label="session ID")

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


# Response schemas
class ChatMessageRead(BaseSchema, IDMixin, CreatedAtMixin):
    """Persisted chat message."""

    session_id: UUID
    user_id: UUID
    role: str
    content: str
    citations: list[str]
