"""Schemas for capture ingestion (scan OCR / audio transcription)."""

from typing import Any, Literal
from uuid import UUID

from pydantic import Field, field_validator

from kapsa.config import get_settings
from kapsa.schemas.base import BaseSchema, CreatedAtMixin, IDMixin, RequestSchema
from kapsa.validation import parse_uuid, require_http_url, truncate_text


class CaptureRequest(RequestSchema):
    """Extract text from an uploaded file and store it as course material."""

    course_id: UUID = Field(alias="courseId")
    type: Literal["ocr", "whisper"]
    file_url: str = Field(alias="fileUrl")
    title: str | None = None

    @field_validator("course_id", mode="before")
    @classmethod
    def validate_course_id(cls, v: Any) -> UUID:
        return parse_uuid(v, label="course ID")

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v: Any) -> str:
        if v not in ("ocr", "whisper"):
            raise ValueError("Invalid type. Use 'ocr' or 'whisper'.")
        return v

    @field_validator("file_url", mode="before")
    @classmethod
    def validate_file_url(cls, v: Any) -> str:
        return require_http_url(v, label="File URL")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> str | None:
        return truncate_text(v, get_settings().max_title_chars, label="Title")


class CourseMaterialRead(BaseSchema, IDMixin, CreatedAtMixin):
    """Stored material with its extracted content."""

    user_id: UUID
    course_id: UUID
    title: str
    type: str
    content: str | None = None
    file_url: str | None = None
