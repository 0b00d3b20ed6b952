"""Base schema configuration."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema for responses built from ORM rows."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class RequestSchema(BaseModel):
    """
    Base schema for handler request bodies.

    Clients send camelCase keys (courseId, sessionId); fields are snake_case
    with aliases. Unknown keys are ignored.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


class IDMixin(BaseModel):
    """Mixin for UUID primary key."""

    id: UUID


class CreatedAtMixin(BaseModel):
    """Mixin for created_at timestamp."""

    created_at: datetime
