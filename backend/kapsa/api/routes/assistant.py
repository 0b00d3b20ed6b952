"""API route for the personal study assistant."""

import logging
from typing import Annotated, Union

from fastapi import APIRouter, Body

from kapsa.api.deps import CurrentUser, DbSession
from kapsa.schemas.assistant import (
    AssistantChatRequest,
    AssistantChatResponse,
    AssistantRequest,
    CalendarEventRead,
    CalendarSuggestionsResponse,
    InsightResponse,
    InsightsRequest,
)
from kapsa.services import assistant_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["assistant"])


@router.post(
    "/ai-assistant",
    response_model=Union[InsightResponse, AssistantChatResponse, CalendarSuggestionsResponse],
)
async def assistant(
    request: Annotated[AssistantRequest, Body(discriminator="mode")],
    db: DbSession,
    user: CurrentUser,
):
    """
    Dispatch on ``mode``.

    - insights: one dashboard insight card
    - chat: reply grounded in the student's progress (not persisted)
    - calendar_suggestions: create up to five study events for the coming week
    """
    if isinstance(request, InsightsRequest):
        return InsightResponse(**await assistant_service.insights(db, user))

    if isinstance(request, AssistantChatRequest):
        content = await assistant_service.chat(db, user, request.message, request.history)
        return AssistantChatResponse(content=content)

    events = await assistant_service.calendar_suggestions(db, user)
    return CalendarSuggestionsResponse(
        suggestions=[CalendarEventRead.model_validate(e) for e in events]
    )
