"""Personal study assistant: dashboard insights, free chat and calendar suggestions."""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from kapsa.config import get_settings
from kapsa.db.models import CalendarEvent, User
from kapsa.errors import MalformedModelOutput
from kapsa.schemas.chat import HistoryEntry
from kapsa.services import prompts
from kapsa.services.context import StudentContext, build_student_context
from kapsa.services.inference import inference_client
from kapsa.services.language import (
    SPANISH,
    detect_conversational_language,
    detect_language,
    pick_response_language,
)
from kapsa.services.normalizer import parse_json_array, parse_json_object
from kapsa.services.persistence import create_calendar_events
from kapsa.services.sanitize import clean_calendar_suggestion, clean_insight, clean_text, only_objects

logger = logging.getLogger(__name__)
settings = get_settings()


class AssistantService:
    """Builds the student's context once per request and answers in one of three modes."""

    async def _prepare(
        self, db: AsyncSession, user: User, message: str | None = None
    ) -> tuple[StudentContext, str, str]:
        """Return (context, system_prompt, response_language)."""
        ctx = await build_student_context(db, user)
        message_language = detect_conversational_language(message)
        material_language = detect_language(ctx.material_sample)
        response_language = pick_response_language(message_language, material_language)
        system_prompt = prompts.assistant_system_prompt(
            ctx,
            response_language=response_language,
            message_language=message_language,
            material_language=material_language,
        )
        return ctx, system_prompt, response_language

    async def insights(self, db: AsyncSession, user: User) -> dict[str, str]:
        """
        One personalized insight card.

        Output that does not contain a JSON object becomes a generic
        "Study Tip" card with the raw text as its body.
        """
        _, system_prompt, language = await self._prepare(db, user)
        fallback_title = "Consejo de Estudio" if language == SPANISH else "Study Tip"

        raw = await inference_client.chat(
            prompts.insight_prompt(language),
            system_prompt=system_prompt,
            max_tokens=settings.insight_max_tokens,
        )
        try:
            return clean_insight(parse_json_object(raw), fallback_title=fallback_title)
        except MalformedModelOutput:
            logger.warning("Insight output was not a JSON object, using raw text")
            return {
                "title": fallback_title,
                "body": clean_text(raw, 200),
                "type": "progress",
            }

    async def chat(self, db: AsyncSession, user: User, message: str, history: list[HistoryEntry]) -> str:
        """Reply to the student. Nothing is persisted."""
        _, system_prompt, _ = await self._prepare(db, user, message)
        window = history[-settings.chat_history_window:] if settings.chat_history_window else []
        raw = await inference_client.chat(
            prompts.assistant_chat_prompt(message, window),
            system_prompt=system_prompt,
        )
        return raw.strip()

    async def calendar_suggestions(self, db: AsyncSession, user: User) -> list[CalendarEvent]:
        """
        Create study-session events for the next week from the model's suggestions.

        Unparsable output creates nothing and returns an empty list.
        """
        _, system_prompt, language = await self._prepare(db, user)
        now = datetime.now(timezone.utc)
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        raw = await inference_client.chat(
            prompts.calendar_prompt(language, today.date()),
            system_prompt=system_prompt,
        )
        try:
            suggestions = only_objects(parse_json_array(raw))
        except MalformedModelOutput:
            logger.warning("Calendar suggestions output was not a JSON array, creating no events")
            return []

        default_title = "Sesión de Estudio" if language == SPANISH else "Study Session"
        events = [
            clean_calendar_suggestion(s, today=today, default_title=default_title)
            for s in suggestions[: settings.max_calendar_suggestions]
        ]
        return await create_calendar_events(db, user_id=user.id, events=events)


# Singleton instance
assistant_service = AssistantService()
