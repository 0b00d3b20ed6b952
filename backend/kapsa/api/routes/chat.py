"""API route for the course tutor chat."""

import logging

from fastapi import APIRouter

from kapsa.api.deps import CurrentUser, DbSession, get_owned_or_404
from kapsa.config import get_settings
from kapsa.db.models import ChatSession, Course
from kapsa.errors import MalformedModelOutput, NotFound
from kapsa.schemas.chat import ChatMessageRead, ChatRequest
from kapsa.services import inference_client, prompts
from kapsa.services.context import format_materials, materials_language
from kapsa.services.language import detect_conversational_language, pick_response_language
from kapsa.services.persistence import fetch_course_materials, save_assistant_message

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(tags=["chat"])


@router.post("/ai-chat", response_model=ChatMessageRead)
async def chat(
    request: ChatRequest,
    db: DbSession,
    user: CurrentUser,
):
    """
    Answer a student's question about a course.

    The client persists the student's message itself; this endpoint stores
    only the tutor's reply, citing up to three of the materials it was given.
    """
    course = await get_owned_or_404(db, Course, request.course_id, user.id, label="Course")
    session = await get_owned_or_404(db, ChatSession, request.session_id, user.id, label="Session")
    if session.course_id != course.id:
        raise NotFound("Session not found")

    materials = await fetch_course_materials(db, user.id, course.id, limit=settings.materials_per_prompt)

    material_language = materials_language(materials)
    message_language = detect_conversational_language(request.message)
    system_prompt = prompts.tutor_system_prompt(
        course,
        response_language=pick_response_language(message_language, material_language),
        message_language=message_language,
        material_language=material_language,
        material_context=format_materials(
            materials, settings.material_context_max_chars, include_type=True
        ),
    )
    history = request.history[-settings.chat_history_window:] if settings.chat_history_window else []

    reply = await inference_client.chat(
        prompts.tutor_prompt(request.message, history),
        system_prompt=system_prompt,
    )
    reply = reply.strip()
    if not reply:
        logger.warning("Empty tutor reply for session %s", session.id)
        raise MalformedModelOutput()

    message = await save_assistant_message(
        db,
        user_id=user.id,
        session_id=session.id,
        content=reply,
        citations=[m.title for m in materials][: settings.citations_per_message],
    )
    return ChatMessageRead.model_validate(message)
