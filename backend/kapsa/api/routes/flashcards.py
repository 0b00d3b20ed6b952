"""API route for flashcard deck generation."""

import logging

from fastapi import APIRouter

from kapsa.api.deps import CurrentUser, DbSession, get_owned_or_404
from kapsa.config import get_settings
from kapsa.db.models import Course, CourseMaterial
from kapsa.errors import MalformedModelOutput, NotFound
from kapsa.schemas.flashcards import FlashcardDeckRead, FlashcardGenerateRequest
from kapsa.services import prompts
from kapsa.services.context import format_materials, materials_language
from kapsa.services.normalizer import generate_json_array
from kapsa.services.persistence import create_deck_with_cards, fetch_course_materials
from kapsa.services.sanitize import clean_flashcard, only_objects

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(tags=["flashcards"])

NO_MATERIALS = "No materials available. Generate general study flashcards for the course."


@router.post("/ai-generate-flashcards", response_model=FlashcardDeckRead)
async def generate_flashcards(
    request: FlashcardGenerateRequest,
    db: DbSession,
    user: CurrentUser,
):
    """
    Generate a deck of flashcards from a course's materials.

    With ``materialId`` only that material is used, and it must belong to the
    course. Cards are written in the materials' language; the deck's
    card_count is the number actually stored.
    """
    course = await get_owned_or_404(db, Course, request.course_id, user.id, label="Course")
    if request.material_id is not None:
        material = await get_owned_or_404(db, CourseMaterial, request.material_id, user.id, label="Material")
        if material.course_id != course.id:
            raise NotFound("Material not found")

    materials = await fetch_course_materials(
        db,
        user.id,
        course.id,
        material_id=request.material_id,
        limit=settings.materials_per_prompt,
    )
    material_content = (
        format_materials(materials, settings.flashcard_material_max_chars) if materials else NO_MATERIALS
    )

    system_prompt, prompt, retry_prompt = prompts.flashcard_prompts(
        course_title=course.title,
        language=materials_language(materials),
        count=request.count,
        material_content=material_content,
        topic=request.topic,
    )
    items = await generate_json_array(prompt, system_prompt=system_prompt, retry_prompt=retry_prompt)

    cards = [clean_flashcard(item) for item in only_objects(items)][: request.count]
    if not cards:
        logger.warning("Flashcard output for course %s contained no card objects", course.id)
        raise MalformedModelOutput()

    deck = await create_deck_with_cards(
        db,
        user_id=user.id,
        course_id=course.id,
        title=request.topic or course.title or "Study Deck",
        cards=cards,
    )
    logger.info("Created deck %s with %d cards", deck.id, deck.card_count)
    return FlashcardDeckRead.model_validate(deck)
