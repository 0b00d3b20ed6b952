"""API route for quiz generation and evaluation."""

import logging
from typing import Annotated

from fastapi import APIRouter, Body
from sqlalchemy.ext.asyncio import AsyncSession

from kapsa.api.deps import CurrentUser, DbSession, get_owned_or_404
from kapsa.config import get_settings
from kapsa.db.models import Course, Test, User
from kapsa.errors import MalformedModelOutput
from kapsa.schemas.quiz import (
    QuizEvaluateRequest,
    QuizGenerateRequest,
    QuizRequest,
    QuizResponse,
    TestQuestionRead,
    TestRead,
)
from kapsa.services import grading, prompts
from kapsa.services.context import format_materials, materials_language
from kapsa.services.language import detect_language
from kapsa.services.normalizer import generate_json_array
from kapsa.services.persistence import (
    apply_evaluation,
    create_test_with_questions,
    fetch_course_materials,
    fetch_test_questions,
)
from kapsa.services.sanitize import clean_quiz_question, only_objects

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(tags=["quiz"])

NO_MATERIALS = "Generate general knowledge questions for the course."


@router.post("/ai-generate-quiz", response_model=QuizResponse)
async def quiz(
    request: Annotated[QuizRequest, Body(discriminator="action")],
    db: DbSession,
    user: CurrentUser,
):
    """
    Dispatch on ``action``.

    - generate: create a quiz for a course
    - evaluate: grade the submitted answers for a quiz
    """
    if isinstance(request, QuizGenerateRequest):
        return await generate_quiz(request, db, user)
    return await evaluate_quiz(request, db, user)


# =============================================================================
# ACTIONS
# =============================================================================


async def generate_quiz(request: QuizGenerateRequest, db: AsyncSession, user: User) -> QuizResponse:
    course = await get_owned_or_404(db, Course, request.course_id, user.id, label="Course")

    materials = await fetch_course_materials(db, user.id, course.id, limit=settings.materials_per_prompt)
    material_content = (
        format_materials(materials, settings.material_context_max_chars) if materials else NO_MATERIALS
    )

    system_prompt, prompt, retry_prompt = prompts.quiz_prompts(
        course_title=course.title,
        language=materials_language(materials),
        count=request.count,
        material_content=material_content,
    )
    items = await generate_json_array(prompt, system_prompt=system_prompt, retry_prompt=retry_prompt)

    questions = [clean_quiz_question(item) for item in only_objects(items)][: request.count]
    if not questions:
        logger.warning("Quiz output for course %s contained no question objects", course.id)
        raise MalformedModelOutput()

    test, rows = await create_test_with_questions(
        db,
        user_id=user.id,
        course_id=course.id,
        title=f"{course.title or 'Quiz'} - Quiz",
        questions=questions,
    )
    return QuizResponse(
        test=TestRead.model_validate(test),
        questions=[TestQuestionRead.model_validate(q) for q in rows],
    )


async def evaluate_quiz(request: QuizEvaluateRequest, db: AsyncSession, user: User) -> QuizResponse:
    """
    Grade answers and move the test to ``evaluated``.

    Answers for question ids not in this test are ignored; questions without
    an answer are graded against an empty string.
    """
    test = await get_owned_or_404(db, Test, request.test_id, user.id, label="Test")
    questions = await fetch_test_questions(db, user.id, test.id)

    answers = {a.question_id: a.answer for a in request.answers}
    language = detect_language(" ".join(q.question for q in questions))

    graded = await grading.grade_answers(questions, answers, language)
    correct = sum(1 for g in graded if g.is_correct)
    score = correct / (len(questions) or 1)

    test = await apply_evaluation(
        db,
        test=test,
        questions=questions,
        graded=graded,
        score=score,
        grade=grading.calculate_grade(score),
        motivation_text=grading.motivation_text(score, language),
    )
    logger.info("Evaluated test %s: %d/%d", test.id, correct, len(questions))
    return QuizResponse(
        test=TestRead.model_validate(test),
        questions=[TestQuestionRead.model_validate(q) for q in questions],
    )
