"""API route for capture ingestion: scanned pages (OCR) and recordings (transcription)."""

import logging
from datetime import date

from fastapi import APIRouter

from kapsa.api.deps import CurrentUser, DbSession, get_owned_or_404
from kapsa.db.models import Course, MaterialType
from kapsa.schemas.capture import CaptureRequest, CourseMaterialRead
from kapsa.services import inference_client
from kapsa.services.persistence import save_material

logger = logging.getLogger(__name__)

router = APIRouter(tags=["capture"])


@router.post("/process-capture", response_model=CourseMaterialRead)
async def process_capture(
    request: CaptureRequest,
    db: DbSession,
    user: CurrentUser,
):
    """
    Extract text from an uploaded file and save it as a course material.

    - ocr: image of a page, stored as a ``pdf`` material
    - whisper: audio recording, stored as an ``audio`` material
    """
    course = await get_owned_or_404(db, Course, request.course_id, user.id, label="Course")
    today = date.today().isoformat()

    if request.type == "ocr":
        logger.info("Running OCR for course %s", course.id)
        content = await inference_client.extract_text_from_image(request.file_url)
        material_type = MaterialType.PDF.value
        default_title = f"Scanned - {today}"
    else:
        logger.info("Running transcription for course %s", course.id)
        content = await inference_client.transcribe_audio(request.file_url)
        material_type = MaterialType.AUDIO.value
        default_title = f"Transcribed - {today}"

    material = await save_material(
        db,
        user_id=user.id,
        course_id=course.id,
        title=request.title or default_title,
        material_type=material_type,
        content=content.strip(),
        file_url=request.file_url,
    )
    return CourseMaterialRead.model_validate(material)
