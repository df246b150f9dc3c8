import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from interview_coach.api.v1.schemas import (
    InterviewCreate,
    InterviewCreated,
    InterviewDeleted,
    InterviewGenerate,
    InterviewGenerated,
    InterviewList,
    InterviewRead,
)
from interview_coach.auth import current_active_user, user_label
from interview_coach.core.config import settings
from interview_coach.core.error_handling import BusinessLogicError, ExternalServiceError, NotFoundError
from interview_coach.db.models.user import User
from interview_coach.db.session import get_session
from interview_coach.services import persistence
from interview_coach.services.question_generation import QuestionParseError, generate_interview_questions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interviews", tags=["interviews"])


@router.post("/", response_model=InterviewCreated, status_code=status.HTTP_201_CREATED)
async def create_interview(
    int_in: InterviewCreate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(current_active_user),
):
    try:
        interview = await persistence.create_interview(
            session,
            job_position=int_in.job_position,
            job_desc=int_in.job_desc,
            job_experience=int_in.job_experience,
            json_mock_resp=int_in.json_mock_resp,
            created_by=user_label(current_user),
            mock_id=int_in.mock_id,
        )
    except IntegrityError:
        await session.rollback()
        raise BusinessLogicError("unique_mock_id", f"Mock interview {int_in.mock_id} already exists")
    return InterviewCreated(message="Mock interview saved successfully", mock_id=interview.mock_id)


@router.get("/", response_model=InterviewList)
async def list_interviews(
    mock_id: Optional[str] = None,
    created_by: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(current_active_user),
):
    interviews = await persistence.list_interviews(session, mock_id=mock_id, created_by=created_by)
    return InterviewList(interviews=[InterviewRead.model_validate(i) for i in interviews])


@router.delete("/{mock_id}", response_model=InterviewDeleted)
async def delete_interview(
    mock_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(current_active_user),
):
    deleted, deleted_questions = await persistence.delete_interview(session, mock_id)
    if not deleted:
        raise NotFoundError("Interview", mock_id)
    return InterviewDeleted(message="Interview deleted successfully", deleted_questions=deleted_questions)


@router.post("/generate", response_model=InterviewGenerated, status_code=status.HTTP_201_CREATED)
async def generate_interview(
    gen_in: InterviewGenerate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(current_active_user),
):
    """Generate questions for a role, then store the interview and its pairs."""
    try:
        generated = await generate_interview_questions(
            gen_in.job_position,
            gen_in.job_desc,
            gen_in.job_experience,
            gen_in.question_count or settings.interview_question_count,
            seed=gen_in.seed,
        )
    except QuestionParseError as e:
        raise ExternalServiceError("gemini", str(e), user_message="Failed to generate interview questions.")

    interview = await persistence.create_interview(
        session,
        job_position=gen_in.job_position,
        job_desc=gen_in.job_desc,
        job_experience=gen_in.job_experience,
        json_mock_resp=generated.raw,
        created_by=user_label(current_user),
    )
    rows = await persistence.create_question_answers(session, interview.mock_id, generated.pairs)
    logger.info(
        "Stored %d questions for %s", len(rows), interview.mock_id,
        extra={"mock_id": interview.mock_id},
    )
    return InterviewGenerated(
        mock_id=interview.mock_id,
        source=generated.source,
        saved_questions=len(rows),
        save_errors=generated.invalid,
    )
