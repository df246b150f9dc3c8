import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from interview_coach.api.v1.schemas import (
    QuestionAnswerCreate,
    QuestionAnswerCreated,
    QuestionAnswerList,
    QuestionAnswerRead,
)
from interview_coach.auth import current_active_user
from interview_coach.core.error_handling import NotFoundError
from interview_coach.db.models.user import User
from interview_coach.db.session import get_session
from interview_coach.services import persistence
from interview_coach.services.question_bank import adjust_question_for_experience

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/question-answers", tags=["question-answers"])


@router.post("/", response_model=QuestionAnswerCreated, status_code=status.HTTP_201_CREATED)
async def create_question_answer(
    qa_in: QuestionAnswerCreate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(current_active_user),
):
    if await persistence.get_interview(session, qa_in.mock_id) is None:
        raise NotFoundError("Interview", qa_in.mock_id)
    qa = await persistence.create_question_answer(
        session, mock_id=qa_in.mock_id, question=qa_in.question, answer=qa_in.answer
    )
    return QuestionAnswerCreated(data=QuestionAnswerRead.model_validate(qa))


@router.get("/", response_model=QuestionAnswerList)
async def list_question_answers(
    mock_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(current_active_user),
):
    """Questions of an interview, worded for its experience level."""
    interview = await persistence.get_interview(session, mock_id)
    if interview is None:
        raise NotFoundError("Interview", mock_id)

    years = interview.job_experience or 0
    rows = await persistence.list_question_answers(session, mock_id)
    questions = [
        QuestionAnswerRead(
            id=row.id,
            mock_id=row.mock_id,
            question=adjust_question_for_experience(row.question, years),
            answer=row.answer,
            created_at=row.created_at,
        )
        for row in rows
    ]
    logger.debug("Fetched %d questions for %s (%d years)", len(questions), mock_id, years)
    return QuestionAnswerList(questions=questions, count=len(questions), experience_level=years)
