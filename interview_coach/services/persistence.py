from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from interview_coach.db.models.interview import Interview, new_mock_id
from interview_coach.db.models.question_answer import QuestionAnswer

logger = logging.getLogger(__name__)


async def create_interview(
    session: AsyncSession,
    *,
    job_position: str,
    job_desc: str,
    job_experience: int,
    json_mock_resp: str,
    created_by: str = "anonymous",
    mock_id: Optional[str] = None,
) -> Interview:
    interview = Interview(
        mock_id=mock_id or new_mock_id(),
        job_position=job_position,
        job_desc=job_desc,
        job_experience=job_experience,
        json_mock_resp=json_mock_resp,
        created_by=created_by or "anonymous",
    )
    session.add(interview)
    await session.commit()
    await session.refresh(interview)
    return interview


async def get_interview(session: AsyncSession, mock_id: str) -> Optional[Interview]:
    result = await session.execute(select(Interview).where(Interview.mock_id == mock_id))
    return result.scalar_one_or_none()


async def list_interviews(
    session: AsyncSession,
    mock_id: Optional[str] = None,
    created_by: Optional[str] = None,
) -> List[Interview]:
    """Interviews matching the optional filters, newest first."""
    stmt = select(Interview)
    if mock_id:
        stmt = stmt.where(Interview.mock_id == mock_id)
    if created_by:
        stmt = stmt.where(Interview.created_by == created_by)
    stmt = stmt.order_by(Interview.created_at.desc(), Interview.id.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_interview(session: AsyncSession, mock_id: str) -> Tuple[bool, int]:
    """Delete an interview, then its question-answer pairs.

    Returns (deleted, deleted_question_count). The two deletes are separate
    commits: if the second fails the interview is already gone.
    """
    result = await session.execute(delete(Interview).where(Interview.mock_id == mock_id))
    await session.commit()
    if not result.rowcount:
        return False, 0

    result = await session.execute(delete(QuestionAnswer).where(QuestionAnswer.mock_id == mock_id))
    await session.commit()
    deleted_questions = int(result.rowcount or 0)
    logger.info("Deleted interview %s and %d questions", mock_id, deleted_questions, extra={"mock_id": mock_id})
    return True, deleted_questions


async def create_question_answer(session: AsyncSession, *, mock_id: str, question: str, answer: str) -> QuestionAnswer:
    qa = QuestionAnswer(mock_id=mock_id, question=question, answer=answer)
    session.add(qa)
    await session.commit()
    await session.refresh(qa)
    return qa


async def create_question_answers(session: AsyncSession, mock_id: str, pairs: Sequence[dict]) -> List[QuestionAnswer]:
    """Bulk insert pairs for a freshly generated interview, preserving order."""
    rows = [QuestionAnswer(mock_id=mock_id, question=p["question"], answer=p["answer"]) for p in pairs]
    for row in rows:
        session.add(row)
        # Flush one by one so ids follow the generated order
        await session.flush()
    await session.commit()
    return rows


async def list_question_answers(session: AsyncSession, mock_id: str) -> List[QuestionAnswer]:
    """Pairs of an interview in creation order."""
    result = await session.execute(
        select(QuestionAnswer)
        .where(QuestionAnswer.mock_id == mock_id)
        .order_by(QuestionAnswer.created_at.asc(), QuestionAnswer.id.asc())
    )
    return list(result.scalars().all())
