import datetime as dt
import uuid

from sqlalchemy import Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from interview_coach.db.base import Base


def new_mock_id() -> str:
    return uuid.uuid4().hex


class Interview(Base):
    """A generated mock interview for one role/experience profile.

    Question-answer pairs reference it by ``mock_id``; removing them is the
    job of the delete operation, not of a database constraint.
    """

    __tablename__ = "mock_interviews"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    mock_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True, default=new_mock_id)
    job_position: Mapped[str] = mapped_column(String(255), nullable=False)
    job_desc: Mapped[str] = mapped_column(Text(), nullable=False)
    job_experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Raw generator output the questions were parsed from
    json_mock_resp: Mapped[str] = mapped_column(Text(), nullable=False, default="")
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, default="anonymous", index=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        default=func.now(), nullable=False, server_default=func.now()
    )
