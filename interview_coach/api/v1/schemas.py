from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _not_blank(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("must not be empty")
    return value


# Interviews ---------------------------------------------------------

class InterviewCreate(BaseModel):
    job_position: str
    job_desc: str
    job_experience: int = Field(ge=0, le=60)
    json_mock_resp: str
    mock_id: Optional[str] = Field(default=None, max_length=64)

    @field_validator("job_position", "job_desc", "json_mock_resp")
    @classmethod
    def require_text(cls, value: str) -> str:
        return _not_blank(value)


class InterviewGenerate(BaseModel):
    job_position: str
    job_desc: str
    job_experience: int = Field(ge=0, le=60)
    question_count: Optional[int] = Field(default=None, ge=1, le=20)
    seed: Optional[int] = None

    @field_validator("job_position", "job_desc")
    @classmethod
    def require_text(cls, value: str) -> str:
        return _not_blank(value)


class InterviewRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    mock_id: str
    job_position: str
    job_desc: str
    job_experience: int
    json_mock_resp: str
    created_by: str
    created_at: datetime


class InterviewCreated(BaseModel):
    success: bool = True
    message: str
    mock_id: str


class InterviewList(BaseModel):
    success: bool = True
    interviews: List[InterviewRead]


class InterviewDeleted(BaseModel):
    success: bool = True
    message: str
    deleted_questions: int


class InterviewGenerated(BaseModel):
    success: bool = True
    mock_id: str
    source: str
    saved_questions: int
    save_errors: int


# Question-answer pairs ----------------------------------------------

class QuestionAnswerCreate(BaseModel):
    question: str
    answer: str
    mock_id: str

    @field_validator("question", "answer", "mock_id")
    @classmethod
    def require_text(cls, value: str) -> str:
        return _not_blank(value)


class QuestionAnswerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    mock_id: str
    question: str
    answer: str
    created_at: datetime


class QuestionAnswerCreated(BaseModel):
    success: bool = True
    data: QuestionAnswerRead


class QuestionAnswerList(BaseModel):
    success: bool = True
    questions: List[QuestionAnswerRead]
    count: int
    experience_level: int


# Sessions -----------------------------------------------------------

class SessionCreate(BaseModel):
    mock_id: str


class PermissionReport(BaseModel):
    camera: bool
    microphone: bool


class TranscriptUpdate(BaseModel):
    text: str = ""


class RecognitionResultIn(BaseModel):
    transcript: str
    is_final: bool = False


class RecognitionEvent(BaseModel):
    """What the browser recognizer reported since the last post."""

    results: List[RecognitionResultIn] = Field(default_factory=list)
    error: Optional[str] = None
    ended: bool = False


class SpeechAck(BaseModel):
    clip_id: Optional[str] = None


class SessionSnapshot(BaseModel):
    session_id: str
    mock_id: Optional[str] = None
    state: str
    current_index: int
    total_questions: int
    question: str
    answer: str
    listening: bool
    speaking: bool
    manual_entry: bool
    errors: List[str]
    recordings: List[int]
    recognition: str
    recognition_active: bool
    speech_clip: Optional[str] = None


class QuestionFeedbackRead(BaseModel):
    index: int
    question: str
    score: int
    feedback: str
    transcript: str
    reference_answer: str
    keyword_score: float
    phrase_score: float
    missing_keywords: List[str]


class SessionResults(BaseModel):
    session_id: str
    mock_id: Optional[str] = None
    overall_score: int
    overall_feedback: str
    feedback: List[QuestionFeedbackRead]
