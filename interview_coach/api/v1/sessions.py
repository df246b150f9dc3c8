"""Interview sessions driven by the browser over HTTP.

A session lives in memory for one attempt at an interview. The client polls
the snapshot, plays the question clip, uploads recorder chunks and relays its
speech recognition results; every action answers with the updated snapshot.
"""
import logging
from contextlib import contextmanager

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from interview_coach.api.v1.schemas import (
    PermissionReport,
    RecognitionEvent,
    SessionCreate,
    SessionResults,
    SessionSnapshot,
    SpeechAck,
    TranscriptUpdate,
)
from interview_coach.auth import current_active_user, user_label
from interview_coach.core.error_handling import BusinessLogicError, NotFoundError, ValidationError
from interview_coach.db.models.user import User
from interview_coach.db.session import get_session
from interview_coach.services import persistence
from interview_coach.services.question_bank import adjust_question_for_experience
from interview_coach.services.session.controller import SessionQuestion, SessionState
from interview_coach.services.session.errors import InvalidTransitionError
from interview_coach.services.session.platform import RecognitionAlternative
from interview_coach.services.session.registry import SessionHandle, registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@contextmanager
def session_action():
    """Report actions the current state does not allow as conflicts."""
    try:
        yield
    except InvalidTransitionError as e:
        raise BusinessLogicError(
            "session_state", str(e), details={"action": e.action, "state": e.state}
        ) from e


def _handle(session_id: str, user: User) -> SessionHandle:
    return registry.get(session_id, owner=user_label(user))


@router.post("/", response_model=SessionSnapshot, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: SessionCreate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(current_active_user),
):
    interview = await persistence.get_interview(session, body.mock_id)
    if interview is None:
        raise NotFoundError("Interview", body.mock_id)
    rows = await persistence.list_question_answers(session, body.mock_id)
    if not rows:
        raise ValidationError("Interview has no questions", user_message="This interview has no questions yet.")

    years = interview.job_experience or 0
    questions = [
        SessionQuestion(question=adjust_question_for_experience(row.question, years), answer=row.answer)
        for row in rows
    ]
    handle = registry.create(questions, mock_id=interview.mock_id, owner=user_label(current_user))
    return handle.snapshot()


@router.get("/{session_id}", response_model=SessionSnapshot)
async def get_session_snapshot(session_id: str, current_user: User = Depends(current_active_user)):
    return _handle(session_id, current_user).snapshot()


@router.post("/{session_id}/permissions", response_model=SessionSnapshot)
async def report_permissions(
    session_id: str,
    body: PermissionReport,
    current_user: User = Depends(current_active_user),
):
    """Record the browser's camera/microphone grants and run the permission check.

    A denial is not an HTTP error: the snapshot stays NOT_STARTED and lists it.
    """
    handle = _handle(session_id, current_user)
    handle.gate.report(camera=body.camera, microphone=body.microphone)
    with session_action():
        await handle.controller.request_permissions()
    return handle.snapshot()


@router.post("/{session_id}/start", response_model=SessionSnapshot)
async def start_session(session_id: str, current_user: User = Depends(current_active_user)):
    handle = _handle(session_id, current_user)
    with session_action():
        await handle.controller.start()
    await handle.settle()
    return handle.snapshot()


@router.post("/{session_id}/next", response_model=SessionSnapshot)
async def next_question(session_id: str, current_user: User = Depends(current_active_user)):
    handle = _handle(session_id, current_user)
    with session_action():
        await handle.controller.next_question()
    await handle.settle()
    return handle.snapshot()


@router.post("/{session_id}/listening/stop", response_model=SessionSnapshot)
async def stop_listening(session_id: str, current_user: User = Depends(current_active_user)):
    handle = _handle(session_id, current_user)
    handle.controller.stop_listening()
    return handle.snapshot()


@router.post("/{session_id}/listening/start", response_model=SessionSnapshot)
async def start_listening(session_id: str, current_user: User = Depends(current_active_user)):
    handle = _handle(session_id, current_user)
    with session_action():
        await handle.controller.start_listening()
    return handle.snapshot()


@router.put("/{session_id}/transcript", response_model=SessionSnapshot)
async def set_transcript(
    session_id: str,
    body: TranscriptUpdate,
    current_user: User = Depends(current_active_user),
):
    handle = _handle(session_id, current_user)
    handle.controller.set_transcript(body.text)
    return handle.snapshot()


@router.post("/{session_id}/audio")
async def upload_audio_chunk(
    session_id: str,
    file: UploadFile = File(...),
    current_user: User = Depends(current_active_user),
):
    """Accept one recorder chunk from the browser."""
    handle = _handle(session_id, current_user)
    chunk = await file.read()
    consumers = handle.feed.push(chunk) if chunk else 0
    if not consumers:
        logger.debug("Audio chunk dropped: nothing is recording", extra={"session_id": session_id})
    return {"received": len(chunk), "accepted": consumers > 0}


@router.post("/{session_id}/recognition", response_model=SessionSnapshot)
async def relay_recognition(
    session_id: str,
    body: RecognitionEvent,
    current_user: User = Depends(current_active_user),
):
    handle = _handle(session_id, current_user)
    if handle.relay is None:
        raise BusinessLogicError("recognition_provider", "Speech recognition runs on the server for this session")
    delivered = handle.relay.deliver(
        results=[RecognitionAlternative(r.transcript, r.is_final) for r in body.results],
        error=body.error,
        ended=body.ended,
    )
    if not delivered:
        logger.debug("Recognition event ignored: recognizer not active", extra={"session_id": session_id})
    return handle.snapshot()


@router.get("/{session_id}/speech")
async def get_speech_clip(session_id: str, current_user: User = Depends(current_active_user)):
    """Audio of the question being asked. 204 when it is rendered silently."""
    handle = _handle(session_id, current_user)
    clip = handle.synthesis.clip
    if clip is None and handle.controller.state is SessionState.ASKING:
        clip = await handle.synthesis.wait_for_clip()
    if clip is None:
        raise NotFoundError("Speech clip", session_id)
    headers = {"X-Clip-Id": clip.clip_id, "X-TTS-Provider": clip.provider}
    if not clip.data:
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)
    return Response(content=clip.data, media_type=clip.media_type, headers=headers)


@router.post("/{session_id}/speech/ended", response_model=SessionSnapshot)
async def speech_ended(
    session_id: str,
    body: SpeechAck,
    current_user: User = Depends(current_active_user),
):
    """The browser finished playing the question; start listening."""
    handle = _handle(session_id, current_user)
    if handle.synthesis.mark_played(body.clip_id):
        await handle.synthesis.drain()
        await handle.controller.settle()
    return handle.snapshot()


@router.get("/{session_id}/recordings/{index}")
async def get_recording(session_id: str, index: int, current_user: User = Depends(current_active_user)):
    handle = _handle(session_id, current_user)
    artifact = handle.controller.audio_capture.artifacts.get(index)
    if artifact is None:
        raise NotFoundError("Recording", f"{session_id}/{index}")
    return Response(content=artifact.data, media_type=artifact.mime_type)


@router.get("/{session_id}/results", response_model=SessionResults)
async def get_results(session_id: str, current_user: User = Depends(current_active_user)):
    handle = _handle(session_id, current_user)
    report = handle.controller.report
    if report is None:
        raise BusinessLogicError(
            "session_state",
            "Results are available once the interview is completed",
            details={"state": handle.controller.state.value},
        )
    return {"session_id": handle.session_id, "mock_id": handle.controller.mock_id, **report.to_dict()}


@router.delete("/{session_id}")
async def delete_session(session_id: str, current_user: User = Depends(current_active_user)):
    """End the session and release its devices."""
    handle = registry.close(session_id, owner=user_label(current_user))
    return {"success": True, "session_id": handle.session_id, "state": handle.controller.state.value}
