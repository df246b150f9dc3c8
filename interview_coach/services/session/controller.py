from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

from interview_coach.core.metrics import Timer, collector
from interview_coach.services.scoring import SessionReport, score_session
from interview_coach.services.session.audio_capture import AudioCaptureAdapter
from interview_coach.services.session.errors import (
    InvalidTransitionError,
    PermissionDeniedError,
    SpeechUnsupportedError,
)
from interview_coach.services.session.platform import PermissionGate
from interview_coach.services.session.speech_input import SpeechInputAdapter
from interview_coach.services.session.speech_output import SpeechOutputAdapter

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    PERMISSIONS_REQUESTED = "permissions_requested"
    READY = "ready"
    ASKING = "asking"
    LISTENING = "listening"
    ADVANCING = "advancing"
    COMPLETED = "completed"
    RESULTS = "results"


@dataclass(frozen=True)
class SessionQuestion:
    question: str
    answer: str


class SessionController:
    """Drives one attempt at an interview, question by question.

    NOT_STARTED -> PERMISSIONS_REQUESTED -> READY -> ASKING -> LISTENING
    -> ADVANCING -> (ASKING ... | COMPLETED -> RESULTS)

    The controller owns its adapters. Speech output announces each question;
    its ``ready`` event moves the session to LISTENING, where speech input and
    audio capture collect the answer. Adapter failures switch the session to
    manual entry instead of blocking it; only the permission gate is mandatory.
    Answers can be typed at any time and simply overwrite the current one.
    """

    def __init__(
        self,
        questions: Sequence[SessionQuestion],
        *,
        permission_gate: PermissionGate,
        speech_input: Optional[SpeechInputAdapter],
        speech_output: SpeechOutputAdapter,
        audio_capture: AudioCaptureAdapter,
        settle_delay: float = 0.5,
        drain_timeout: float = 10.0,
        session_id: Optional[str] = None,
        mock_id: Optional[str] = None,
    ) -> None:
        if not questions:
            raise ValueError("A session needs at least one question")

        self.session_id = session_id or uuid.uuid4().hex
        self.mock_id = mock_id
        self.questions: List[SessionQuestion] = list(questions)
        self.answers: List[str] = [""] * len(self.questions)
        self.state = SessionState.NOT_STARTED
        self.current_index = 0
        self.errors: List[str] = []
        self.manual_entry = speech_input is None
        self.report: Optional[SessionReport] = None
        self.closed = False

        self._permission_gate = permission_gate
        self._speech_output = speech_output
        self._audio_capture = audio_capture
        self._settle_delay = settle_delay
        self._drain_timeout = drain_timeout
        self._listening = False
        self._tasks: Set[asyncio.Task] = set()
        self._waiters: Dict[SessionState, List[asyncio.Future]] = {}

        self._speech_output.on("ready", self._handle_speech_ready)
        self._audio_capture.on("error", self._handle_capture_error)
        self._speech_input: Optional[SpeechInputAdapter] = None
        if speech_input is not None:
            self._attach_speech_input(speech_input)

    # --- public surface ---

    @property
    def listening(self) -> bool:
        return self._listening

    @property
    def audio_capture(self) -> AudioCaptureAdapter:
        return self._audio_capture

    @property
    def current_question(self) -> SessionQuestion:
        return self.questions[self.current_index]

    async def request_permissions(self) -> bool:
        """Ask for camera and microphone access. Returns True when granted."""
        self._require("request permissions", SessionState.NOT_STARTED)
        self.errors.clear()
        self._transition(SessionState.PERMISSIONS_REQUESTED)

        reason = "Camera and microphone access is required to start the interview"
        try:
            granted = await self._permission_gate()
        except PermissionDeniedError as e:
            granted, reason = False, str(e)

        if self.closed:
            return False
        if not granted:
            self._report_error(reason)
            self._transition(SessionState.NOT_STARTED)
            return False
        self._transition(SessionState.READY)
        return True

    async def start(self) -> None:
        self._require("start the interview", SessionState.READY)
        collector.increment_counter("sessions_started")
        await self._ask(0)

    def set_transcript(self, text: str) -> None:
        """Overwrite the current answer with typed text. Ignored once scored."""
        if self.report is not None:
            return
        self.answers[self.current_index] = text or ""

    def stop_listening(self) -> None:
        if not self._listening:
            return
        self._stop_adapters()

    async def start_listening(self) -> None:
        self._require("start listening", SessionState.LISTENING)
        if self._listening:
            return
        await self._start_adapters(self.current_index)

    async def next_question(self) -> None:
        self._require("move to the next question", SessionState.ASKING, SessionState.LISTENING)
        index = self.current_index
        self._speech_output.cancel()
        self._stop_adapters()
        self._transition(SessionState.ADVANCING)

        # The answer is only complete once the last transcript has landed
        if self._speech_input is not None:
            await self._speech_input.drain(self._drain_timeout)
            if self.closed:
                return

        if index + 1 >= len(self.questions):
            self._complete()
            return

        # Give the platform time to release the microphone before re-acquiring it
        await asyncio.sleep(self._settle_delay)
        if self.closed:
            return
        self.current_index = index + 1
        if self._speech_input is not None:
            self._attach_speech_input(self._speech_input.reset())
        await asyncio.sleep(self._settle_delay)
        if self.closed:
            return
        await self._ask(self.current_index)

    def close(self) -> None:
        """Stop every adapter and release the devices. Safe to call repeatedly."""
        if self.closed:
            return
        self.closed = True
        self._listening = False
        self._speech_output.cancel()
        if self._speech_input is not None:
            self._speech_input.dispose()
        self._audio_capture.stop()
        for task in list(self._tasks):
            task.cancel()
        for waiters in self._waiters.values():
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()
        self._waiters.clear()
        logger.info("Session closed", extra={"session_id": self.session_id, "state": self.state.value})

    async def wait_for(self, state: SessionState, timeout: float = 5.0) -> None:
        if self.state is state:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(state, []).append(waiter)
        await asyncio.wait_for(waiter, timeout)

    async def settle(self) -> None:
        """Wait for background work triggered by adapter events to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def snapshot(self) -> dict:
        return {
            "session_id": self.session_id,
            "mock_id": self.mock_id,
            "state": self.state.value,
            "current_index": self.current_index,
            "total_questions": len(self.questions),
            "question": self.current_question.question,
            "answer": self.answers[self.current_index],
            "listening": self._listening,
            "speaking": self._speech_output.speaking,
            "manual_entry": self.manual_entry,
            "errors": list(self.errors),
            "recordings": sorted(self._audio_capture.artifacts),
        }

    # --- transitions ---

    async def _ask(self, index: int) -> None:
        self.current_index = index
        self._transition(SessionState.ASKING)
        await self._speech_output.speak(self.questions[index].question)

    async def _begin_listening(self, index: int) -> None:
        if self.closed or self.state is not SessionState.ASKING or index != self.current_index:
            return
        self._transition(SessionState.LISTENING)
        await self._start_adapters(index)

    async def _start_adapters(self, index: int) -> None:
        self._listening = True
        if self._speech_input is not None and not self.manual_entry:
            try:
                self._speech_input.start()
            except SpeechUnsupportedError as e:
                self._degrade(str(e) or "Speech recognition is not supported")

        await self._audio_capture.start(index)
        if self.closed or not self._listening or index != self.current_index:
            # Stopped or moved on while the microphone was being acquired
            self._audio_capture.stop()

    def _stop_adapters(self) -> None:
        self._listening = False
        if self._speech_input is not None:
            self._speech_input.stop()
        self._audio_capture.stop()

    def _complete(self) -> None:
        if self.report is not None:
            return
        self._transition(SessionState.COMPLETED)
        with Timer() as t:
            self.report = score_session(
                [q.question for q in self.questions],
                [q.answer for q in self.questions],
                self.answers,
            )
        collector.record_histogram("scoring_ms", t.ms)
        collector.increment_counter("sessions_completed")
        if self._speech_input is not None:
            self._speech_input.dispose()
        self._transition(SessionState.RESULTS)
        logger.info(
            "Session completed with overall score %d", self.report.overall_score,
            extra={"session_id": self.session_id, "mock_id": self.mock_id},
        )

    def _transition(self, new_state: SessionState) -> None:
        old_state, self.state = self.state, new_state
        logger.debug(
            "Session state %s -> %s", old_state.value, new_state.value,
            extra={"session_id": self.session_id, "state": new_state.value, "question_index": self.current_index},
        )
        for waiter in self._waiters.pop(new_state, []):
            if not waiter.done():
                waiter.set_result(new_state)

    def _require(self, action: str, *states: SessionState) -> None:
        if self.closed:
            raise InvalidTransitionError(action, "closed")
        if self.state not in states:
            raise InvalidTransitionError(action, self.state.value)

    # --- adapter events ---

    def _attach_speech_input(self, adapter: SpeechInputAdapter) -> None:
        index = self.current_index
        adapter.on("transcript", lambda text, final: self._handle_transcript(index, text))
        adapter.on("failure", self._degrade)
        self._speech_input = adapter

    def _handle_transcript(self, index: int, text: str) -> None:
        if self.report is not None:
            return
        self.answers[index] = text

    def _handle_speech_ready(self) -> None:
        if self.closed or self.state is not SessionState.ASKING:
            return
        self._spawn(self._begin_listening(self.current_index))

    def _handle_capture_error(self, message: str) -> None:
        self._report_error(message)

    def _degrade(self, reason: str) -> None:
        if not self.manual_entry:
            logger.warning(
                "Switching to manual answer entry: %s", reason,
                extra={"session_id": self.session_id},
            )
        self.manual_entry = True
        self._report_error(reason)

    def _report_error(self, message: str) -> None:
        if message and message not in self.errors:
            self.errors.append(message)

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Session background task failed: %s", exc,
                exc_info=exc, extra={"session_id": self.session_id},
            )
            self._degrade(f"Unexpected error while starting to listen: {exc}")
