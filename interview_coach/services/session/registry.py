from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from interview_coach.core.config import settings
from interview_coach.core.error_handling import NotFoundError
from interview_coach.core.metrics import collector
from interview_coach.services import stt, tts
from interview_coach.services.session.audio_capture import AudioCaptureAdapter
from interview_coach.services.session.controller import SessionController, SessionQuestion, SessionState
from interview_coach.services.session.remote import (
    AudioFeed,
    ClientPermissionGate,
    ProviderSynthesisEngine,
    RecognitionRelay,
    RemoteMediaDevices,
    whisper_engine_factory,
)
from interview_coach.services.session.speech_input import SpeechInputAdapter
from interview_coach.services.session.speech_output import SpeechOutputAdapter

logger = logging.getLogger(__name__)


@dataclass
class SessionHandle:
    """A live session and the client-facing ends of its engines."""

    controller: SessionController
    gate: ClientPermissionGate
    feed: AudioFeed
    devices: RemoteMediaDevices
    synthesis: ProviderSynthesisEngine
    relay: Optional[RecognitionRelay]
    owner: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    last_used: float = field(default_factory=time.time)

    @property
    def session_id(self) -> str:
        return self.controller.session_id

    async def settle(self, clip_timeout: float = 10.0) -> None:
        """Let the session catch up after an action.

        While a question is being asked this waits for its clip; silent clips
        end at once, so the session can reach LISTENING before returning.
        """
        if self.controller.state is SessionState.ASKING:
            clip = await self.synthesis.wait_for_clip(clip_timeout)
            if clip is None or not clip.data:
                await self.synthesis.drain()
        await self.controller.settle()

    def snapshot(self) -> dict:
        data = self.controller.snapshot()
        clip = self.synthesis.clip
        data["recognition"] = "client" if self.relay is not None else "whisper"
        data["recognition_active"] = bool(self.relay and self.relay.active)
        data["speech_clip"] = clip.clip_id if clip is not None and not clip.played else None
        return data


def build_session(
    questions: Sequence[SessionQuestion],
    *,
    mock_id: Optional[str] = None,
    owner: Optional[str] = None,
) -> SessionHandle:
    """Wire a controller to engines fed by the browser client."""
    gate = ClientPermissionGate()
    feed = AudioFeed()
    devices = RemoteMediaDevices(gate, feed)

    relay: Optional[RecognitionRelay] = None
    if settings.recognition_provider == "whisper":
        factory = whisper_engine_factory(
            feed, stt.transcribe_with_whisper, available=bool(settings.openai_api_key)
        )
    else:
        relay = RecognitionRelay()
        factory = relay.factory()

    speech_input = SpeechInputAdapter(
        factory,
        restart_delay=settings.recognition_restart_delay,
        max_restarts=settings.recognition_max_restarts,
    )
    synthesis = ProviderSynthesisEngine(
        tts.synthesize_speech, tts.available_voices, ack_timeout=settings.speech_ack_timeout
    )
    speech_output = SpeechOutputAdapter(synthesis, voice_load_timeout=settings.voice_load_timeout)

    controller = SessionController(
        questions,
        permission_gate=gate,
        speech_input=speech_input,
        speech_output=speech_output,
        audio_capture=AudioCaptureAdapter(devices),
        settle_delay=settings.session_settle_delay,
        drain_timeout=settings.recognition_drain_timeout,
        session_id=uuid.uuid4().hex,
        mock_id=mock_id,
    )
    return SessionHandle(
        controller=controller,
        gate=gate,
        feed=feed,
        devices=devices,
        synthesis=synthesis,
        relay=relay,
        owner=owner,
    )


class SessionRegistry:
    """In-memory store of live sessions. Sessions do not survive a restart.

    Sessions expire after ``ttl`` seconds without being looked up (default:
    ``SESSION_TTL``). Expired sessions are closed and evicted lazily, whenever
    a session is created or fetched.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.time) -> None:
        self._sessions: Dict[str, SessionHandle] = {}
        self._ttl = ttl
        self._clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def ttl(self) -> float:
        return self._ttl if self._ttl is not None else settings.session_ttl

    def create(
        self,
        questions: Sequence[SessionQuestion],
        *,
        mock_id: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> SessionHandle:
        self.evict_expired()
        handle = build_session(questions, mock_id=mock_id, owner=owner)
        handle.created_at = handle.last_used = self._clock()
        self._sessions[handle.session_id] = handle
        logger.info(
            "Session created with %d questions", len(questions),
            extra={"session_id": handle.session_id, "mock_id": mock_id},
        )
        return handle

    def get(self, session_id: str, owner: Optional[str] = None) -> SessionHandle:
        self.evict_expired()
        handle = self._sessions.get(session_id)
        if handle is None or (owner is not None and handle.owner != owner):
            raise NotFoundError("Session", session_id)
        handle.last_used = self._clock()
        return handle

    def close(self, session_id: str, owner: Optional[str] = None) -> SessionHandle:
        handle = self.get(session_id, owner)
        self._discard(handle)
        return handle

    def close_all(self) -> List[str]:
        closed = list(self._sessions)
        for session_id in closed:
            self._discard(self._sessions[session_id])
        return closed

    def evict_expired(self) -> List[str]:
        """Close every session idle for longer than the TTL. Returns their ids."""
        now = self._clock()
        expired = [h for h in self._sessions.values() if now - h.last_used > self.ttl]
        for handle in expired:
            logger.info(
                "Session expired after %.0fs", now - handle.created_at,
                extra={"session_id": handle.session_id, "state": handle.controller.state.value},
            )
            self._discard(handle)
        if expired:
            collector.increment_counter("sessions_expired", len(expired))
        return [h.session_id for h in expired]

    def _discard(self, handle: SessionHandle) -> None:
        handle.controller.close()
        handle.synthesis.cancel()
        self._sessions.pop(handle.session_id, None)


registry = SessionRegistry()
