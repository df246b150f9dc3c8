"""Server-side engines for sessions driven by a browser client over HTTP.

The browser owns the camera, microphone and speakers. It reports permission
grants, uploads recorder chunks, relays recognition results and acknowledges
playback of synthesized questions; these classes turn that traffic into the
engine callbacks the session adapters expect.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from interview_coach.core.metrics import Timer, collector
from interview_coach.services.session.errors import PermissionDeniedError, SpeechUnsupportedError
from interview_coach.services.session.platform import (
    NETWORK,
    NO_SPEECH,
    NOT_ALLOWED,
    RecognitionAlternative,
    Utterance,
    Voice,
)

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_MIME_TYPES = ("audio/webm", "audio/ogg")


# --- permissions ---


class ClientPermissionGate:
    """Holds the grants the client reported; awaiting it checks them."""

    def __init__(self) -> None:
        self.camera = False
        self.microphone = False
        self.reported = False

    def report(self, camera: bool, microphone: bool) -> None:
        self.camera = bool(camera)
        self.microphone = bool(microphone)
        self.reported = True

    async def __call__(self) -> bool:
        if not self.reported:
            raise PermissionDeniedError("The browser has not reported camera and microphone access yet")
        if not self.microphone:
            raise PermissionDeniedError("Microphone access was denied", code=NOT_ALLOWED)
        if not self.camera:
            raise PermissionDeniedError("Camera access was denied", code=NOT_ALLOWED)
        return True


# --- media ---


class AudioFeed:
    """Fans uploaded audio chunks out to whoever is consuming them."""

    def __init__(self) -> None:
        self._subscribers: List[Callable[[bytes], None]] = []

    def subscribe(self, callback: Callable[[bytes], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def push(self, chunk: bytes) -> int:
        """Deliver a chunk; returns how many consumers received it."""
        receivers = list(self._subscribers)
        for callback in receivers:
            callback(chunk)
        return len(receivers)

    @property
    def consumers(self) -> int:
        return len(self._subscribers)


class RemoteTrack:
    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.ready_state = "live"

    def stop(self) -> None:
        self.ready_state = "ended"


class RemoteStream:
    def __init__(self, tracks: Sequence[RemoteTrack]) -> None:
        self._tracks = list(tracks)

    def get_tracks(self) -> List[RemoteTrack]:
        return list(self._tracks)

    @property
    def active(self) -> bool:
        return any(t.ready_state == "live" for t in self._tracks)


class RemoteRecorder:
    """Collects uploaded chunks between start and stop."""

    def __init__(self, feed: AudioFeed, mime_type: str) -> None:
        self.mime_type = mime_type
        self.state = "inactive"
        self.on_data: Optional[Callable[[bytes], None]] = None
        self.timeslice_ms: Optional[int] = None
        self._feed = feed
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self, timeslice_ms: int) -> None:
        if self.state == "recording":
            return
        self.timeslice_ms = timeslice_ms
        self.state = "recording"
        self._unsubscribe = self._feed.subscribe(self._deliver)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.state = "inactive"

    def _deliver(self, chunk: bytes) -> None:
        if self.state == "recording" and self.on_data is not None:
            self.on_data(chunk)


class RemoteMediaDevices:
    def __init__(
        self,
        gate: ClientPermissionGate,
        feed: AudioFeed,
        mime_types: Sequence[str] = DEFAULT_CLIENT_MIME_TYPES,
    ) -> None:
        self._gate = gate
        self._feed = feed
        self.mime_types = list(mime_types)
        self.streams: List[RemoteStream] = []

    async def get_user_media(self, constraints: dict) -> RemoteStream:
        if not self._gate.microphone:
            raise PermissionDeniedError("Microphone access was denied", code=NOT_ALLOWED)
        stream = RemoteStream([RemoteTrack("audio")])
        self.streams.append(stream)
        return stream

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in self.mime_types

    def create_recorder(self, stream: RemoteStream, mime_type: str) -> RemoteRecorder:
        return RemoteRecorder(self._feed, mime_type or "audio/webm")

    @property
    def active_streams(self) -> int:
        return sum(1 for s in self.streams if s.active)


# --- recognition ---


class RecognitionRelay:
    """Routes recognition events posted by the client to the live engine."""

    def __init__(self) -> None:
        self.current: Optional["ClientRecognitionEngine"] = None

    @property
    def active(self) -> bool:
        return self.current is not None and self.current.active

    def deliver(
        self,
        results: Sequence[RecognitionAlternative] = (),
        error: Optional[str] = None,
        ended: bool = False,
    ) -> bool:
        """Hand client events to the engine. Returns False when nothing is listening."""
        engine = self.current
        if engine is None or not engine.active:
            return False
        if results:
            engine.receive_results(results)
        if error:
            engine.receive_error(error)
        if ended:
            engine.receive_end()
        return True

    def factory(self) -> Callable[[], "ClientRecognitionEngine"]:
        return lambda: ClientRecognitionEngine(self)


class ClientRecognitionEngine:
    """Recognition running in the browser, mirrored on the server."""

    def __init__(self, relay: RecognitionRelay) -> None:
        self.lang = "en-US"
        self.on_start: Optional[Callable[[], None]] = None
        self.on_result: Optional[Callable[[Sequence[RecognitionAlternative]], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_end: Optional[Callable[[], None]] = None
        self.active = False
        self._relay = relay

    def start(self) -> None:
        self._relay.current = self
        self.active = True
        if self.on_start is not None:
            self.on_start()

    def stop(self) -> None:
        if not self.active:
            return
        self.active = False
        if self.on_end is not None:
            self.on_end()

    def abort(self) -> None:
        self.active = False
        if self._relay.current is self:
            self._relay.current = None

    async def flush(self) -> None:
        # Browser results arrive through the relay as they happen
        return None

    def receive_results(self, results: Sequence[RecognitionAlternative]) -> None:
        if self.on_result is not None:
            self.on_result(list(results))

    def receive_error(self, code: str) -> None:
        if self.on_error is not None:
            self.on_error(code)

    def receive_end(self) -> None:
        # The browser stopped on its own; the adapter decides whether to restart
        self.active = False
        if self.on_end is not None:
            self.on_end()


Transcriber = Callable[[bytes, str], Awaitable[str]]


class WhisperRecognitionEngine:
    """Transcribes the uploaded answer audio with a server-side model.

    Interim results re-transcribe everything heard so far, at most once per
    ``interim_interval`` seconds. Stopping produces the final result.
    """

    def __init__(
        self,
        feed: AudioFeed,
        transcribe: Transcriber,
        *,
        mime_type: str = "audio/webm",
        interim_interval: float = 3.0,
    ) -> None:
        self.lang = "en-US"
        self.on_start: Optional[Callable[[], None]] = None
        self.on_result: Optional[Callable[[Sequence[RecognitionAlternative]], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_end: Optional[Callable[[], None]] = None
        self.mime_type = mime_type
        self.active = False
        self._feed = feed
        self._transcribe = transcribe
        self._interim_interval = interim_interval
        self._buffer: List[bytes] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._interim: Optional[asyncio.Task] = None
        self._final: Optional[asyncio.Task] = None
        self._last_interim: Optional[float] = None

    def start(self) -> None:
        if self.active:
            return
        self.active = True
        self._buffer = []
        self._unsubscribe = self._feed.subscribe(self._handle_chunk)
        if self.on_start is not None:
            self.on_start()

    def stop(self) -> None:
        if not self.active:
            return
        self._detach()
        audio = b"".join(self._buffer)
        self._final = asyncio.ensure_future(self._finish(audio))

    def abort(self) -> None:
        self._detach()
        for task in (self._interim, self._final):
            if task is not None and not task.done():
                task.cancel()

    async def flush(self) -> None:
        if self._final is not None and not self._final.done():
            # wait() neither cancels the final pass on timeout nor raises if abort() cancels it
            await asyncio.wait({self._final})

    def _detach(self) -> None:
        self.active = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_chunk(self, chunk: bytes) -> None:
        self._buffer.append(chunk)
        loop = asyncio.get_running_loop()
        busy = self._interim is not None and not self._interim.done()
        recent = self._last_interim is not None and loop.time() - self._last_interim < self._interim_interval
        if busy or recent:
            return
        self._last_interim = loop.time()
        self._interim = asyncio.ensure_future(self._transcribe_interim(b"".join(self._buffer)))

    async def _transcribe_interim(self, audio: bytes) -> None:
        try:
            text = await self._transcribe(audio, self.mime_type)
        except Exception as e:
            # The final pass on stop reports errors
            logger.debug("Interim transcription failed: %s", e)
            return
        if text and self.active and self.on_result is not None:
            self.on_result([RecognitionAlternative(text, is_final=False)])

    async def _finish(self, audio: bytes) -> None:
        if self._interim is not None and not self._interim.done():
            self._interim.cancel()
        try:
            text = await self._transcribe(audio, self.mime_type) if audio else ""
        except Exception as e:
            logger.warning("Final transcription failed: %s", e)
            if self.on_error is not None:
                self.on_error(NETWORK)
            text = None
        if text and self.on_result is not None:
            self.on_result([RecognitionAlternative(text, is_final=True)])
        elif text == "" and self.on_error is not None:
            self.on_error(NO_SPEECH)
        if self.on_end is not None:
            self.on_end()


def whisper_engine_factory(
    feed: AudioFeed,
    transcribe: Transcriber,
    *,
    available: bool,
    interim_interval: float = 3.0,
) -> Callable[[], WhisperRecognitionEngine]:
    def build() -> WhisperRecognitionEngine:
        if not available:
            raise SpeechUnsupportedError("Server speech recognition is not configured")
        return WhisperRecognitionEngine(feed, transcribe, interim_interval=interim_interval)

    return build


# --- synthesis ---


@dataclass
class SpeechClip:
    text: str
    media_type: str
    provider: str
    data: bytes = field(repr=False)
    clip_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    played: bool = False


Synthesizer = Callable[[str, Optional[Voice]], Awaitable[object]]


def estimate_duration(text: str, rate: float = 0.85) -> float:
    """Rough speaking time in seconds at roughly 150 words per minute, plus download slack."""
    words = len(text.split())
    return words / (2.5 * max(rate, 0.1)) + 3.0


class ProviderSynthesisEngine:
    """Speaks by rendering audio on the server for the client to play.

    ``on_start`` fires once the clip is available. ``on_end`` fires when the
    client acknowledges playback, or after the estimated speaking time capped
    at ``ack_timeout`` seconds. Silent clips end immediately.
    """

    def __init__(
        self,
        synthesize: Synthesizer,
        voices: Callable[[], List[Voice]],
        *,
        ack_timeout: float = 30.0,
    ) -> None:
        self.clip: Optional[SpeechClip] = None
        self._synthesize = synthesize
        self._voices = voices
        self._ack_timeout = ack_timeout
        self._task: Optional[asyncio.Task] = None
        self._played = asyncio.Event()
        self._clip_ready = asyncio.Event()

    def get_voices(self) -> List[Voice]:
        return self._voices()

    def speak(self, utterance: Utterance) -> None:
        self.cancel()
        self._played = asyncio.Event()
        self._clip_ready = asyncio.Event()
        self._task = asyncio.ensure_future(self._run(utterance, self._played, self._clip_ready))

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        self.clip = None

    def mark_played(self, clip_id: Optional[str] = None) -> bool:
        """Client finished playing the clip. Returns False for an unknown clip."""
        if self.clip is None or (clip_id and clip_id != self.clip.clip_id):
            return False
        self.clip.played = True
        self._played.set()
        return True

    async def wait_for_clip(self, timeout: float = 10.0) -> Optional[SpeechClip]:
        try:
            await asyncio.wait_for(self._clip_ready.wait(), timeout)
        except asyncio.TimeoutError:
            return None
        return self.clip

    async def drain(self) -> None:
        """Wait until the current utterance has ended or failed."""
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _run(self, utterance: Utterance, played: asyncio.Event, clip_ready: asyncio.Event) -> None:
        try:
            with Timer() as t:
                audio = await self._synthesize(utterance.text, utterance.voice)
            collector.record_histogram("speech_synthesis_ms", t.ms)
        except Exception as e:
            logger.warning("Speech synthesis failed: %s", e)
            clip_ready.set()
            if utterance.on_error is not None:
                utterance.on_error("synthesis-failed")
            return

        clip = SpeechClip(
            text=utterance.text,
            media_type=audio.media_type,
            provider=audio.provider,
            data=audio.data,
        )
        self.clip = clip
        clip_ready.set()
        if utterance.on_start is not None:
            utterance.on_start()

        if clip.data:
            timeout = min(self._ack_timeout, estimate_duration(utterance.text, utterance.rate))
            try:
                await asyncio.wait_for(played.wait(), timeout)
            except asyncio.TimeoutError:
                logger.debug("No playback acknowledgement; assuming the question was heard")
        if utterance.on_end is not None:
            utterance.on_end()
