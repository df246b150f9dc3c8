"""Ports for the speech and media capabilities a session depends on.

The shapes mirror the callback style of the underlying platforms: an engine
exposes ``on_*`` attributes that the owning adapter assigns, plus imperative
start/stop methods. Adapters translate these callbacks into their own events.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence


# Recognition error codes
NO_SPEECH = "no-speech"
ABORTED = "aborted"
NETWORK = "network"
NOT_ALLOWED = "not-allowed"
SERVICE_NOT_ALLOWED = "service-not-allowed"

RECOVERABLE_RECOGNITION_ERRORS = frozenset({NO_SPEECH, ABORTED, NETWORK})
FATAL_RECOGNITION_ERRORS = frozenset({NOT_ALLOWED, SERVICE_NOT_ALLOWED})


@dataclass
class RecognitionAlternative:
    transcript: str
    is_final: bool = False


class RecognitionEngine(Protocol):
    """One live recognition instance (continuous, interim results, single alternative)."""

    lang: str
    on_start: Optional[Callable[[], None]]
    on_result: Optional[Callable[[Sequence[RecognitionAlternative]], None]]
    on_error: Optional[Callable[[str], None]]
    on_end: Optional[Callable[[], None]]

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def abort(self) -> None: ...

    async def flush(self) -> None:
        """Wait for results still being produced after stop()."""


# Builds a fresh engine; raises SpeechUnsupportedError when none is available
RecognitionEngineFactory = Callable[[], RecognitionEngine]


@dataclass(frozen=True)
class Voice:
    name: str
    lang: str


@dataclass
class Utterance:
    text: str
    voice: Optional[Voice] = None
    lang: str = "en-US"
    rate: float = 0.85
    pitch: float = 1.0
    volume: float = 1.0
    on_start: Optional[Callable[[], None]] = None
    on_end: Optional[Callable[[], None]] = None
    on_error: Optional[Callable[[str], None]] = None


class SynthesisEngine(Protocol):
    def get_voices(self) -> List[Voice]: ...

    def speak(self, utterance: Utterance) -> None: ...

    def cancel(self) -> None: ...


class MediaTrack(Protocol):
    kind: str

    def stop(self) -> None: ...


class MediaStream(Protocol):
    def get_tracks(self) -> List[MediaTrack]: ...


class MediaRecorder(Protocol):
    mime_type: str
    state: str  # "inactive" | "recording"
    on_data: Optional[Callable[[bytes], None]]

    def start(self, timeslice_ms: int) -> None: ...

    def stop(self) -> None:
        """Stop recording; remaining data is delivered through on_data before returning."""


class MediaDevices(Protocol):
    def get_user_media(self, constraints: dict) -> Awaitable[MediaStream]:
        """Resolve to a stream or raise PermissionDeniedError."""

    def is_type_supported(self, mime_type: str) -> bool: ...

    def create_recorder(self, stream: MediaStream, mime_type: str) -> MediaRecorder: ...


# Resolves to True when camera and microphone were granted
PermissionGate = Callable[[], Awaitable[bool]]


@dataclass
class AudioArtifact:
    question_index: int
    mime_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)
