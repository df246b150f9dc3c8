"""In-memory stand-ins for the speech and media engines used by session tests."""
import asyncio
from typing import List, Optional

from interview_coach.services.session.errors import PermissionDeniedError, SpeechUnsupportedError
from interview_coach.services.session.platform import RecognitionAlternative, Utterance, Voice


class FakeRecognitionEngine:
    def __init__(self, fail_start: bool = False) -> None:
        self.lang = ""
        self.on_start = None
        self.on_result = None
        self.on_error = None
        self.on_end = None
        self.running = False
        self.starts = 0
        self.stops = 0
        self.aborts = 0
        self.flushes = 0
        self.fail_start = fail_start

    def start(self) -> None:
        if self.fail_start:
            raise RuntimeError("engine busy")
        self.starts += 1
        self.running = True
        if self.on_start:
            self.on_start()

    def stop(self) -> None:
        self.stops += 1
        was_running, self.running = self.running, False
        if was_running and self.on_end:
            self.on_end()

    def abort(self) -> None:
        self.aborts += 1
        self.running = False

    async def flush(self) -> None:
        self.flushes += 1

    # test helpers

    def emit_result(self, *results) -> None:
        self.on_result([RecognitionAlternative(text, final) for text, final in results])

    def emit_error(self, code: str) -> None:
        self.on_error(code)

    def emit_end(self) -> None:
        self.running = False
        self.on_end()


class FakeRecognitionFactory:
    def __init__(self, supported: bool = True, fail_start: bool = False) -> None:
        self.engines: List[FakeRecognitionEngine] = []
        self.supported = supported
        self.fail_start = fail_start

    def __call__(self) -> FakeRecognitionEngine:
        if not self.supported:
            raise SpeechUnsupportedError("Speech recognition is not supported in this browser")
        engine = FakeRecognitionEngine(fail_start=self.fail_start)
        self.engines.append(engine)
        return engine

    @property
    def latest(self) -> FakeRecognitionEngine:
        return self.engines[-1]


class FakeSynthesisEngine:
    """Speaks instantly on the next loop iteration unless ``auto`` is off."""

    def __init__(self, voices: Optional[List[Voice]] = None, auto: bool = True) -> None:
        self.voices = list(voices or [])
        self.auto = auto
        self.spoken: List[Utterance] = []
        self.current: Optional[Utterance] = None
        self.cancels = 0
        self.voice_requests = 0

    def get_voices(self) -> List[Voice]:
        self.voice_requests += 1
        return list(self.voices)

    def speak(self, utterance: Utterance) -> None:
        self.spoken.append(utterance)
        self.current = utterance
        if self.auto:
            asyncio.get_running_loop().call_soon(self.finish)

    def cancel(self) -> None:
        self.cancels += 1
        self.current = None

    def finish(self) -> None:
        utterance, self.current = self.current, None
        if utterance is None:
            return
        utterance.on_start()
        utterance.on_end()

    def fail(self, code: str) -> None:
        utterance, self.current = self.current, None
        utterance.on_error(code)


class FakeTrack:
    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeStream:
    def __init__(self) -> None:
        self.tracks = [FakeTrack("audio")]

    def get_tracks(self) -> List[FakeTrack]:
        return list(self.tracks)


class FakeRecorder:
    def __init__(self, mime_type: str, fail_start: bool = False) -> None:
        self.mime_type = mime_type
        self.state = "inactive"
        self.on_data = None
        self.timeslice_ms = None
        self.fail_start = fail_start

    def start(self, timeslice_ms: int) -> None:
        if self.fail_start:
            raise RuntimeError("recorder unavailable")
        self.timeslice_ms = timeslice_ms
        self.state = "recording"

    def stop(self) -> None:
        self.state = "inactive"
        self.on_data(b"|final")

    def push(self, chunk: bytes) -> None:
        self.on_data(chunk)


class FakeMediaDevices:
    def __init__(self, supported_types=("audio/webm", "audio/ogg"), deny: bool = False,
                 fail_recorder: bool = False) -> None:
        self.supported_types = set(supported_types)
        self.deny = deny
        self.fail_recorder = fail_recorder
        self.streams: List[FakeStream] = []
        self.recorders: List[FakeRecorder] = []
        self.constraints: List[dict] = []

    async def get_user_media(self, constraints: dict) -> FakeStream:
        self.constraints.append(constraints)
        if self.deny:
            raise PermissionDeniedError("Permission denied")
        stream = FakeStream()
        self.streams.append(stream)
        return stream

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in self.supported_types

    def create_recorder(self, stream: FakeStream, mime_type: str) -> FakeRecorder:
        recorder = FakeRecorder(mime_type, fail_start=self.fail_recorder)
        self.recorders.append(recorder)
        return recorder

    @property
    def latest_recorder(self) -> FakeRecorder:
        return self.recorders[-1]


async def grant() -> bool:
    return True


async def deny() -> bool:
    return False
