from __future__ import annotations

import logging
from typing import Dict, List, Optional

from interview_coach.services.session.events import EventEmitter
from interview_coach.services.session.platform import AudioArtifact, MediaDevices, MediaRecorder, MediaStream

logger = logging.getLogger(__name__)

AUDIO_CONSTRAINTS = {
    "audio": {
        "echoCancellation": True,
        "noiseSuppression": True,
        "autoGainControl": True,
    }
}
PREFERRED_MIME_TYPES = ("audio/webm", "audio/ogg")


class AudioCaptureAdapter:
    """Records the answer to each question into one audio artifact.

    Events: ``start`` (question index), ``stop`` (artifact or None) and
    ``error`` (message). The device stream is released on every stop.
    """

    def __init__(self, devices: Optional[MediaDevices], *, timeslice_ms: int = 1000) -> None:
        self.events = EventEmitter()
        self.artifacts: Dict[int, AudioArtifact] = {}
        self._devices = devices
        self._timeslice_ms = timeslice_ms
        self._stream: Optional[MediaStream] = None
        self._recorder: Optional[MediaRecorder] = None
        self._chunks: List[bytes] = []
        self._question_index: Optional[int] = None
        self._starting = False

    @property
    def supported(self) -> bool:
        return self._devices is not None

    @property
    def recording(self) -> bool:
        return self._recorder is not None or self._starting

    @property
    def question_index(self) -> Optional[int]:
        return self._question_index

    def on(self, event: str, listener):
        return self.events.on(event, listener)

    def _pick_mime_type(self) -> str:
        for mime_type in PREFERRED_MIME_TYPES:
            if self._devices.is_type_supported(mime_type):
                return mime_type
        return ""

    async def start(self, question_index: int) -> bool:
        """Start recording the answer to a question. Returns False if nothing was started."""
        if self._devices is None:
            self.events.emit("error", "Audio recording is not supported")
            return False
        if self.recording:
            logger.debug("Audio capture already running; start ignored")
            return False

        self._starting = True
        try:
            stream = await self._devices.get_user_media(AUDIO_CONSTRAINTS)
        except Exception as e:
            self._starting = False
            logger.warning("Microphone stream unavailable: %s", e)
            self.events.emit("error", f"Could not access the microphone: {e}")
            return False

        try:
            mime_type = self._pick_mime_type()
            recorder = self._devices.create_recorder(stream, mime_type)
            recorder.on_data = self._handle_data
            recorder.start(self._timeslice_ms)
        except Exception as e:
            self._starting = False
            self._release(stream)
            logger.warning("Audio recorder failed to start: %s", e)
            self.events.emit("error", f"Could not start recording: {e}")
            return False

        self._starting = False
        self._stream = stream
        self._recorder = recorder
        self._chunks = []
        self._question_index = question_index
        self.events.emit("start", question_index)
        return True

    def stop(self) -> Optional[AudioArtifact]:
        """Finalize the recording for the current question and release the device."""
        recorder, stream = self._recorder, self._stream
        if recorder is None and stream is None:
            return None

        artifact: Optional[AudioArtifact] = None
        try:
            if recorder is not None and recorder.state != "inactive":
                recorder.stop()
            if self._chunks and self._question_index is not None:
                artifact = AudioArtifact(
                    question_index=self._question_index,
                    mime_type=(recorder.mime_type if recorder is not None else "") or "audio/webm",
                    data=b"".join(self._chunks),
                )
                # Re-recording a question replaces its earlier artifact
                self.artifacts[self._question_index] = artifact
            else:
                logger.warning("No audio captured for question %s", self._question_index)
        except Exception as e:
            logger.warning("Stopping audio recorder failed: %s", e)
            self.events.emit("error", f"Recording could not be finalized: {e}")
        finally:
            if stream is not None:
                self._release(stream)
            self._recorder = None
            self._stream = None
            self._chunks = []

        self.events.emit("stop", artifact)
        return artifact

    def _handle_data(self, chunk: bytes) -> None:
        if chunk:
            self._chunks.append(chunk)

    def _release(self, stream: MediaStream) -> None:
        for track in stream.get_tracks():
            try:
                track.stop()
            except Exception as e:
                logger.warning("Stopping %s track failed: %s", getattr(track, "kind", "media"), e)
