from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from interview_coach.services.session.events import EventEmitter
from interview_coach.services.session.platform import SynthesisEngine, Utterance, Voice

logger = logging.getLogger(__name__)

# Best voices first: vendor neural voices, then any US English, then any English
VOICE_PREFERENCES: List[Callable[[Voice], bool]] = [
    lambda v: "Google" in v.name and "US English Female" in v.name,
    lambda v: "Google US English" in v.name,
    lambda v: "Microsoft" in v.name and "Zira" in v.name,
    lambda v: "Microsoft" in v.name and "English" in v.name,
    lambda v: "Samantha" in v.name,
    lambda v: "en-US" in v.lang and "Female" in v.name,
    lambda v: "en-US" in v.lang,
    lambda v: "en" in v.lang,
]


def select_voice(voices: Sequence[Voice]) -> Optional[Voice]:
    """Pick the most preferred voice, or None to use the engine default."""
    for matches in VOICE_PREFERENCES:
        for voice in voices:
            if matches(voice):
                return voice
    return None


class SpeechOutputAdapter:
    """Text-to-speech for interview questions.

    Events: ``start``, ``end``, ``error`` (code) and ``ready``. ``ready`` follows
    every ``end`` or ``error`` and is emitted straight away when no engine is
    available, so listeners can always move on to listening. Only one
    utterance is active; callbacks of a replaced utterance are ignored.
    """

    def __init__(
        self,
        engine: Optional[SynthesisEngine],
        *,
        lang: str = "en-US",
        rate: float = 0.85,
        pitch: float = 1.0,
        volume: float = 1.0,
        voice_load_timeout: float = 1.0,
    ) -> None:
        self.events = EventEmitter()
        self._engine = engine
        self._lang = lang
        self._rate = rate
        self._pitch = pitch
        self._volume = volume
        self._voice_load_timeout = voice_load_timeout
        self._current: Optional[object] = None

    @property
    def supported(self) -> bool:
        return self._engine is not None

    @property
    def speaking(self) -> bool:
        return self._current is not None

    def on(self, event: str, listener):
        return self.events.on(event, listener)

    async def speak(self, text: str) -> None:
        if self._engine is None:
            logger.info("Speech synthesis not available; skipping to answer input")
            self.events.emit("ready")
            return

        self.cancel()
        token = object()
        self._current = token

        try:
            voice = await self._pick_voice()
        except Exception as e:
            logger.warning("Loading synthesis voices failed: %s", e)
            self._handle_error(token, str(e) or type(e).__name__)
            return
        if self._current is not token:
            # Replaced or cancelled while waiting for voices
            return

        utterance = Utterance(
            text=text,
            voice=voice,
            lang=voice.lang if voice else self._lang,
            rate=self._rate,
            pitch=self._pitch,
            volume=self._volume,
            on_start=lambda: self._handle_start(token),
            on_end=lambda: self._handle_end(token),
            on_error=lambda code: self._handle_error(token, code),
        )
        try:
            self._engine.speak(utterance)
        except Exception as e:
            logger.warning("Speech synthesis failed to start: %s", e)
            self._handle_error(token, str(e) or type(e).__name__)

    def cancel(self) -> None:
        """Drop the active utterance without emitting ready."""
        token, self._current = self._current, None
        if token is None or self._engine is None:
            return
        try:
            self._engine.cancel()
        except Exception as e:
            logger.warning("Cancelling speech synthesis failed: %s", e)

    async def _pick_voice(self) -> Optional[Voice]:
        voices = self._engine.get_voices()
        if not voices and self._voice_load_timeout > 0:
            await asyncio.sleep(self._voice_load_timeout)
            voices = self._engine.get_voices()
        voice = select_voice(voices)
        if voice is None:
            logger.debug("No preferred voice available, using engine default")
        return voice

    def _handle_start(self, token: object) -> None:
        if token is self._current:
            self.events.emit("start")

    def _handle_end(self, token: object) -> None:
        if token is not self._current:
            return
        self._current = None
        self.events.emit("end")
        self.events.emit("ready")

    def _handle_error(self, token: object, code: str) -> None:
        if token is not self._current:
            return
        self._current = None
        logger.warning("Speech synthesis error: %s", code)
        self.events.emit("error", code)
        self.events.emit("ready")
