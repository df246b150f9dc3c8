from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from interview_coach.core.metrics import collector
from interview_coach.services.session.events import EventEmitter
from interview_coach.services.session.platform import (
    FATAL_RECOGNITION_ERRORS,
    NO_SPEECH,
    RECOVERABLE_RECOGNITION_ERRORS,
    RecognitionAlternative,
    RecognitionEngine,
    RecognitionEngineFactory,
)

logger = logging.getLogger(__name__)


class SpeechInputAdapter:
    """Speech-to-text for a single question.

    Events:
        ``start``                   the engine started listening
        ``transcript`` (text, final) full text of the current utterance; each
                                    event replaces the previous text
        ``error`` (code)            unexpected, non-fatal engine error
        ``failure`` (reason)        listening gave up; answers must be typed
        ``end``                     the engine stopped

    The engine is created lazily on first start. While listening, an engine
    that ends or hits a recoverable error is restarted after ``restart_delay``
    seconds; more than ``max_restarts`` consecutive restarts without a result
    is reported as a failure.
    """

    def __init__(
        self,
        engine_factory: RecognitionEngineFactory,
        *,
        lang: str = "en-US",
        restart_delay: float = 1.0,
        max_restarts: int = 5,
    ) -> None:
        self.events = EventEmitter()
        self.transcript = ""
        self._factory = engine_factory
        self._lang = lang
        self._restart_delay = restart_delay
        self._max_restarts = max_restarts
        self._engine: Optional[RecognitionEngine] = None
        self._listening = False
        self._disposed = False
        self._restart_handle: Optional[asyncio.TimerHandle] = None
        self._consecutive_restarts = 0

    @property
    def listening(self) -> bool:
        return self._listening

    @property
    def disposed(self) -> bool:
        return self._disposed

    def on(self, event: str, listener):
        return self.events.on(event, listener)

    # --- lifecycle ---

    def _ensure_engine(self) -> RecognitionEngine:
        if self._engine is None:
            engine = self._factory()
            engine.lang = self._lang
            engine.on_start = self._handle_start
            engine.on_result = self._handle_result
            engine.on_error = self._handle_error
            engine.on_end = self._handle_end
            self._engine = engine
        return self._engine

    def start(self) -> bool:
        """Begin listening. Returns False when nothing was started.

        Raises SpeechUnsupportedError when no engine can be created.
        """
        if self._disposed:
            logger.warning("start() called on a disposed speech input adapter")
            return False
        if self._listening:
            logger.warning("Speech recognition already active; start ignored")
            return False

        engine = self._ensure_engine()
        self._listening = True
        self._consecutive_restarts = 0
        try:
            engine.start()
        except Exception as e:
            self._fail(f"Speech recognition could not start: {e}")
            return False
        return True

    def stop(self) -> None:
        """Stop listening. Safe to call in any state."""
        self._listening = False
        self._cancel_restart()
        if self._engine is None:
            return
        try:
            self._engine.stop()
        except Exception as e:
            logger.warning("Stopping speech recognition failed: %s", e)

    async def drain(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for the engine's last results after stop().

        Returns False when the engine was still busy at the deadline.
        """
        if self._engine is None:
            return True
        try:
            await asyncio.wait_for(self._engine.flush(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Speech recognition did not finish within %.1fs", timeout)
            return False
        return True

    def dispose(self) -> None:
        """Stop, detach from the engine and drop every subscriber."""
        self.stop()
        engine, self._engine = self._engine, None
        if engine is not None:
            engine.on_start = engine.on_result = engine.on_error = engine.on_end = None
            try:
                engine.abort()
            except Exception as e:
                logger.warning("Aborting speech recognition failed: %s", e)
        self.events.remove_all_listeners()
        self._disposed = True

    def reset(self) -> "SpeechInputAdapter":
        """Tear this adapter down and return a fresh one with the same settings."""
        self.dispose()
        return SpeechInputAdapter(
            self._factory,
            lang=self._lang,
            restart_delay=self._restart_delay,
            max_restarts=self._max_restarts,
        )

    # --- engine callbacks ---

    def _handle_start(self) -> None:
        self.events.emit("start")

    def _handle_result(self, results: Sequence[RecognitionAlternative]) -> None:
        final = "".join(f"{r.transcript} " for r in results if r.is_final)
        interim = "".join(r.transcript for r in results if not r.is_final)
        self.transcript = (final or interim).strip()
        self._consecutive_restarts = 0
        self.events.emit("transcript", self.transcript, bool(final))

    def _handle_error(self, code: str) -> None:
        if code in FATAL_RECOGNITION_ERRORS:
            self._fail(f"Microphone access for speech recognition was denied ({code})")
            return
        if code in RECOVERABLE_RECOGNITION_ERRORS:
            logger.debug("Recoverable recognition error: %s", code)
            # no-speech is followed by an end event, which restarts
            if code != NO_SPEECH:
                self._schedule_restart()
            return
        logger.warning("Speech recognition error: %s", code)
        self.events.emit("error", code)

    def _handle_end(self) -> None:
        self.events.emit("end")
        if self._listening:
            self._schedule_restart()

    # --- restarts ---

    def _schedule_restart(self) -> None:
        if not self._listening or self._restart_handle is not None:
            return
        if self._consecutive_restarts >= self._max_restarts:
            self._fail("Speech recognition keeps stopping; please type your answer")
            return
        self._consecutive_restarts += 1
        loop = asyncio.get_running_loop()
        self._restart_handle = loop.call_later(self._restart_delay, self._restart)

    def _restart(self) -> None:
        self._restart_handle = None
        if not self._listening or self._engine is None:
            return
        collector.increment_counter("recognition_restarts")
        try:
            self._engine.start()
        except Exception as e:
            logger.warning("Restarting speech recognition failed: %s", e)
            self._schedule_restart()

    def _cancel_restart(self) -> None:
        if self._restart_handle is not None:
            self._restart_handle.cancel()
            self._restart_handle = None

    def _fail(self, reason: str) -> None:
        self._listening = False
        self._cancel_restart()
        if self._engine is not None:
            try:
                self._engine.abort()
            except Exception as e:
                logger.warning("Aborting speech recognition failed: %s", e)
        logger.warning("Speech input failed: %s", reason)
        self.events.emit("failure", reason)
