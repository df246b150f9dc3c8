from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Optional

import httpx
from anyio import to_thread
from gtts import gTTS

from interview_coach.core.config import settings
from interview_coach.core.logging_config import performance_logger
from interview_coach.services.session.platform import Voice

logger = logging.getLogger(__name__)

OPENAI_SPEECH_URL = "https://api.openai.com/v1/audio/speech"
GTTS_VOICE = Voice(name="Google US English", lang="en-US")


class SpeechSynthesisError(RuntimeError):
    pass


@dataclass
class SpeechAudio:
    data: bytes = field(repr=False)
    media_type: str
    provider: str


def available_voices() -> List[Voice]:
    """Voices the configured providers can speak with, best first."""
    provider = settings.tts_provider
    voices: List[Voice] = []
    if provider in ("auto", "openai") and settings.openai_api_key:
        voices.append(Voice(name=f"OpenAI {settings.openai_tts_voice}", lang="en-US"))
    if provider in ("auto", "gtts"):
        voices.append(GTTS_VOICE)
    return voices


async def _openai_speech(text: str, voice: str) -> SpeechAudio:
    headers = {"Authorization": f"Bearer {settings.openai_api_key}", "Content-Type": "application/json"}
    payload = {"model": "tts-1", "voice": voice, "input": text}
    start = time.time()
    status_code = 0
    try:
        async with httpx.AsyncClient(timeout=20.0) as client:
            resp = await client.post(OPENAI_SPEECH_URL, json=payload, headers=headers)
            status_code = resp.status_code
            resp.raise_for_status()
            return SpeechAudio(resp.content, "audio/mpeg", "openai")
    finally:
        performance_logger.log_external_api_call(
            "openai", "audio/speech", round((time.time() - start) * 1000, 2), status_code
        )


async def _gtts_speech(text: str, lang: str) -> SpeechAudio:
    buf = BytesIO()

    def _make_gtts():
        gTTS(text=text, lang=lang, tld="us", slow=False).write_to_fp(buf)

    await asyncio.wait_for(to_thread.run_sync(_make_gtts), timeout=8.0)
    return SpeechAudio(buf.getvalue(), "audio/mpeg", "gtts")


async def synthesize_speech(text: str, voice: Optional[Voice] = None) -> SpeechAudio:
    """Render text to audio with the configured provider chain.

    ``auto`` tries OpenAI (when a key is set), then gTTS, then silence. A
    forced provider raises SpeechSynthesisError instead of falling back.
    """
    provider = settings.tts_provider

    if provider == "silence":
        return SpeechAudio(b"", "audio/mpeg", "silence")

    if provider == "openai" or (provider == "auto" and settings.openai_api_key):
        openai_voice = settings.openai_tts_voice
        if voice is not None and voice.name.startswith("OpenAI "):
            openai_voice = voice.name.split(" ", 1)[1]
        try:
            return await _openai_speech(text, openai_voice)
        except Exception as e:
            if provider == "openai":
                raise SpeechSynthesisError(f"openai_tts_exception:{e}") from e
            logger.warning("OpenAI TTS failed: %s", e)

    if provider in ("gtts", "auto"):
        try:
            return await _gtts_speech(text, "en")
        except Exception as e:
            if provider == "gtts":
                raise SpeechSynthesisError(f"gtts_exception:{e}") from e
            logger.warning("gTTS failed: %s", e)

    # Nothing rendered; the client shows the question text instead
    return SpeechAudio(b"", "audio/mpeg", "silence")
