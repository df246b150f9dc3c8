from __future__ import annotations

import io
import logging
import time

import httpx

from interview_coach.core.config import settings
from interview_coach.core.logging_config import performance_logger

logger = logging.getLogger(__name__)

WHISPER_URL = "https://api.openai.com/v1/audio/transcriptions"


def _upload_name(content_type: str) -> tuple[str, str]:
    """File name and content type Whisper accepts for a recorder mime type."""
    ct = (content_type or "audio/webm").lower()
    if "mp4" in ct:
        return "audio.mp4", "audio/mp4"
    if "mpeg" in ct or "mpga" in ct or "mp3" in ct:
        return "audio.mp3", "audio/mpeg"
    if "ogg" in ct or "oga" in ct:
        return "audio.ogg", "audio/ogg"
    if "wav" in ct:
        return "audio.wav", "audio/wav"
    if "flac" in ct:
        return "audio.flac", "audio/flac"
    return "audio.webm", "audio/webm"


async def transcribe_with_whisper(audio_bytes: bytes, content_type: str = "audio/webm", language: str = "en") -> str:
    """Send audio to the OpenAI Whisper API.

    Returns an empty string on failure so the caller can decide next steps.
    """
    if not settings.openai_api_key:
        logger.debug("Whisper transcription skipped: OPENAI_API_KEY not configured")
        return ""
    if not audio_bytes:
        return ""

    filename, send_ct = _upload_name(content_type)
    headers = {"Authorization": f"Bearer {settings.openai_api_key}"}
    form = {"model": "whisper-1", "language": language}
    files = {"file": (filename, io.BytesIO(audio_bytes), send_ct)}

    start = time.time()
    status_code = 0
    try:
        async with httpx.AsyncClient(timeout=60) as client:
            resp = await client.post(WHISPER_URL, data=form, files=files, headers=headers)
            status_code = resp.status_code
            resp.raise_for_status()
            data = resp.json()
    except Exception as e:
        logger.warning("Whisper transcription failed: %s: %s", type(e).__name__, e)
        return ""
    finally:
        performance_logger.log_external_api_call(
            "openai", "audio/transcriptions", round((time.time() - start) * 1000, 2), status_code
        )
    return (data.get("text") or "").strip()
