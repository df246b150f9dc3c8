import logging
import time

from anyio import to_thread
from google import genai
from google.genai import types

from interview_coach.core.config import settings
from interview_coach.core.logging_config import performance_logger

logger = logging.getLogger(__name__)

INTERVIEWER_PERSONA = (
    "You are an experienced technical interviewer preparing a mock interview. "
    "You write precise, realistic questions for the given role and a concise model answer for each. "
    "Questions must match the candidate's experience level in complexity and depth, "
    "vary in type (theoretical, practical, problem-solving, design) and avoid generic, overused questions."
)

# Mock interview content is benign; permissive thresholds avoid empty responses
_SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold="BLOCK_NONE")
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


class GeminiUnavailableError(RuntimeError):
    """Raised when no API key is configured."""


def build_interview_prompt(
    job_position: str,
    job_desc: str,
    years: int,
    level_label: str,
    count: int,
    seed: int,
    timestamp: str,
) -> str:
    return (
        f"{INTERVIEWER_PERSONA}\n\n"
        f"Job position: {job_position}, Job Description: {job_desc}, Years of Experience: {years}, "
        f"Random Seed: {seed}, Current Time: {timestamp}\n\n"
        f"Generate {count} interview questions with answers for a {job_position} position with "
        f"{years} years of experience working with: {job_desc}.\n\n"
        "GUIDELINES:\n"
        f"1. The questions must be appropriate for {level_label} engineers\n"
        f"2. Use the randomness factors seed={seed}, time={timestamp} to produce a fresh set\n"
        "3. Include scenario-based questions reflecting real challenges at this level\n"
        f"4. For {years}+ years of experience include system design and architecture questions where fitting\n"
        "5. Include questions about best practices, optimizations and edge cases\n\n"
        "Format your response as a JSON array of objects with \"Question\" and \"Answer\" fields and nothing else."
    )


def _sync_generate(prompt: str) -> str:
    """Blocking Gemini request executed in a thread."""
    client = genai.Client(api_key=settings.gemini_api_key)
    response = client.models.generate_content(
        model=settings.gemini_model,
        contents=prompt,
        config=types.GenerateContentConfig(
            response_mime_type="text/plain",
            safety_settings=_SAFETY_SETTINGS,
        ),
    )
    return (response.text or "").strip()


async def generate_interview_text(prompt: str) -> str:
    """Ask Gemini for question/answer pairs and return the raw text.

    Raises GeminiUnavailableError when no API key is configured; API errors
    propagate to the caller, which owns the fallback.
    """
    if not settings.gemini_api_key:
        raise GeminiUnavailableError("GEMINI_API_KEY not configured")

    start = time.time()
    success = False
    try:
        text = await to_thread.run_sync(_sync_generate, prompt)
        success = bool(text)
        return text
    finally:
        performance_logger.log_ai_processing(
            "gemini", settings.gemini_model, round((time.time() - start) * 1000, 2), success
        )
