from __future__ import annotations

import json
import logging
import random
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from interview_coach.core import gemini
from interview_coach.core.logging_config import log_performance
from interview_coach.core.metrics import Timer, collector
from interview_coach.services.question_bank import LEVEL_LABELS, experience_level, generate_fallback_questions

logger = logging.getLogger(__name__)

_ARRAY_OF_OBJECTS_RE = re.compile(r"\[\s*\{.*?\}\s*\]", re.DOTALL)


class QuestionParseError(ValueError):
    """Raised when a generator response holds no usable question list."""


@dataclass
class GeneratedInterview:
    raw: str
    source: str  # "gemini" or "fallback"
    pairs: List[dict] = field(default_factory=list)
    invalid: int = 0


def _first_list(value: Any) -> Optional[list]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for item in value.values():
            if isinstance(item, list):
                return item
    return None


def extract_question_list(raw: str) -> list:
    """Pull the JSON array of question objects out of a model response.

    Tries, in order: parsing the whole text, an array-of-objects pattern and
    the slice between the first ``[`` and the last ``]``.
    """
    text = (raw or "").strip()
    if not text:
        raise QuestionParseError("Empty generator response")

    try:
        found = _first_list(json.loads(text))
        if found is not None:
            return found
    except json.JSONDecodeError:
        pass

    for match in _ARRAY_OF_OBJECTS_RE.findall(text):
        try:
            found = json.loads(match)
        except json.JSONDecodeError:
            continue
        if isinstance(found, list):
            return found

    start, end = text.find("["), text.rfind("]")
    if start != -1 and end > start:
        try:
            found = json.loads(text[start:end + 1])
            if isinstance(found, list):
                return found
        except json.JSONDecodeError:
            pass

    raise QuestionParseError("AI response did not contain any valid interview questions.")


def normalize_pair(item: Any) -> Optional[dict]:
    """Return {question, answer} for an item using either key casing, else None."""
    if not isinstance(item, dict):
        return None
    question = item.get("Question", item.get("question"))
    answer = item.get("Answer", item.get("answer"))
    if not isinstance(question, str) or not isinstance(answer, str):
        return None
    question, answer = question.strip(), answer.strip()
    if not question or not answer:
        return None
    return {"question": question, "answer": answer}


def parse_question_pairs(raw: str) -> tuple[List[dict], int]:
    """Parse a response into valid pairs plus the count of rejected items."""
    items = extract_question_list(raw)
    pairs: List[dict] = []
    invalid = 0
    for item in items:
        pair = normalize_pair(item)
        if pair is None:
            invalid += 1
            continue
        pairs.append(pair)
    if not pairs:
        raise QuestionParseError("AI response did not contain any valid interview questions.")
    return pairs, invalid


@log_performance("generate_interview_questions")
async def generate_interview_questions(
    job_position: str,
    job_desc: str,
    years: int,
    count: int,
    seed: Optional[int] = None,
) -> GeneratedInterview:
    """Generate question/answer pairs, falling back to templates when the model fails."""
    if seed is None:
        seed = random.randint(0, 9999)
    level = experience_level(years)
    prompt = gemini.build_interview_prompt(
        job_position,
        job_desc,
        years,
        LEVEL_LABELS[level.name],
        count,
        seed,
        datetime.now(timezone.utc).isoformat(),
    )

    raw = ""
    source = "gemini"
    with Timer() as t:
        try:
            raw = await gemini.generate_interview_text(prompt)
        except gemini.GeminiUnavailableError:
            logger.info("No Gemini API key configured, using fallback question generator")
        except Exception as e:
            logger.warning("Gemini question generation failed, using fallback: %s", e)
    collector.record_histogram("question_generation_ms", t.ms)

    if not raw:
        source = "fallback"
        collector.increment_counter("question_generation_fallback")
        raw = json.dumps([
            {"Question": p["question"], "Answer": p["answer"]}
            for p in generate_fallback_questions(job_position, job_desc, years, seed=seed)
        ])

    pairs, invalid = parse_question_pairs(raw)
    logger.info(
        "Generated %d question pairs (%d invalid) for %r via %s", len(pairs), invalid, job_position, source
    )
    return GeneratedInterview(raw=raw, source=source, pairs=pairs, invalid=invalid)
