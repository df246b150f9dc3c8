from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from interview_coach.services.question_templates import (
    BEHAVIORAL_TEMPLATES,
    MINIMAL_TEMPLATES,
    ROLE_TEMPLATES,
    TECHNICAL_TEMPLATES,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExperienceLevel:
    name: str
    years: str
    description: str
    question_prefix: str
    complexity: str
    focus: str


BEGINNER = ExperienceLevel(
    "beginner", "0-2", "beginner level", "For a junior developer, ", "basic", "fundamentals"
)
INTERMEDIATE = ExperienceLevel(
    "intermediate", "3-5", "intermediate level", "As a mid-level developer, ", "moderate",
    "implementation and best practices",
)
ADVANCED = ExperienceLevel(
    "advanced", "6-10", "advanced level", "As a senior developer, ", "complex",
    "architecture and optimization",
)
EXPERT = ExperienceLevel(
    "expert", "10+", "expert level", "As a technical lead or architect, ", "expert",
    "system design and technical leadership",
)

# Labels used in prompts and in the question listing endpoint
LEVEL_LABELS = {
    "beginner": "entry-level (0-2 years)",
    "intermediate": "mid-level (3-5 years)",
    "advanced": "senior-level (6-10 years)",
    "expert": "expert/lead level (10+ years)",
}

_LEVEL_MARKERS = ("junior developer", "mid-level developer", "senior developer", "technical lead")
_QUESTION_OPENERS = ("What", "How", "Why", "Describe", "Explain")

_FRONTEND_TECH = ("react", "vue", "angular", "javascript", "typescript")
_SERVER_TECH = ("node", "express", "django", "spring")


def experience_level(years: int) -> ExperienceLevel:
    if years < 3:
        return BEGINNER
    if years < 6:
        return INTERMEDIATE
    if years < 11:
        return ADVANCED
    return EXPERT


def _any_in(text: str, needles) -> bool:
    return any(n in text for n in needles)


def determine_role_category(job_position: str, job_desc: str) -> str:
    """Map a position/description pair onto one of the template categories."""
    position = (job_position or "").lower()
    desc = (job_desc or "").lower()

    if (
        _any_in(position, ("frontend", "front-end", "ui developer"))
        or (_any_in(desc, _FRONTEND_TECH) and not _any_in(desc, _SERVER_TECH))
    ):
        return "frontend"

    if (
        _any_in(position, ("backend", "back-end", "server"))
        or _any_in(desc, _SERVER_TECH + ("database", "api", "microservice"))
    ):
        return "backend"

    if (
        _any_in(position, ("fullstack", "full stack", "full-stack"))
        or (_any_in(desc, _FRONTEND_TECH[:4]) and _any_in(desc, _SERVER_TECH))
    ):
        return "fullstack"

    if (
        _any_in(position, ("devops", "sre", "site reliability", "cloud"))
        or _any_in(desc, ("kubernetes", "docker", "aws", "azure", "gcp", "ci/cd", "terraform"))
    ):
        return "devops"

    if (
        _any_in(position, ("data", "machine learning", "ai", "ml"))
        or _any_in(desc, ("python", "tensorflow", "pytorch", "data science", "statistics", "analytics"))
    ):
        return "datascience"

    if (
        _any_in(position, ("mobile", "ios", "android", "app developer"))
        or _any_in(desc, ("swift", "kotlin", "flutter", "react native", "ios", "android"))
    ):
        return "mobile"

    return "fullstack"


def seeded_random(seed: int) -> Callable[[], float]:
    """Linear congruential generator returning floats in [0, 1)."""
    state = int(seed)

    def _next() -> float:
        nonlocal state
        state = (state * 9301 + 49297) % 233280
        return state / 233280

    return _next


def _with_prefix(question: str, level: ExperienceLevel) -> str:
    if level.question_prefix in question:
        return question
    return f"{level.question_prefix}{question[:1].lower()}{question[1:]}"


def _role_questions(category: str, level: ExperienceLevel, years: int, random: Callable[[], float]) -> List[dict]:
    templates = ROLE_TEMPLATES.get(category, ())
    questions: List[dict] = []
    for _ in range(min(3, len(templates))):
        template = templates[int(random() * len(templates))]
        # Same template drawn twice
        if any(template.question[:15] in q["question"] for q in questions):
            continue

        question, answer = template.question, template.answer
        if level in (ADVANCED, EXPERT):
            question = question.replace("Can you explain", "Explain in detail", 1)
            question = question.replace("How do you", "What advanced strategies do you use to", 1)
            question = question.replace("Explain", "Explain with specific examples", 1)
            answer = answer.replace(
                "I use", f"At my {level.description} with {years} years of experience, I use", 1
            )
        if level is BEGINNER:
            question = question.replace("in large-scale", "in small to medium-sized", 1)
            question = question.replace("advanced", "basic", 1)
            question = question.replace("complex", "straightforward", 1)
            answer = answer.replace(
                "I implement", f"As someone with {years} years of experience, I focus on implementing", 1
            )

        questions.append({"question": _with_prefix(question, level), "answer": answer})
    return questions


def _technical_question(index: int, stack: str, level: ExperienceLevel, years: int) -> dict:
    template = TECHNICAL_TEMPLATES[index % len(TECHNICAL_TEMPLATES)]
    question = _with_prefix(template.question.replace("[STACK]", stack, 1), level)
    question = question.replace("handle", f"handle {level.complexity}", 1)
    answer = (
        template.answer
        .replace("[STACK]", stack)
        .replace("[EXP]", str(years))
        .replace("[TYPE]", level.complexity)
        .replace("[FEATURE]", level.focus)
        .replace("[COMPONENT]", f"{level.complexity} component-based")
    )
    return {"question": question, "answer": answer}


def _behavioral_question(level: ExperienceLevel) -> dict:
    template = BEHAVIORAL_TEMPLATES[0]
    question = template.question
    if level in (ADVANCED, EXPERT):
        question = question.replace(
            "Describe a challenging situation",
            "Describe a complex technical challenge or leadership situation",
            1,
        )
    return {"question": question, "answer": template.answer}


def generate_fallback_questions(
    job_position: str,
    job_desc: str,
    years: int,
    seed: Optional[int] = None,
) -> List[dict]:
    """Build a role and experience appropriate question set from templates.

    The same inputs and seed always yield the same questions. Role templates
    come first, technical templates pad the list to four and a behavioural
    question closes it.
    """
    if seed is None:
        seed = int(time.time() * 1000) % 10000
    try:
        random = seeded_random(seed)
        level = experience_level(years)
        category = determine_role_category(job_position or "Software Developer", job_desc or "")

        questions = _role_questions(category, level, years, random)

        technologies = [t.strip() for t in (job_desc or "").split(",") if t.strip()]
        stack = technologies[0] if technologies else "programming"
        while len(questions) < 4:
            questions.append(_technical_question(len(questions), stack, level, years))

        questions.append(_behavioral_question(level))
        logger.info(
            "Generated %d fallback questions (category=%s, level=%s, seed=%s)",
            len(questions), category, level.name, seed,
        )
        return questions
    except Exception:
        logger.exception("Fallback question generator failed; using minimal question set")
        return [{"question": t.question, "answer": t.answer} for t in MINIMAL_TEMPLATES]


def adjust_question_for_experience(question: str, years: int) -> str:
    """Reword a stored question for the interview's experience level.

    Questions that already address a level are returned unchanged.
    """
    text = question or ""
    if any(marker in text for marker in _LEVEL_MARKERS):
        return text

    level = experience_level(years)
    if level is BEGINNER:
        replacements = (("advanced", "basic"), ("complex", "straightforward"), ("in-depth", "fundamental"))
    elif level is INTERMEDIATE:
        replacements = ()
    elif level is ADVANCED:
        replacements = (("explain", "explain in detail"), ("handle", "optimize"), ("implement", "architect"))
    else:
        replacements = (
            ("explain", "explain the architectural implications of"),
            ("handle", "design systems to handle"),
            ("implement", "design and implement"),
        )

    adjusted = text
    for old, new in replacements:
        adjusted = adjusted.replace(old, new, 1)

    if not adjusted.startswith(_QUESTION_OPENERS):
        adjusted = f"{level.question_prefix}{adjusted[:1].lower()}{adjusted[1:]}"
    return adjusted
