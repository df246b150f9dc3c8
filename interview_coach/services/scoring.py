"""Answer scoring heuristics.

A candidate transcript is compared with the reference answer of a question:

- keyword overlap (exact matches count 1, near misses within edit distance 2
  count 0.5) weighted 70%
- overlap of contiguous three-word phrases weighted 30%

Everything in this module is pure and deterministic.
"""
from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field
from typing import List, Sequence

STOP_WORDS = frozenset({
    "this", "that", "with", "from", "about",
    "would", "should", "could", "their", "there",
})

_PUNCTUATION_RE = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")

KEYWORD_WEIGHT = 0.7
PHRASE_WEIGHT = 0.3
FUZZY_MAX_DISTANCE = 2
FUZZY_CREDIT = 0.5
MAX_MISSING_KEYWORDS = 5
PHRASE_LENGTH = 3

EXCELLENT = 80
GOOD = 60
ADEQUATE = 40


@dataclass
class AnswerScore:
    score: int
    keyword_score: float
    phrase_score: float
    missing_keywords: List[str]
    feedback: str


@dataclass
class QuestionFeedback:
    index: int
    question: str
    score: int
    feedback: str
    transcript: str
    reference_answer: str
    keyword_score: float = 0.0
    phrase_score: float = 0.0
    missing_keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SessionReport:
    feedback: List[QuestionFeedback]
    overall_score: int
    overall_feedback: str

    def to_dict(self) -> dict:
        return {
            "overall_score": self.overall_score,
            "overall_feedback": self.overall_feedback,
            "feedback": [item.to_dict() for item in self.feedback],
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings (insert, delete, substitute)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        previous = current
    return previous[-1]


def tokenize(text: str) -> List[str]:
    cleaned = _PUNCTUATION_RE.sub("", (text or "").lower())
    return cleaned.split()


def extract_keywords(text: str) -> List[str]:
    """Unique significant words of a text in first-seen order."""
    words = [w for w in tokenize(text) if len(w) > 3 and w not in STOP_WORDS]
    return list(dict.fromkeys(words))


def extract_phrases(text: str, length: int = PHRASE_LENGTH) -> List[str]:
    """Unique contiguous word windows, single-character words skipped."""
    words = [w for w in tokenize(text) if len(w) > 1]
    windows = (" ".join(words[i:i + length]) for i in range(len(words) - length + 1))
    return list(dict.fromkeys(windows))


def _fuzzy_match(keyword: str, candidates: Sequence[str]) -> bool:
    # First candidate within range wins; no search for the closest one.
    for candidate in candidates:
        if edit_distance(keyword, candidate) <= FUZZY_MAX_DISTANCE:
            return True
    return False


def keyword_score(reference_keywords: Sequence[str], candidate_keywords: Sequence[str]) -> float:
    if not reference_keywords:
        return 0.0
    candidate_set = set(candidate_keywords)
    points = 0.0
    for keyword in reference_keywords:
        if keyword in candidate_set:
            points += 1
        elif _fuzzy_match(keyword, candidate_keywords):
            points += FUZZY_CREDIT
    return points / len(reference_keywords) * 100


def phrase_score(reference_phrases: Sequence[str], candidate_phrases: Sequence[str]) -> float:
    if not reference_phrases:
        return 0.0
    candidate_set = set(candidate_phrases)
    matched = sum(1 for phrase in reference_phrases if phrase in candidate_set)
    return matched / len(reference_phrases) * 100


def missing_keywords(reference_keywords: Sequence[str], candidate_keywords: Sequence[str]) -> List[str]:
    candidate_set = set(candidate_keywords)
    missing = [
        keyword for keyword in reference_keywords
        if keyword not in candidate_set and not _fuzzy_match(keyword, candidate_keywords)
    ]
    return missing[:MAX_MISSING_KEYWORDS]


def answer_feedback(score: int, missed: Sequence[str]) -> str:
    points = ", ".join(missed)
    if score >= EXCELLENT:
        return "Excellent answer! You covered most of the key points."
    if score >= GOOD:
        return f"Good answer. You mentioned some important points, but could have expanded on: {points}."
    if score >= ADEQUATE:
        return f"Adequate answer, but you missed several key points including: {points}."
    return f"Your answer could use improvement. Try to include these key points in your answer: {points}."


def overall_feedback(score: int) -> str:
    if score >= EXCELLENT:
        return "Excellent interview! You demonstrated strong knowledge and communication skills."
    if score >= GOOD:
        return "Good interview. You showed decent knowledge but could improve in some areas."
    if score >= ADEQUATE:
        return "You performed adequately but need to work on your answers and preparation."
    return "You need significant improvement in your interview skills and knowledge."


def score_answer(reference: str, transcript: str) -> AnswerScore:
    """Score one transcript against its reference answer."""
    reference_keywords = extract_keywords(reference)
    candidate_keywords = extract_keywords(transcript)
    missed = missing_keywords(reference_keywords, candidate_keywords)

    if not reference_keywords:
        return AnswerScore(0, 0.0, 0.0, missed, answer_feedback(0, missed))

    kw = keyword_score(reference_keywords, candidate_keywords)
    ph = phrase_score(extract_phrases(reference), extract_phrases(transcript))
    combined = min(100, round_half_up(KEYWORD_WEIGHT * kw + PHRASE_WEIGHT * ph))
    return AnswerScore(combined, kw, ph, missed, answer_feedback(combined, missed))


def overall_score(scores: Sequence[int]) -> int:
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))


def score_session(questions: Sequence[str], references: Sequence[str], transcripts: Sequence[str]) -> SessionReport:
    """Score every question of a session, keeping the original question order."""
    if not (len(questions) == len(references) == len(transcripts)):
        raise ValueError("questions, references and transcripts must have the same length")

    items: List[QuestionFeedback] = []
    for index, (question, reference, transcript) in enumerate(zip(questions, references, transcripts)):
        result = score_answer(reference, transcript)
        items.append(QuestionFeedback(
            index=index,
            question=question,
            score=result.score,
            feedback=result.feedback,
            transcript=transcript,
            reference_answer=reference,
            keyword_score=round(result.keyword_score, 2),
            phrase_score=round(result.phrase_score, 2),
            missing_keywords=result.missing_keywords,
        ))

    total = overall_score([item.score for item in items])
    return SessionReport(feedback=items, overall_score=total, overall_feedback=overall_feedback(total))
