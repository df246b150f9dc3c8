import pytest

from interview_coach.services import question_bank
from interview_coach.services.question_bank import (
    adjust_question_for_experience,
    determine_role_category,
    experience_level,
    generate_fallback_questions,
    seeded_random,
)
from interview_coach.services.question_templates import MINIMAL_TEMPLATES


@pytest.mark.parametrize(
    "years,level",
    [(0, "beginner"), (2, "beginner"), (3, "intermediate"), (5, "intermediate"),
     (6, "advanced"), (10, "advanced"), (11, "expert"), (25, "expert")],
)
def test_experience_level_boundaries(years: int, level: str) -> None:
    assert experience_level(years).name == level


@pytest.mark.parametrize(
    "position,desc,category",
    [
        ("Frontend Engineer", "", "frontend"),
        ("Engineer", "React, TypeScript", "frontend"),
        ("Developer", "Django REST api", "backend"),
        ("Full Stack Developer", "", "fullstack"),
        ("SRE", "", "devops"),
        ("Engineer", "Terraform and Kubernetes", "devops"),
        ("Data Scientist", "statistics", "datascience"),
        ("iOS Engineer", "Swift", "mobile"),
        ("Software Developer", "", "fullstack"),
    ],
)
def test_determine_role_category(position: str, desc: str, category: str) -> None:
    assert determine_role_category(position, desc) == category


def test_seeded_random_is_deterministic() -> None:
    a, b = seeded_random(42), seeded_random(42)
    first = [a() for _ in range(5)]
    assert first == [b() for _ in range(5)]
    assert all(0 <= x < 1 for x in first)
    assert seeded_random(0)() == 49297 / 233280


def test_fallback_questions_are_repeatable_for_a_seed() -> None:
    one = generate_fallback_questions("Backend Developer", "Django, PostgreSQL", 4, seed=1234)
    two = generate_fallback_questions("Backend Developer", "Django, PostgreSQL", 4, seed=1234)
    assert one == two


def test_fallback_questions_for_beginner() -> None:
    questions = generate_fallback_questions("Frontend Developer", "React, CSS", 1, seed=7)

    assert len(questions) >= 5
    assert all(q["question"] and q["answer"] for q in questions)
    # Every question but the behavioural one carries the level prefix
    assert all(q["question"].startswith("For a junior developer, ") for q in questions[:-1])
    assert questions[-1]["question"].startswith("Describe a challenging situation")
    for q in questions:
        for placeholder in ("[STACK]", "[EXP]", "[TYPE]", "[FEATURE]", "[COMPONENT]"):
            assert placeholder not in q["question"]
            assert placeholder not in q["answer"]


def test_fallback_behavioral_question_for_senior() -> None:
    questions = generate_fallback_questions("Backend Developer", "Spring, Kafka", 8, seed=99)
    assert questions[-1]["question"].startswith("Describe a complex technical challenge or leadership situation")


def test_fallback_pads_with_stack_questions() -> None:
    questions = generate_fallback_questions("Engineer", "Elixir, Phoenix", 4, seed=3)
    assert any("Elixir" in q["question"] or "Elixir" in q["answer"] for q in questions)


def test_fallback_uses_minimal_set_when_generation_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(*args, **kwargs):
        raise RuntimeError("broken templates")

    monkeypatch.setattr(question_bank, "determine_role_category", boom)
    questions = generate_fallback_questions("Engineer", "", 2, seed=1)
    assert [q["question"] for q in questions] == [t.question for t in MINIMAL_TEMPLATES]


def test_adjust_keeps_questions_that_name_a_level() -> None:
    question = "What does a senior developer own during an incident?"
    assert adjust_question_for_experience(question, 1) == question


def test_adjust_simplifies_for_beginners() -> None:
    assert (
        adjust_question_for_experience("Can you walk through an advanced caching setup?", 1)
        == "For a junior developer, can you walk through an basic caching setup?"
    )
    assert adjust_question_for_experience("What makes a complex query slow?", 0) == "What makes a straightforward query slow?"


def test_adjust_prefixes_mid_level_questions() -> None:
    assert adjust_question_for_experience("Tell me about testing", 4) == "As a mid-level developer, tell me about testing"


def test_adjust_senior_and_lead_wording() -> None:
    assert (
        adjust_question_for_experience("How do you handle and explain failures?", 8)
        == "How do you optimize and explain in detail failures?"
    )
    assert (
        adjust_question_for_experience("Walk me through how you implement retries", 15)
        == "As a technical lead or architect, walk me through how you design and implement retries"
    )
