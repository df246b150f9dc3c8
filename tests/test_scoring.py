import pytest

from interview_coach.services.scoring import (
    edit_distance,
    extract_keywords,
    extract_phrases,
    keyword_score,
    overall_feedback,
    overall_score,
    round_half_up,
    score_answer,
    score_session,
)


def test_edit_distance_basics() -> None:
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("sitting", "kitten") == 3
    assert edit_distance("cache", "cache") == 0
    assert edit_distance("", "abc") == 3
    assert edit_distance("abc", "") == 3


@pytest.mark.parametrize("a,b,c", [("cache", "caches", "caching"), ("react", "redux", "reduce"), ("", "go", "rust")])
def test_edit_distance_triangle_inequality(a: str, b: str, c: str) -> None:
    assert edit_distance(a, c) <= edit_distance(a, b) + edit_distance(b, c)


def test_round_half_up_rounds_halves_up() -> None:
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(17.5) == 18
    assert round_half_up(1.49) == 1


def test_keywords_are_unique_significant_words_in_order() -> None:
    text = "Would you explain caching. Caching, with a cache-aside pattern, reduces load."
    assert extract_keywords(text) == ["explain", "caching", "cacheaside", "pattern", "reduces", "load"]


def test_phrases_skip_single_character_words() -> None:
    assert extract_phrases("I use a cache for reads") == ["use cache for", "cache for reads"]
    assert extract_phrases("too short") == []


def test_identical_answer_scores_100() -> None:
    reference = "Caching stores frequently accessed data closer to the consumer."
    result = score_answer(reference, reference)
    assert result.score == 100
    assert result.missing_keywords == []
    assert result.feedback.startswith("Excellent answer!")


def test_disjoint_answer_scores_0() -> None:
    result = score_answer("Normalization removes redundant columns", "I enjoy hiking mountains")
    assert result.score == 0
    assert result.missing_keywords == ["normalization", "removes", "redundant", "columns"]


def test_caching_scenario_is_partial_credit() -> None:
    result = score_answer(
        "explain the concept of caching in distributed systems",
        "caching is used in distributed systems",
    )
    assert result.keyword_score == pytest.approx(60.0)
    assert result.phrase_score == pytest.approx(100 / 6)
    assert result.score == 47
    assert 40 < result.score < 90
    assert result.missing_keywords == ["explain", "concept"]
    assert result.feedback == "Adequate answer, but you missed several key points including: explain, concept."


def test_fuzzy_match_gives_half_credit() -> None:
    result = score_answer("database indexing", "databases indexes")
    # "databases" is one edit from "database"; "indexes" is three edits from "indexing"
    assert result.keyword_score == pytest.approx(25.0)
    assert result.phrase_score == 0
    assert result.score == 18
    assert result.missing_keywords == ["indexing"]


def test_keyword_score_grows_with_matches() -> None:
    reference = ["latency", "throughput", "caching", "sharding"]
    scores = [keyword_score(reference, reference[:n]) for n in range(len(reference) + 1)]
    assert scores == sorted(scores)
    assert scores[0] == 0
    assert scores[-1] == 100


def test_empty_transcript_needs_improvement() -> None:
    reference = "Kubernetes schedules containers across nodes using declarative manifests and controllers"
    result = score_answer(reference, "")
    assert result.score == 0
    assert result.feedback.startswith("Your answer could use improvement.")
    assert len(result.missing_keywords) == 5
    assert result.missing_keywords == extract_keywords(reference)[:5]


def test_reference_without_keywords_scores_0() -> None:
    assert score_answer("It is a cat", "It is a cat").score == 0


def test_overall_score_is_rounded_mean() -> None:
    assert overall_score([100, 47]) == 74
    assert overall_score([80, 81, 82]) == 81
    assert overall_score([]) == 0


def test_overall_feedback_bands() -> None:
    assert overall_feedback(80).startswith("Excellent interview!")
    assert overall_feedback(79).startswith("Good interview.")
    assert overall_feedback(40).startswith("You performed adequately")
    assert overall_feedback(39).startswith("You need significant improvement")


def test_score_session_keeps_question_order() -> None:
    questions = ["Q1", "Q2", "Q3"]
    references = [
        "Caching stores frequently accessed data closer to the consumer.",
        "explain the concept of caching in distributed systems",
        "Indexes speed up lookups at the cost of slower writes",
    ]
    transcripts = [references[0], "caching is used in distributed systems", ""]
    report = score_session(questions, references, transcripts)

    assert [f.index for f in report.feedback] == [0, 1, 2]
    assert [f.question for f in report.feedback] == questions
    assert [f.score for f in report.feedback] == [100, 47, 0]
    assert report.overall_score == 49
    assert report.to_dict()["feedback"][1]["transcript"] == transcripts[1]


def test_score_session_rejects_length_mismatch() -> None:
    with pytest.raises(ValueError):
        score_session(["Q1"], ["ref"], [])
