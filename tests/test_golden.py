import pytest

from promptforge.core.golden import (
    GUIDELINES,
    calculate_golden_score,
    detect_anti_patterns,
    evaluate,
    evaluate_many,
    grade_for,
)
from promptforge.core.models import Grade, Severity
from promptforge.utils.config import DEFAULT_ANALYSIS_CONFIG

STRUCTURED_PROMPT = """<context>
Currently our project uses Python 3.12 and FastAPI. The goal is to add rate limiting.
</context>
<task>
First, explain the approach step by step, then implement the limiter in src/api/limits.py.
</task>
<constraints>
- Only change the middleware, don't modify existing routes.
- If the limit is exceeded, return 429.
</constraints>
Output format: a markdown list followed by the code, for example a short table."""


def ids(anti_patterns):
    return [ap.id for ap in anti_patterns]


def test_golden_empty_text_scores_zero():
    score = calculate_golden_score("")
    assert score.total == 0.0
    assert all(v == 0.0 for v in score.dimensions().values())


def test_golden_scores_are_bounded():
    for text in ("fix it", STRUCTURED_PROMPT, "word " * 500):
        score = calculate_golden_score(text)
        for value in list(score.dimensions().values()) + [score.total]:
            assert 0.0 <= value <= 1.0


def test_golden_length_bonus_is_capped():
    score = calculate_golden_score(STRUCTURED_PROMPT)
    mean = sum(score.dimensions().values()) / 6
    assert score.total - mean <= 0.15 + 1e-9


def test_detailed_prompt_beats_vague_prompt():
    assert calculate_golden_score(STRUCTURED_PROMPT).total > calculate_golden_score("fix it").total


def test_guideline_weights_sum_to_one():
    weights = DEFAULT_ANALYSIS_CONFIG.guideline_weights
    assert sum(weights.values()) == pytest.approx(1.0)
    assert set(weights) == {g.id for g in GUIDELINES}


def test_structured_prompt_grades_well():
    result = evaluate(STRUCTURED_PROMPT)
    assert result.overall_score > 0.75
    assert result.grade in (Grade.A, Grade.B)
    assert result.anti_patterns == []


def test_retry_prompt():
    found = detect_anti_patterns("다시")
    assert ids(found) == ["vague-objective", "retry-without-context"]
    assert found[0].severity == Severity.HIGH


def test_vague_reference_uses_word_boundaries():
    assert ids(detect_anti_patterns("fix this")) == ["vague-objective", "vague-reference"]
    assert detect_anti_patterns("Please submit the quarterly report form") == []
    assert "vague-reference" not in ids(detect_anti_patterns("the old build it is broken again"))


def test_short_multiline_prompt_is_vague():
    assert "vague-objective" in ids(detect_anti_patterns("fix\nbug"))
    assert detect_anti_patterns("   ") == []


def test_unstructured_context():
    found = detect_anti_patterns("word " * 50)
    assert "unstructured-context" in ids(found)
    assert found[0].evidence_snippet.endswith("...")


def test_missing_output_format():
    assert "missing-output-format" in ids(detect_anti_patterns("explain how the cache works"))
    assert "missing-output-format" not in ids(detect_anti_patterns("explain the cache as a table"))


def test_recommendations_put_urgent_first():
    result = evaluate("다시")
    assert result.grade == Grade.F
    assert result.recommendations[0].startswith("[urgent]")
    assert len(result.recommendations) <= 5


def test_evaluate_is_deterministic():
    assert evaluate("로그인 기능 만들어줘") == evaluate("로그인 기능 만들어줘")


@pytest.mark.parametrize("score,grade", [
    (0.95, Grade.A), (0.9, Grade.A), (0.75, Grade.B), (0.6, Grade.C), (0.4, Grade.D), (0.39, Grade.F),
])
def test_grade_thresholds(score, grade):
    assert grade_for(score) == grade


def test_evaluate_many_summary():
    evaluations, summary = evaluate_many(["다시", "fix this", STRUCTURED_PROMPT])
    assert len(evaluations) == 3
    assert summary.count == 3
    assert sum(summary.grade_distribution.values()) == 3
    assert summary.top_anti_patterns[0]["id"] == "vague-objective"
    assert summary.top_anti_patterns[0]["count"] == 2
    assert len(summary.weakest_guidelines) == 3


def test_evaluate_many_empty():
    evaluations, summary = evaluate_many([])
    assert evaluations == []
    assert summary.count == 0


def test_constraint_language_raises_limits():
    base = calculate_golden_score("add a login page")
    constrained = calculate_golden_score(
        "add a login page without changing the API, only in React, at most 50 lines")
    assert constrained.limits > base.limits
