import pytest

from promptforge.core.golden import evaluate
from promptforge.core.models import AntiPattern, LastExchange, SessionContext, Severity
from promptforge.core.rewriting.confidence import (
    ConfidenceFactors,
    anti_pattern_free_score,
    calibrated_confidence_for,
    context_richness,
    count_improved_dimensions,
)


def anti(severity):
    return AntiPattern("x", "X", severity, "", "", "")


def test_confidence_is_clamped():
    assert calibrated_confidence_for(ConfidenceFactors(0.0, 0, 0.0, 0.0, 0.0)) == 0.30
    assert calibrated_confidence_for(ConfidenceFactors(1.0, 6, 1.0, 1.0, 1.0)) == 0.95


def test_confidence_blend():
    factors = ConfidenceFactors(0.8, 3, 1.0, 0.85, 0.2)
    assert calibrated_confidence_for(factors) == pytest.approx(0.6725)


def test_anti_pattern_free_score():
    assert anti_pattern_free_score([]) == 1.0
    assert anti_pattern_free_score([anti(Severity.HIGH), anti(Severity.MEDIUM)]) == pytest.approx(0.55)
    assert anti_pattern_free_score([anti(Severity.HIGH)] * 5) == 0.0


def test_context_richness():
    assert context_richness(None) == 0.2
    assert context_richness(SessionContext()) == pytest.approx(0.3)
    full = SessionContext(
        tech_stack=["Python"],
        current_task="migrate the billing jobs",
        recent_files=["jobs.py"],
        last_exchange=LastExchange(user_message="hi"),
        git_branch="main",
    )
    assert context_richness(full) == pytest.approx(1.0)


def test_factors_from_evaluation():
    evaluation = evaluate("다시")
    assert count_improved_dimensions(evaluation) == 6
    factors = ConfidenceFactors.from_evaluation(0.5, evaluation, has_template=False)
    assert factors.template_match == 0.6
    assert factors.dimensions_improved == 6
    assert factors.context_richness == 0.2
    assert factors.anti_pattern_free == pytest.approx(0.4)
