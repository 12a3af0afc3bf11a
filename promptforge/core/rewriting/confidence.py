"""
confidence.py - Calibrated confidence for template rewrites

Blends five independent signals so no single one decides the result:

    0.30  classification (category) confidence
    0.25  share of GOLDEN dimensions the rewrite is expected to improve
    0.15  anti-pattern-free score
    0.15  template match (bespoke 0.85, generic 0.6)
    0.15  session-context richness

The blend is clamped to [0.30, 0.95].
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from promptforge.core.models import (
    AntiPattern,
    GOLDEN_DIMENSIONS,
    GuidelineEvaluation,
    SessionContext,
    Severity,
)

SEVERITY_PENALTY = {Severity.HIGH: 0.3, Severity.MEDIUM: 0.15, Severity.LOW: 0.05}


@dataclass(frozen=True)
class ConfidenceFactors:
    classification_confidence: float
    dimensions_improved: int
    anti_pattern_free: float
    template_match: float
    context_richness: float

    @classmethod
    def from_evaluation(cls, classification_confidence: float, evaluation: GuidelineEvaluation,
                        has_template: bool,
                        session_context: Optional[SessionContext] = None) -> "ConfidenceFactors":
        return cls(
            classification_confidence=classification_confidence,
            dimensions_improved=count_improved_dimensions(evaluation),
            anti_pattern_free=anti_pattern_free_score(evaluation.anti_patterns),
            template_match=0.85 if has_template else 0.6,
            context_richness=context_richness(session_context),
        )


def count_improved_dimensions(evaluation: GuidelineEvaluation, threshold: float = 0.5) -> int:
    """Dimensions below the threshold are the ones a rewrite will likely raise."""
    return len(evaluation.golden_score.weak_dimensions(threshold))


def anti_pattern_free_score(anti_patterns: Sequence[AntiPattern]) -> float:
    penalty = sum(SEVERITY_PENALTY.get(ap.severity, 0.05) for ap in anti_patterns)
    return max(0.0, 1.0 - penalty)


def context_richness(session_context: Optional[SessionContext]) -> float:
    if session_context is None:
        return 0.2
    richness = 0.3
    if session_context.tech_stack:
        richness += 0.2
    if session_context.has_active_task:
        richness += 0.15
    if session_context.recent_files:
        richness += 0.15
    if session_context.last_exchange is not None:
        richness += 0.1
    if session_context.git_branch:
        richness += 0.1
    return min(1.0, richness)


def calibrated_confidence_for(factors: ConfidenceFactors) -> float:
    confidence = (
        factors.classification_confidence * 0.30
        + factors.dimensions_improved / len(GOLDEN_DIMENSIONS) * 0.25
        + factors.anti_pattern_free * 0.15
        + factors.template_match * 0.15
        + factors.context_richness * 0.15
    )
    return max(0.30, min(0.95, confidence))
