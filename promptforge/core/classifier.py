"""
classifier.py - Intent and task-category classification

This module handles:
- Position-weighted keyword scoring per intent and per category
- Negation penalties, question-mark bonus and rule-based disambiguation
- Calibrated confidences and multi-label (secondary category) output
- Batch helpers for classifying many prompts and summarizing the results
"""

from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from promptforge.core.features import extract_features
from promptforge.core.models import (
    CategoryScore,
    Classification,
    Complexity,
    Intent,
    IntentScoreDetails,
    MultiLabelClassification,
    SessionContext,
    TaskCategory,
)
from promptforge.core.patterns import (
    CATEGORY_KEYWORDS,
    INTENT_KEYWORDS,
    apply_co_occurrence,
    apply_disambiguation,
    match_multilingual,
    negation_penalties,
    score_matches,
)
from promptforge.utils.config import AnalysisConfig, DEFAULT_ANALYSIS_CONFIG
from promptforge.utils.logging_helper import get_logger
from promptforge.utils.text_processing import normalize_text

log = get_logger()

INTENT_LABELS = {
    Intent.COMMAND: "Command",
    Intent.QUESTION: "Question",
    Intent.INSTRUCTION: "Step-by-step instruction",
    Intent.FEEDBACK: "Feedback",
    Intent.CONTEXT: "Context sharing",
    Intent.CLARIFICATION: "Clarification request",
    Intent.UNKNOWN: "Unknown",
}

CATEGORY_LABELS = {
    TaskCategory.CODE_GENERATION: "Code generation",
    TaskCategory.CODE_REVIEW: "Code review",
    TaskCategory.BUG_FIX: "Bug fix",
    TaskCategory.REFACTORING: "Refactoring",
    TaskCategory.EXPLANATION: "Explanation",
    TaskCategory.DOCUMENTATION: "Documentation",
    TaskCategory.TESTING: "Testing",
    TaskCategory.ARCHITECTURE: "Architecture",
    TaskCategory.DEPLOYMENT: "Deployment",
    TaskCategory.DATA_ANALYSIS: "Data analysis",
    TaskCategory.GENERAL: "General",
    TaskCategory.UNKNOWN: "Unknown",
}


def intent_label(intent: Intent) -> str:
    return INTENT_LABELS.get(intent, intent.value)


def category_label(category: TaskCategory) -> str:
    return CATEGORY_LABELS.get(category, category.value)


def _arg_max(scores: Dict, order: Sequence) -> Tuple[Optional[object], float]:
    """Highest score with strict ``>``, so the earlier label wins ties."""
    best, best_score = None, 0.0
    for label in order:
        score = scores.get(label, 0.0)
        if score > best_score:
            best, best_score = label, score
    return best, best_score


def _runner_up(scores: Dict, winner) -> float:
    others = [v for k, v in scores.items() if k != winner]
    return max(others) if others else 0.0


# ── intent ───────────────────────────────────────────────────────────────────
def score_intents(text: str, has_question_mark: bool,
                  config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG
                  ) -> Tuple[Dict[Intent, float], Dict[Intent, IntentScoreDetails], List[str]]:
    """Per-intent scores, their breakdown, and the matched keywords in table order."""
    penalties = negation_penalties(text)
    scores: Dict[Intent, float] = {}
    details: Dict[Intent, IntentScoreDetails] = {}
    keywords: List[str] = []

    for intent, table in INTENT_KEYWORDS.items():
        hits = match_multilingual(text, table, config)
        keywords.extend(kw for kw, _ in hits)
        base, bonus = score_matches(hits)
        raw = base + bonus
        penalty = penalties.get(intent, 0.0)
        after_negation = max(0.0, raw - penalty)
        qmark = config.question_mark_bonus if intent == Intent.QUESTION and has_question_mark else 0.0
        total = after_negation + qmark
        scores[intent] = total
        details[intent] = IntentScoreDetails(
            base=base,
            position=bonus,
            negation=-(raw - after_negation),
            question_mark=qmark,
            total=total,
        )
    return scores, details, keywords


def _pick_intent(scores: Dict[Intent, float], has_question_mark: bool, complexity: Complexity,
                 config: AnalysisConfig) -> Tuple[Intent, float]:
    winner, top = _arg_max(scores, list(INTENT_KEYWORDS.keys()))

    if winner is None:
        if has_question_mark:
            return Intent.QUESTION, config.question_inference_confidence
        if complexity in (Complexity.COMPLEX, Complexity.ADVANCED):
            return Intent.INSTRUCTION, config.complexity_inference_confidence
        return Intent.COMMAND, config.no_match_intent_confidence

    if (not has_question_mark
            and scores.get(Intent.COMMAND, 0.0) == scores.get(Intent.QUESTION, 0.0) == top):
        winner = Intent.COMMAND

    total = sum(scores.values())
    gap = top - _runner_up(scores, winner)
    confidence = (top / total
                  + min(gap / top * config.intent_gap_factor, config.intent_gap_cap)
                  + config.intent_base_bonus)
    return winner, min(confidence, config.intent_confidence_cap)


# ── category ─────────────────────────────────────────────────────────────────
def score_categories(text: str, config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG
                     ) -> Tuple[Dict[TaskCategory, float], List[str]]:
    """Weighted category scores after disambiguation and co-occurrence bonuses."""
    scores: Dict[TaskCategory, float] = {}
    keywords: List[str] = []
    for category, table in CATEGORY_KEYWORDS.items():
        hits = match_multilingual(text, table, config)
        keywords.extend(kw for kw, _ in hits)
        scores[category] = sum(weight for _, weight in hits)

    scores = apply_disambiguation(text, scores)
    scores = apply_co_occurrence(text, scores)
    return scores, keywords


def _pick_category(scores: Dict[TaskCategory, float], config: AnalysisConfig
                   ) -> MultiLabelClassification:
    winner, top = _arg_max(scores, list(CATEGORY_KEYWORDS.keys()))
    if winner is None:
        return MultiLabelClassification(
            primary=CategoryScore(TaskCategory.UNKNOWN, config.unknown_category_confidence),
        )

    total = sum(scores.values())
    second = _runner_up(scores, winner)
    gap = top - second
    confidence = (top / total
                  + min(gap / top * config.category_gap_factor, config.category_gap_cap)
                  + config.category_base_bonus)

    ranked = sorted(
        ((c, s) for c, s in scores.items() if c != winner and s > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    secondary = [
        CategoryScore(c, min(s / total + 0.05, config.secondary_confidence_cap))
        for c, s in ranked[:2]
    ]
    return MultiLabelClassification(
        primary=CategoryScore(winner, min(confidence, config.category_confidence_cap)),
        secondary=secondary,
        is_multi_intent=second > 0 and gap / top < config.multi_intent_gap_ratio,
    )


# ── public API ───────────────────────────────────────────────────────────────
def classify(text: str,
             session_context: Optional[SessionContext] = None,
             config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> Classification:
    """
    Classify a prompt's intent and task category.

    Args:
        text: Raw prompt text (normalized internally)
        session_context: Optional workspace facts, used for complexity only
        config: Scoring constants

    Returns:
        Classification with calibrated confidences and the matched keywords
        (intent keywords first, then category keywords, de-duplicated)
    """
    text = normalize_text(text)
    features = extract_features(text, session_context, config)

    intent_scores, details, intent_keywords = score_intents(text, features.has_question_mark, config)
    intent, intent_confidence = _pick_intent(
        intent_scores, features.has_question_mark, features.complexity, config)

    category_scores, category_keywords = score_categories(text, config)
    multi_label = _pick_category(category_scores, config)

    matched = list(dict.fromkeys(intent_keywords + category_keywords))
    log.debug(f"classify: intent={intent.value} category={multi_label.primary.category.value} "
              f"keywords={matched}")

    return Classification(
        intent=intent,
        intent_confidence=intent_confidence,
        task_category=multi_label.primary.category,
        category_confidence=multi_label.primary.confidence,
        matched_keywords=matched,
        features=features,
        multi_label=multi_label,
        intent_score_details=details,
    )


def classify_many(texts: Sequence[str],
                  config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> List[Classification]:
    return [classify(t, config=config) for t in texts]


def classification_stats(results: Sequence[Classification]) -> Dict[str, object]:
    """Distributions and average confidences over a batch of classifications."""
    if not results:
        return {
            "count": 0,
            "intent_distribution": {},
            "category_distribution": {},
            "avg_intent_confidence": 0.0,
            "avg_category_confidence": 0.0,
        }
    intents = Counter(r.intent.value for r in results)
    categories = Counter(r.task_category.value for r in results)
    return {
        "count": len(results),
        "intent_distribution": dict(intents.most_common()),
        "category_distribution": dict(categories.most_common()),
        "avg_intent_confidence": sum(r.intent_confidence for r in results) / len(results),
        "avg_category_confidence": sum(r.category_confidence for r in results) / len(results),
    }
