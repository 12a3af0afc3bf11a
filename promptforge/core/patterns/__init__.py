"""
Pattern registry - keyword tables, matching primitives and scoring rules
"""

from .keywords import CATEGORY_KEYWORDS, INTENT_KEYWORDS, SIGNAL_KEYWORDS, all_keywords
from .matching import (
    detect_signals,
    escape,
    match_keyword,
    match_multilingual,
    match_substring,
    match_word_boundary,
    position_weight,
    score_matches,
)
from .rules import apply_co_occurrence, apply_disambiguation, apply_negation, negation_penalties

__all__ = [
    "CATEGORY_KEYWORDS",
    "INTENT_KEYWORDS",
    "SIGNAL_KEYWORDS",
    "all_keywords",
    "detect_signals",
    "escape",
    "match_keyword",
    "match_multilingual",
    "match_substring",
    "match_word_boundary",
    "position_weight",
    "score_matches",
    "apply_co_occurrence",
    "apply_disambiguation",
    "apply_negation",
    "negation_penalties",
]
