"""
matching.py - Keyword matching primitives

Korean is agglutinative, so its keywords are matched as substrings; English
keywords are matched on word boundaries so that "then" is not found inside
"authentication". Every keyword is escaped before it is compiled.
"""

import re
from functools import lru_cache
from typing import Dict, List, Mapping, Optional, Tuple

from promptforge.core.patterns.keywords import SIGNAL_KEYWORDS
from promptforge.utils.config import AnalysisConfig, DEFAULT_ANALYSIS_CONFIG
from promptforge.utils.text_processing import contains_hangul

KeywordHit = Tuple[str, float]


def escape(keyword: str) -> str:
    return re.escape(keyword)


@lru_cache(maxsize=4096)
def _boundary_pattern(keyword: str) -> "re.Pattern[str]":
    return re.compile(r"\b" + escape(keyword) + r"\b", re.IGNORECASE)


def match_word_boundary(text: str, keyword: str) -> bool:
    return _boundary_pattern(keyword).search(text) is not None


def match_substring(text: str, keyword: str) -> bool:
    return keyword.lower() in text.lower()


def match_keyword(text: str, keyword: str) -> bool:
    """Substring match for Hangul keywords, word-boundary match otherwise."""
    if contains_hangul(keyword):
        return match_substring(text, keyword)
    return match_word_boundary(text, keyword)


def position_weight(text: str, keyword: str,
                    config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> float:
    """Weight a hit by where it first occurs.

    Args:
        text: Full prompt text
        keyword: Keyword already known to match
        config: Supplies the early-position threshold and multiplier

    Returns:
        The early-position multiplier when the first occurrence falls in the
        leading quarter of the text, otherwise the default weight.
    """
    if not text:
        return config.default_position_weight
    if contains_hangul(keyword):
        index = text.lower().find(keyword.lower())
    else:
        found = _boundary_pattern(keyword).search(text)
        index = found.start() if found else -1
    if index < 0:
        return config.default_position_weight
    if index < len(text) * config.early_position_threshold:
        return config.early_position_multiplier
    return config.default_position_weight


def match_multilingual(text: str, table: Mapping[str, tuple],
                       config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> List[KeywordHit]:
    """Return ``(keyword, weight)`` for every Korean and English keyword that matches."""
    hits: List[KeywordHit] = []
    for keyword in table["ko"]:
        if match_substring(text, keyword):
            hits.append((keyword, position_weight(text, keyword, config)))
    for keyword in table["en"]:
        if match_word_boundary(text, keyword):
            hits.append((keyword, position_weight(text, keyword, config)))
    return hits


def score_matches(hits: List[KeywordHit]) -> Tuple[float, float]:
    """Split a hit list into (base count, position bonus above 1.0 per hit)."""
    base = float(len(hits))
    bonus = sum(weight - 1.0 for _, weight in hits)
    return base, bonus


def detect_signals(text: str, signal_types: Optional[List[str]] = None) -> Dict[str, object]:
    """
    Scan conversational signal tables (positive, negative, retry, ...).

    Returns a dict with ``signals`` (matched table names in table order),
    ``keywords`` (every matched keyword) and ``confidence``.
    """
    names = signal_types or list(SIGNAL_KEYWORDS.keys())
    signals: List[str] = []
    keywords: List[str] = []

    for name in names:
        table = SIGNAL_KEYWORDS.get(name)
        if table is None:
            continue
        matched = [kw for kw, _ in match_multilingual(text, table)]
        if matched:
            signals.append(name)
            keywords.extend(matched)

    confidence = min(0.3 * len(keywords), 0.9)
    if len(text) < 50:
        confidence *= 1.2
    elif len(text) > 500:
        confidence *= 0.8

    return {
        "signals": signals,
        "keywords": keywords,
        "confidence": min(confidence, 1.0),
    }
