"""
rules.py - Score adjustment rules applied after raw keyword matching

This module provides:
- Disambiguation rules for keywords shared by several categories
- Co-occurrence bonuses for keyword pairs that sharpen a category
- Negation penalties that soften command/instruction/question intents

All functions take a score dict and return a new one; inputs are never
mutated.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from promptforge.core.models import Intent, TaskCategory
from promptforge.core.patterns.matching import match_keyword

C = TaskCategory


@dataclass(frozen=True)
class Resolution:
    pattern: "re.Pattern[str]"
    category: TaskCategory
    boost: float


@dataclass(frozen=True)
class DisambiguationRule:
    keyword: str
    conflicts: Tuple[TaskCategory, ...]
    resolutions: Tuple[Resolution, ...]


def _r(pattern: str, category: TaskCategory, boost: float) -> Resolution:
    return Resolution(re.compile(pattern, re.IGNORECASE), category, boost)


# ── disambiguation ───────────────────────────────────────────────────────────
DISAMBIGUATION_RULES: Tuple[DisambiguationRule, ...] = (
    DisambiguationRule("fix", (C.BUG_FIX, C.CODE_GENERATION), (
        _r(r"error|bug|exception|crash|fail|broken|issue|problem|TypeError|ReferenceError|에러|오류|버그",
           C.BUG_FIX, 0.4),
        _r(r"add|new|create|feature|implement|만들어|생성|추가", C.CODE_GENERATION, 0.3),
    )),
    DisambiguationRule("test", (C.TESTING, C.CODE_REVIEW), (
        _r(r"unit|spec|vitest|jest|mocha|coverage|테스트\s*코드|테스트\s*작성|e2e|integration",
           C.TESTING, 0.5),
        _r(r"check|review|verify|validate|확인|검토|검증", C.CODE_REVIEW, 0.3),
    )),
    DisambiguationRule("create", (C.CODE_GENERATION, C.DOCUMENTATION), (
        _r(r"doc|readme|guide|comment|문서|주석|설명서|가이드", C.DOCUMENTATION, 0.3),
        _r(r"function|class|component|module|api|service|함수|클래스|컴포넌트",
           C.CODE_GENERATION, 0.4),
    )),
    DisambiguationRule("수정", (C.BUG_FIX, C.REFACTORING, C.CODE_GENERATION), (
        _r(r"에러|오류|버그|문제|안됨|안돼", C.BUG_FIX, 0.4),
        _r(r"리팩토링|개선|정리|구조|clean", C.REFACTORING, 0.35),
        _r(r"추가|새로|기능", C.CODE_GENERATION, 0.3),
    )),
    DisambiguationRule("improve", (C.REFACTORING, C.BUG_FIX), (
        _r(r"performance|speed|optimize|성능|최적화|빠르게", C.REFACTORING, 0.4),
        _r(r"error|bug|fix|에러|버그", C.BUG_FIX, 0.35),
    )),
    DisambiguationRule("설명", (C.EXPLANATION, C.DOCUMENTATION), (
        _r(r"뭐야|왜|어떻게|이해|의미|작동|원리|what|how|why", C.EXPLANATION, 0.4),
        _r(r"문서|readme|주석|comment|doc", C.DOCUMENTATION, 0.35),
    )),
)


def apply_disambiguation(text: str, scores: Dict[TaskCategory, float]) -> Dict[TaskCategory, float]:
    """Boost one side of an ambiguous keyword when context settles it.

    A rule fires only when its keyword matched and at least two of its
    conflicting categories already scored; the first matching resolution wins.
    """
    result = dict(scores)
    for rule in DISAMBIGUATION_RULES:
        if not match_keyword(text, rule.keyword):
            continue
        active = [c for c in rule.conflicts if result.get(c, 0.0) > 0]
        if len(active) < 2:
            continue
        for resolution in rule.resolutions:
            if resolution.pattern.search(text):
                result[resolution.category] = result.get(resolution.category, 0.0) + resolution.boost
                break
    return result


# ── co-occurrence ────────────────────────────────────────────────────────────
CO_OCCURRENCE_BONUSES: Dict[TaskCategory, List[Tuple[str, str, float]]] = {
    C.BUG_FIX: [
        ("fix", "bug", 0.3), ("fix", "error", 0.3), ("수정", "버그", 0.3),
        ("수정", "에러", 0.3), ("고쳐", "오류", 0.3),
    ],
    C.TESTING: [
        ("write", "test", 0.3), ("add", "test", 0.25), ("테스트", "작성", 0.3),
        ("unit", "test", 0.35),
    ],
    C.CODE_GENERATION: [
        ("create", "component", 0.3), ("implement", "feature", 0.3),
        ("만들어", "기능", 0.3), ("구현", "컴포넌트", 0.3),
    ],
    C.REFACTORING: [
        ("refactor", "code", 0.25), ("리팩토링", "코드", 0.25), ("clean", "up", 0.2),
        ("정리", "코드", 0.25),
    ],
    C.DOCUMENTATION: [
        ("write", "documentation", 0.3), ("add", "comment", 0.25), ("문서", "작성", 0.3),
    ],
    C.ARCHITECTURE: [
        ("design", "system", 0.3), ("설계", "시스템", 0.3), ("architecture", "pattern", 0.35),
    ],
}


def apply_co_occurrence(text: str, scores: Dict[TaskCategory, float]) -> Dict[TaskCategory, float]:
    """Add a bonus for every keyword pair found together in the text."""
    result = dict(scores)
    for category, pairs in CO_OCCURRENCE_BONUSES.items():
        for first, second, bonus in pairs:
            if match_keyword(text, first) and match_keyword(text, second):
                result[category] = result.get(category, 0.0) + bonus
    return result


# ── negation ─────────────────────────────────────────────────────────────────
NEGATION_PENALTIES: Tuple[Tuple["re.Pattern[str]", Tuple[Intent, ...], float], ...] = (
    (re.compile(r"don't|doesn't|didn't|won't|하지\s*마|하지\s*마세요|않|말고|no\s+need", re.IGNORECASE),
     (Intent.COMMAND, Intent.INSTRUCTION), 0.3),
    (re.compile(r"not\s+asking|질문\s*아니|묻는\s*게\s*아니", re.IGNORECASE),
     (Intent.QUESTION,), 0.4),
    (re.compile(r"don't\s+create|don't\s+make|만들지\s*마|생성하지\s*마", re.IGNORECASE),
     (Intent.COMMAND,), 0.5),
)


def negation_penalties(text: str) -> Dict[Intent, float]:
    """Total penalty per intent; several patterns may stack."""
    penalties: Dict[Intent, float] = {}
    for pattern, intents, penalty in NEGATION_PENALTIES:
        if pattern.search(text):
            for intent in intents:
                penalties[intent] = penalties.get(intent, 0.0) + penalty
    return penalties


def apply_negation(text: str, scores: Dict[Intent, float]) -> Dict[Intent, float]:
    result = dict(scores)
    for intent, penalty in negation_penalties(text).items():
        if intent in result:
            result[intent] = max(0.0, result[intent] - penalty)
    return result
