"""
features.py - Feature extraction from raw prompt text

This module handles:
- Language hint from Hangul/Latin character ratios
- Code block, file path, URL and punctuation detection
- Complexity bucketing by length, trigger keywords and session context

extract_features() is total: every string, including "", yields a value.
"""

import re
from typing import Optional

from promptforge.core.models import Complexity, Features, LanguageHint, SessionContext
from promptforge.utils.config import AnalysisConfig, DEFAULT_ANALYSIS_CONFIG
from promptforge.utils.text_processing import (
    count_hangul,
    count_latin,
    count_non_whitespace,
    count_words,
)

FENCED_CODE_RE = re.compile(r"```[\s\S]*?```")
INLINE_CODE_RE = re.compile(r"`[^`\n]+`")
FILE_PATH_RES = (
    re.compile(r"[/\\][\w.-]+\.[a-z]+", re.IGNORECASE),
    re.compile(r"\bsrc/"),
    re.compile(r"\b[\w-]+\.(?:py|ts|tsx|js|jsx|go|rs|java|rb|json|ya?ml|toml|md)\b", re.IGNORECASE),
)
URL_RE = re.compile(r"https?://", re.IGNORECASE)

# Checked strongest first; a trigger can only raise the length bucket.
COMPLEXITY_TRIGGERS = (
    (Complexity.ADVANCED, re.compile(
        r"architecture|security|migration|performance|아키텍처|설계|보안|마이그레이션|성능\s*최적화|시스템|전체\s*구조",
        re.IGNORECASE)),
    (Complexity.COMPLEX, re.compile(
        r"refactor|multiple\s*files|comprehensive|리팩토링|여러\s*파일|전체|테스트\s*작성|리뷰",
        re.IGNORECASE)),
    (Complexity.MEDIUM, re.compile(
        r"create|implement|fix|만들어|구현|생성|수정|고쳐|버그|에러",
        re.IGNORECASE)),
)


def detect_language(text: str, config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> LanguageHint:
    """Classify the dominant script; ties and empty text fall back to English."""
    non_ws = count_non_whitespace(text)
    if non_ws == 0:
        return LanguageHint.EN
    ko_ratio = count_hangul(text) / non_ws
    en_ratio = count_latin(text) / non_ws
    if ko_ratio >= config.mixed_script_ratio and en_ratio >= config.mixed_script_ratio:
        return LanguageHint.MIXED
    return LanguageHint.KO if ko_ratio > en_ratio else LanguageHint.EN


def has_code_block(text: str) -> bool:
    if FENCED_CODE_RE.search(text):
        return True
    return len(INLINE_CODE_RE.findall(text)) >= 1


def has_file_path(text: str) -> bool:
    return any(p.search(text) for p in FILE_PATH_RES)


def has_url(text: str) -> bool:
    return URL_RE.search(text) is not None


def estimate_complexity(text: str,
                        session_context: Optional[SessionContext] = None,
                        config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> Complexity:
    """Bucket the prompt by length, then let keywords and context push it up.

    Args:
        text: Prompt text
        session_context: Optional workspace facts; more than two recent files
            or an active task upgrades the result by one level
        config: Length thresholds

    Returns:
        The complexity bucket, never above ADVANCED
    """
    length = len(text)
    if length > config.advanced_length:
        level = Complexity.ADVANCED
    elif length >= config.complex_length:
        level = Complexity.COMPLEX
    elif length >= config.medium_length:
        level = Complexity.MEDIUM
    else:
        level = Complexity.SIMPLE

    for floor, pattern in COMPLEXITY_TRIGGERS:
        if pattern.search(text):
            level = Complexity.at_least(level, floor)
            break

    if session_context is not None:
        if len(session_context.recent_files) > 2 or session_context.has_active_task:
            level = level.upgraded()
    return level


def extract_features(text: str,
                     session_context: Optional[SessionContext] = None,
                     config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> Features:
    return Features(
        language_hint=detect_language(text, config),
        has_code_block=has_code_block(text),
        has_file_path=has_file_path(text),
        has_url=has_url(text),
        has_question_mark="?" in text or "？" in text,
        has_exclamation_mark="!" in text,
        word_count=count_words(text),
        length=len(text),
        complexity=estimate_complexity(text, session_context, config),
    )
