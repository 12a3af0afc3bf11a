"""
text_processing.py - Text normalization and measurement utilities

Provides the small text helpers shared by the analysis modules.
"""

import re
import unicodedata
from typing import List
from ftfy import fix_text

HANGUL_RE = re.compile(r"[가-힣]")
LATIN_RE = re.compile(r"[A-Za-z]")


def normalize_text(text: str) -> str:
    """Repair mojibake and apply NFKC normalization.

    Full-width Latin letters and broken UTF-8 sequences are folded back into
    the forms the keyword tables are written in.

    Args:
        text: Raw prompt text

    Returns:
        Normalized text with unified line endings
    """
    if not text:
        return ""
    repaired = fix_text(text)
    return unicodedata.normalize("NFKC", repaired.replace("\r\n", "\n"))


def split_words(text: str) -> List[str]:
    """Split on whitespace, dropping empty tokens."""
    return [w for w in re.split(r"\s+", text) if w]


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens."""
    return len(split_words(text))


def count_non_whitespace(text: str) -> int:
    return sum(1 for ch in text if not ch.isspace())


def count_hangul(text: str) -> int:
    return len(HANGUL_RE.findall(text))


def count_latin(text: str) -> int:
    return len(LATIN_RE.findall(text))


def contains_hangul(text: str) -> bool:
    return HANGUL_RE.search(text) is not None


def snippet(text: str, limit: int = 50) -> str:
    """Return ``text`` unchanged if short enough, else its head plus '...'.

    Args:
        text: Source text
        limit: Maximum characters kept before the ellipsis

    Returns:
        Evidence-sized excerpt
    """
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def truncate(text: str, limit: int) -> str:
    """Hard cut without an ellipsis (used for context lines)."""
    return text[:limit]


def basename(path: str) -> str:
    """Last component of a slash- or backslash-separated path."""
    parts = re.split(r"[/\\]", path.rstrip("/\\"))
    return parts[-1] if parts and parts[-1] else path
