import pytest

from promptforge.core.models import Intent, TaskCategory
from promptforge.core.patterns import (
    apply_co_occurrence,
    apply_disambiguation,
    apply_negation,
    detect_signals,
    match_keyword,
    match_multilingual,
    match_word_boundary,
    negation_penalties,
    position_weight,
    score_matches,
    INTENT_KEYWORDS,
)


def test_english_keywords_need_word_boundaries():
    assert not match_keyword("authentication flow", "then")
    assert match_keyword("do it, then test", "then")
    assert match_word_boundary("Fix the bug", "fix")


def test_korean_keywords_match_as_substrings():
    assert match_keyword("로그인 기능을 만들어줘", "만들어")
    assert match_keyword("버그를 고쳐주세요", "고쳐")


def test_keywords_are_escaped():
    assert match_word_boundary("use a.b here", "a.b")
    assert not match_word_boundary("use axb here", "a.b")


def test_position_weight():
    assert position_weight("fix the login bug please now", "fix") == 1.5
    assert position_weight("please look at this and fix", "fix") == 1.0
    assert position_weight("", "fix") == 1.0


def test_position_weight_ignores_substrings_of_longer_words():
    text = "authentication flow for the signup page breaks and we then retry"
    assert position_weight(text, "then") == 1.0
    assert match_multilingual(text, INTENT_KEYWORDS[Intent.INSTRUCTION]) == [("then", 1.0)]
    assert position_weight("로그인을 먼저 고쳐줘", "먼저") == 1.0
    assert position_weight("먼저 로그인을 고쳐줘", "먼저") == 1.5


def test_match_multilingual_and_scoring():
    hits = match_multilingual("create a button then 만들어", INTENT_KEYWORDS[Intent.COMMAND])
    keywords = [kw for kw, _ in hits]
    # Korean entries are checked before English ones
    assert keywords == ["만들어", "create"]
    base, bonus = score_matches(hits)
    assert base == 2.0
    assert bonus == pytest.approx(0.5)


def test_negation_penalties_stack():
    penalties = negation_penalties("don't create a new file")
    assert penalties[Intent.COMMAND] == pytest.approx(0.8)
    assert penalties[Intent.INSTRUCTION] == pytest.approx(0.3)
    assert Intent.QUESTION not in penalties


def test_apply_negation_floors_at_zero():
    scores = {Intent.COMMAND: 0.5, Intent.QUESTION: 1.0}
    result = apply_negation("don't create it", scores)
    assert result[Intent.COMMAND] == 0.0
    assert result[Intent.QUESTION] == 1.0
    assert scores[Intent.COMMAND] == 0.5


def test_disambiguation_boosts_first_matching_resolution():
    scores = {TaskCategory.BUG_FIX: 1.0, TaskCategory.CODE_GENERATION: 1.0}
    result = apply_disambiguation("fix the error in the new feature", scores)
    assert result[TaskCategory.BUG_FIX] == pytest.approx(1.4)
    assert result[TaskCategory.CODE_GENERATION] == 1.0
    assert scores[TaskCategory.BUG_FIX] == 1.0


def test_disambiguation_needs_two_active_categories():
    scores = {TaskCategory.BUG_FIX: 1.0, TaskCategory.CODE_GENERATION: 0.0}
    assert apply_disambiguation("fix the error", scores) == scores


def test_co_occurrence_bonus():
    result = apply_co_occurrence("fix this bug", {})
    assert result == {TaskCategory.BUG_FIX: pytest.approx(0.3)}


def test_detect_signals():
    result = detect_signals("thanks, that works perfectly")
    assert "positive" in result["signals"]
    assert "thanks" in result["keywords"]
    assert 0 < result["confidence"] <= 1.0

    assert detect_signals("zzz")["signals"] == []
    assert detect_signals("zzz")["confidence"] == 0.0


def test_detect_signals_subset():
    result = detect_signals("다시 해줘, 이거 틀렸어", ["retry"])
    assert result["signals"] == ["retry"]
