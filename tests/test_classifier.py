import json

from promptforge.core.classifier import (
    category_label,
    classification_stats,
    classify,
    classify_many,
    intent_label,
)
from promptforge.core.models import Intent, LanguageHint, TaskCategory


def test_korean_command_is_code_generation():
    result = classify("로그인 기능 만들어줘")
    assert result.intent == Intent.COMMAND
    assert result.task_category == TaskCategory.CODE_GENERATION
    assert result.features.language_hint == LanguageHint.KO
    assert "만들어" in result.matched_keywords


def test_question_mark_bonus():
    result = classify("Why does this function throw a TypeError?")
    assert result.intent == Intent.QUESTION
    assert result.intent_score_details[Intent.QUESTION].question_mark == 2.0
    assert result.intent_confidence <= 0.95


def test_bug_fix_prompt():
    result = classify("fix the bug in the login page")
    assert result.intent == Intent.COMMAND
    assert result.task_category == TaskCategory.BUG_FIX
    assert 0 < result.category_confidence <= 0.95


def test_matched_keywords_are_deduplicated():
    result = classify("fix the bug")
    assert result.matched_keywords.count("fix") == 1


def test_no_keywords_falls_back():
    result = classify("hmm")
    assert result.intent == Intent.COMMAND
    assert result.intent_confidence == 0.4
    assert result.task_category == TaskCategory.UNKNOWN
    assert result.category_confidence == 0.2


def test_long_prompt_without_keywords_is_instruction():
    result = classify("lorem ipsum " * 20)
    assert result.intent == Intent.INSTRUCTION
    assert result.intent_confidence == 0.45


def test_empty_prompt_is_total():
    result = classify("")
    assert result.intent == Intent.COMMAND
    assert result.task_category == TaskCategory.UNKNOWN
    assert result.matched_keywords == []


def test_command_wins_tie_with_question():
    result = classify("please please please create how")
    assert result.intent == Intent.COMMAND


def test_secondary_categories():
    result = classify("fix the bug and write unit tests")
    assert result.task_category == TaskCategory.BUG_FIX
    secondary = [s.category for s in result.multi_label.secondary]
    assert TaskCategory.TESTING in secondary
    assert len(secondary) <= 2
    for score in result.multi_label.secondary:
        assert score.confidence <= 0.9


def test_full_width_text_is_normalized():
    result = classify("ｆｉｘ the bug")
    assert result.task_category == TaskCategory.BUG_FIX


def test_classification_is_json_serializable():
    payload = classify("로그인 기능 만들어줘").to_dict()
    text = json.dumps(payload, ensure_ascii=False)
    assert '"intent": "command"' in text
    assert payload["features"]["complexity"] in ("simple", "medium", "complex", "advanced")


def test_labels():
    assert intent_label(Intent.QUESTION) == "Question"
    assert category_label(TaskCategory.BUG_FIX) == "Bug fix"


def test_classify_many_and_stats():
    results = classify_many(["fix the bug", "로그인 기능 만들어줘", "hmm"])
    stats = classification_stats(results)
    assert stats["count"] == 3
    assert stats["intent_distribution"]["command"] == 3
    assert sum(stats["category_distribution"].values()) == 3
    assert 0 < stats["avg_intent_confidence"] <= 0.95

    assert classification_stats([])["count"] == 0


def test_word_boundary_regression():
    result = classify("How do I implement authentication?")
    assert "how" in result.matched_keywords
    assert "implement" in result.matched_keywords
    assert "then" not in result.matched_keywords
