from promptforge.core.features import (
    detect_language,
    estimate_complexity,
    extract_features,
    has_code_block,
    has_file_path,
    has_url,
)
from promptforge.core.models import Complexity, LanguageHint, SessionContext


def test_detect_language():
    assert detect_language("로그인 기능 만들어줘") == LanguageHint.KO
    assert detect_language("fix the bug in auth.py") == LanguageHint.EN
    assert detect_language("React 컴포넌트 만들어줘") == LanguageHint.MIXED


def test_detect_language_empty_defaults_to_english():
    assert detect_language("") == LanguageHint.EN
    assert detect_language("   \n ") == LanguageHint.EN


def test_code_path_and_url_detection():
    assert has_code_block("call `load()` first")
    assert has_code_block("```py\nprint(1)\n```")
    assert not has_code_block("plain words only")

    assert has_file_path("edit src/app.ts please")
    assert has_file_path("look at settings.yaml")
    assert not has_file_path("hello world")

    assert has_url("see https://example.com/docs")
    assert not has_url("no links here")


def test_complexity_from_length_and_triggers():
    assert estimate_complexity("hi") == Complexity.SIMPLE
    assert estimate_complexity("fix it") == Complexity.MEDIUM
    assert estimate_complexity("refactor the module") == Complexity.COMPLEX
    assert estimate_complexity("security review") == Complexity.ADVANCED
    assert estimate_complexity("a " * 300) == Complexity.ADVANCED


def test_trigger_never_lowers_length_bucket():
    text = "fix " + "x" * 600
    assert estimate_complexity(text) == Complexity.ADVANCED


def test_session_context_upgrades_complexity():
    busy = SessionContext(recent_files=["a.py", "b.py", "c.py"])
    assert estimate_complexity("hi", busy) == Complexity.MEDIUM

    tasked = SessionContext(current_task="implement login flow")
    assert estimate_complexity("hi", tasked) == Complexity.MEDIUM

    idle = SessionContext(current_task="idle")
    assert estimate_complexity("hi", idle) == Complexity.SIMPLE

    assert estimate_complexity("security audit", busy) == Complexity.ADVANCED


def test_extract_features_is_total():
    features = extract_features("")
    assert features.word_count == 0
    assert features.length == 0
    assert features.complexity == Complexity.SIMPLE
    assert features.language_hint == LanguageHint.EN
    assert not features.has_question_mark


def test_extract_features_punctuation():
    features = extract_features("why does it crash? help!")
    assert features.has_question_mark
    assert features.has_exclamation_mark
    assert features.word_count == 5
