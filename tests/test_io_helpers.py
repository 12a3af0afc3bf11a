import json

import pytest

from promptforge.utils.io_helpers import load_mapping, read_prompts, read_utf8, write_utf8
from promptforge.utils.text_processing import basename, normalize_text, snippet


def test_read_utf8_strips_bom(tmp_path):
    path = tmp_path / "bom.txt"
    path.write_bytes(b"\xef\xbb\xbf" + "로그인 기능".encode("utf-8"))
    assert read_utf8(path) == "로그인 기능"


def test_write_utf8_creates_parents(tmp_path):
    path = tmp_path / "nested" / "out.txt"
    write_utf8(path, "hello")
    assert path.read_text(encoding="utf-8") == "hello"


def test_read_prompts_jsonl(tmp_path):
    path = tmp_path / "prompts.jsonl"
    lines = [json.dumps("fix the bug"), json.dumps({"prompt": "로그인 기능 만들어줘"}),
             "", json.dumps({"text": "explain asyncio"}), json.dumps({"other": 1})]
    path.write_text("\n".join(lines), encoding="utf-8")
    assert read_prompts(path) == ["fix the bug", "로그인 기능 만들어줘", "explain asyncio"]


def test_read_prompts_yaml_and_text(tmp_path):
    yaml_path = tmp_path / "prompts.yaml"
    yaml_path.write_text("- fix the bug\n- prompt: add tests\n", encoding="utf-8")
    assert read_prompts(yaml_path) == ["fix the bug", "add tests"]

    txt_path = tmp_path / "prompts.txt"
    txt_path.write_text("first prompt\nsecond line\n\n\nsecond prompt\n", encoding="utf-8")
    assert read_prompts(txt_path) == ["first prompt\nsecond line", "second prompt"]


def test_read_prompts_rejects_non_list(tmp_path):
    path = tmp_path / "prompts.json"
    path.write_text('{"prompt": "x"}', encoding="utf-8")
    with pytest.raises(ValueError):
        read_prompts(path)


def test_load_mapping_requires_mapping(tmp_path):
    path = tmp_path / "ctx.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_mapping(path)


def test_text_helpers():
    assert normalize_text("ｆｉｘ\r\nit") == "fix\nit"
    assert normalize_text("") == ""
    assert snippet("x" * 60, 50) == "x" * 50 + "..."
    assert snippet("short", 50) == "short"
    assert basename("C:\\work\\app\\main.py") == "main.py"
    assert basename("/work/app/") == "app"
