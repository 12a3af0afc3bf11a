#!/usr/bin/env python
"""
io_helpers.py – BOM-safe UTF-8 reading plus prompt/context file loaders.

All project code should read user files through these helpers instead of
calling Path.read_text() directly.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

import yaml

from promptforge.utils.text_processing import normalize_text

BOM = b"\xef\xbb\xbf"


# ── public API ─────────────────────────────────────────────────────────────
def read_utf8(path: Path) -> str:
    """
    Return file contents decoded as UTF-8 with any BOM stripped.
    Falls back to a replacing decode plus normalization for damaged files.
    """
    raw = Path(path).read_bytes()
    if raw.startswith(BOM):
        raw = raw[len(BOM):]
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return normalize_text(raw.decode("utf-8", errors="replace"))


def write_utf8(path: Path, text: str) -> None:
    """Write text as UTF-8, creating parent folders as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def load_structured(path: Path) -> Any:
    """Load a JSON or YAML document, chosen by file suffix."""
    path = Path(path)
    text = read_utf8(path)
    if path.suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text)
    return json.loads(text)


def read_prompts(path: Path) -> List[str]:
    """
    Load a batch of prompts.

    - ``.jsonl``: one JSON value per line; strings, or objects with a
      ``prompt`` / ``text`` key
    - ``.json`` / ``.yaml``: a list of the same shapes
    - anything else: prompts separated by blank lines
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".jsonl":
        items = [json.loads(line) for line in read_utf8(path).splitlines() if line.strip()]
    elif suffix in (".json", ".yaml", ".yml"):
        items = load_structured(path) or []
        if not isinstance(items, list):
            raise ValueError(f"Expected a list of prompts in {path}")
    else:
        blocks = read_utf8(path).replace("\r\n", "\n").split("\n\n")
        return [b.strip() for b in blocks if b.strip()]

    prompts = []
    for item in items:
        if isinstance(item, str):
            prompts.append(item)
        elif isinstance(item, dict):
            value = item.get("prompt") or item.get("text")
            if isinstance(value, str):
                prompts.append(value)
    return [p for p in prompts if p.strip()]


def load_mapping(path: Path) -> Dict[str, Any]:
    """Load a JSON/YAML document that must be a mapping."""
    data = load_structured(path)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {path}")
    return data
