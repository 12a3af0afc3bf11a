"""
prompts.py - Messages sent to generation providers and parsing of replies

This module handles:
- REWRITE_SYSTEM_PROMPT, shared by every provider
- build_user_message(): original prompt, GOLDEN scores, top issues and the
  session context the model should fold into its rewrite
- parse_generation(): JSON-or-plain-text reply parsing
"""

import json
import re
import textwrap
from dataclasses import dataclass, field
from typing import List, Optional

from promptforge.core.models import GOLDENScore, GuidelineEvaluation, SessionContext
from promptforge.utils.text_processing import basename, truncate

REWRITE_SYSTEM_PROMPT = textwrap.dedent("""\
    You are a prompt engineering expert. Analyze the user's prompt and produce an
    improved version that can be used immediately.

    ## GOLDEN checklist

    ### G - Goal
    Use a concrete verb and a concrete target, and state when the task is done.
    Before: "make a login feature"
    After: "Implement email/password login with Firebase Auth, including error
    handling and a loading state."

    ### O - Output
    Say what shape the answer takes: code, explanation, step-by-step guide, and
    which parts to include (types, imports, comments).

    ### L - Limits
    Name the tech stack, the style to follow and anything to avoid.

    ### D - Data
    Provide the current environment, error messages, relevant code and why the
    task is needed.

    ### E - Evaluation
    State how success is checked: build passes, tests pass, performance or
    security requirements.

    ### N - Next
    Mention what happens with the result and any follow-up work.

    ## Rewriting rules

    1. Never use placeholders such as "[insert code]" or "[describe project]".
       If information is missing, leave that part out. Use real values from the
       session context instead.
    2. Preserve the original intent completely. Only fill in what is missing.
    3. Keep the language of the input: Korean prompts stay Korean, English
       prompts stay English. Code and technical terms may stay as written.
    4. Integrate the project name, tech stack, current task, files and branch
       from the session context naturally.
    5. Stay concise: at most twice the length of the original.

    ## Output format

    Respond with JSON only:
    {
      "rewrittenPrompt": "the full improved prompt",
      "explanation": "the main improvements in one or two sentences",
      "improvements": ["improvement 1", "improvement 2", "improvement 3"]
    }""")

DIMENSION_NAMES = (
    ("goal", "Goal"),
    ("output", "Output"),
    ("limits", "Limits"),
    ("data", "Data"),
    ("evaluation", "Evaluation"),
    ("next", "Next"),
)

JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class Generation:
    """One provider reply after parsing."""
    text: str
    explanation: Optional[str] = None
    improvements: List[str] = field(default_factory=list)


def _score_mark(score: int) -> str:
    if score >= 70:
        return "✓"
    if score >= 40:
        return "△"
    return "✗"


def _score_lines(golden: GOLDENScore) -> List[str]:
    lines = []
    for key, label in DIMENSION_NAMES:
        score = round(getattr(golden, key) * 100)
        lines.append(f"  {_score_mark(score)} {label}: {score}")
    return lines


def _issue_lines(evaluation: GuidelineEvaluation, limit: int = 4) -> List[str]:
    weak = [g for g in evaluation.guideline_scores if g.score < 0.5]
    lines = []
    for i, g in enumerate(weak[:limit], start=1):
        severity = "high" if g.score < 0.3 else "medium"
        lines.append(f"{i}. [{severity}] {g.name}: {g.description}\n   → {g.suggestion}")
    return lines


def _context_lines(ctx: SessionContext) -> List[str]:
    lines = []
    if ctx.project_path:
        lines.append(f"- Project: {ctx.project_name}")
    if ctx.tech_stack:
        lines.append(f"- Tech stack: {', '.join(ctx.tech_stack)}")
    if ctx.has_active_task:
        lines.append(f"- Current task: {truncate(ctx.current_task, 80)}")
    if ctx.recent_files:
        lines.append("- Recent files: " + ", ".join(basename(f) for f in ctx.recent_files[:3]))
    if ctx.recent_tools:
        lines.append("- Recent tools: " + ", ".join(ctx.recent_tools[:3]))
    if ctx.has_feature_branch:
        lines.append(f"- Branch: {ctx.git_branch}")
    last = ctx.last_exchange
    if last is not None:
        if last.user_message:
            lines.append(f"- Previous request: {last.user_message}")
        if last.assistant_summary:
            lines.append(f"- Previous answer: {last.assistant_summary}")
        if last.assistant_files:
            lines.append("- Files changed: " + ", ".join(basename(f) for f in last.assistant_files[:3]))
        if last.assistant_tools:
            lines.append("- Tools used: " + ", ".join(last.assistant_tools[:3]))
    return lines


def build_user_message(original: str, evaluation: GuidelineEvaluation,
                       session_context: Optional[SessionContext] = None) -> str:
    """Compose the rewrite request for one prompt.

    Args:
        original: The prompt to rewrite
        evaluation: Its evaluation; supplies GOLDEN scores and weak guidelines
        session_context: Optional workspace facts

    Returns:
        The user message text
    """
    parts = [f'Original prompt:\n"""\n{original}\n"""']
    parts.append("GOLDEN scores:\n" + "\n".join(_score_lines(evaluation.golden_score)))

    issues = _issue_lines(evaluation)
    if issues:
        parts.append("Issues found:\n" + "\n".join(issues))

    if session_context is not None:
        lines = _context_lines(session_context)
        if lines:
            parts.append("Session context:\n" + "\n".join(lines))

    parts.append("Improve the prompt above according to the GOLDEN checklist.\n"
                 "Write it ready to use, without placeholders.")
    return "\n\n".join(parts)


def parse_generation(raw: str) -> Generation:
    """
    Extract ``rewrittenPrompt`` / ``explanation`` / ``improvements`` from the
    first JSON object in the reply. Anything that is not such an object is
    taken verbatim as the rewritten prompt.
    """
    raw = (raw or "").strip()
    match = JSON_OBJECT_RE.search(raw)
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("rewrittenPrompt"), str):
            improvements = data.get("improvements") or []
            return Generation(
                text=data["rewrittenPrompt"].strip(),
                explanation=data.get("explanation") if isinstance(data.get("explanation"), str) else None,
                improvements=[str(i) for i in improvements] if isinstance(improvements, list) else [],
            )
    return Generation(text=raw)
