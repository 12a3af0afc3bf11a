from dataclasses import replace

from promptforge.core.classifier import classify
from promptforge.core.golden import calculate_golden_score, evaluate
from promptforge.core.models import SessionContext, TaskCategory, VariantKind
from promptforge.core.rewriting.templates import (
    build_template_candidate,
    extract_code,
    extract_core_request,
    extract_error,
    render,
    tech_stack_constraints,
)

TS_CONTEXT = SessionContext(
    project_path="/work/my-app",
    tech_stack=["TypeScript", "React"],
    current_task="build the signup flow",
    recent_files=["src/pages/login.tsx"],
    git_branch="feature/login",
)


def rendered(text, context=None):
    return render(text, classify(text, context), evaluate(text), context)


def test_extract_core_request_drops_greeting_and_conjunction():
    assert extract_core_request("안녕하세요, 그리고 로그인 만들어줘") == "로그인 만들어줘"
    assert extract_core_request("Hello, add a logout button") == "add a logout button"


def test_extract_error_and_code():
    text = "it fails with TypeError: x is undefined\nwhen I click `save()` and `load()`"
    assert extract_error(text) == "TypeError: x is undefined"
    assert extract_code(text) == "`save()`, `load()`"
    assert extract_code("```js\nfoo()\n```\nand `bar`") == "```js\nfoo()\n```"
    assert extract_error("all good") is None
    assert extract_code("no code") is None


def test_tech_stack_constraints_limited_to_three():
    assert tech_stack_constraints(["TypeScript", "React"]) == [
        "Keep type safety", "Stay compatible with strict mode", "Use function components",
    ]
    assert tech_stack_constraints(["Cobol"]) == []


def test_bug_fix_template():
    text = "fix the bug: TypeError: x is undefined"
    assert classify(text).task_category == TaskCategory.BUG_FIX
    out = rendered(text)
    assert "<error_context>\nError message: TypeError: x is undefined" in out
    assert "<task>" in out
    assert "<expected_behavior>" in out
    assert "<success_criteria>" in out
    assert "[" not in out


def test_code_generation_template_uses_session_context():
    text = "로그인 기능 만들어줘"
    out = rendered(text, TS_CONTEXT)
    assert "Project: my-app (TypeScript, React)" in out
    assert "Branch: feature/login" in out
    assert "Keep type safety" in out
    assert "Interface and type definitions" in out


def test_code_generation_without_context_omits_context_section():
    out = rendered("로그인 기능 만들어줘")
    assert "<context>" not in out
    assert "<task>\n로그인 기능 만들어줘\n</task>" in out


def test_refactoring_without_code_omits_current_code():
    text = "refactor the payment module for readability"
    assert classify(text).task_category == TaskCategory.REFACTORING
    out = rendered(text)
    assert out.startswith("think hard")
    assert "<current_code>" not in out
    assert "- Improve readability" in out


def test_generic_template_adds_weak_sections():
    text = "update the readme guide"
    assert classify(text).task_category == TaskCategory.DOCUMENTATION
    out = rendered(text)
    assert "<task>\nupdate the readme guide\n</task>" in out
    assert "<output_format>" in out
    assert "<success_criteria>" in out


def test_candidate_fields():
    text = "로그인 기능 만들어줘"
    candidate = build_template_candidate(text, classify(text), evaluate(text), TS_CONTEXT)
    assert candidate.variant_kind == VariantKind.TEMPLATE
    assert not candidate.is_ai_generated
    assert 0.30 <= candidate.confidence <= 0.95
    assert len(candidate.key_changes) <= 5
    assert len(set(candidate.key_changes)) == len(candidate.key_changes)
    assert "Tech stack applied" in candidate.key_changes


def test_already_good_prompt_is_returned_unchanged():
    text = "로그인 기능 만들어줘"
    evaluation = replace(evaluate(text), overall_score=0.9)
    candidate = build_template_candidate(text, classify(text), evaluation)
    assert candidate.text == text
    assert candidate.confidence == 0.95
    assert candidate.key_changes == ["Prompt is already well written"]


def test_template_output_does_not_lower_targeted_dimensions():
    text = "update the readme guide"
    before = evaluate(text).golden_score
    after = calculate_golden_score(rendered(text))
    assert before.output < 0.5 and before.evaluation < 0.5
    assert after.output >= before.output
    assert after.evaluation >= before.evaluation
