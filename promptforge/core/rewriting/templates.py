"""
templates.py - Category-aware structured rewrites

This module handles:
- Extracting the core request, error message and code from a prompt
- Bespoke section templates for bug-fix, code-generation, refactoring and
  explanation prompts
- A generic XML structurer for every other category, whose output-format and
  success-criteria sections only appear when the matching GOLDEN dimension
  is weak
- build_template_candidate(): the always-available RewriteResult

A section generator returns None to omit its section; no placeholder text is
ever emitted.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from promptforge.core.classifier import category_label
from promptforge.core.features import estimate_complexity
from promptforge.core.models import (
    Classification,
    Complexity,
    GuidelineEvaluation,
    RewriteResult,
    SessionContext,
    TaskCategory,
    VariantKind,
)
from promptforge.core.rewriting.confidence import ConfidenceFactors, calibrated_confidence_for
from promptforge.utils.config import DEFAULT_REWRITER_CONFIG, RewriterConfig
from promptforge.utils.text_processing import basename, normalize_text, truncate

C = TaskCategory

GREETING_RE = re.compile(r"^(?:안녕하세요|안녕|hi|hello|hey)[\s,]*", re.IGNORECASE)
CONJUNCTION_RE = re.compile(r"^(?:그래서|그리고|그런데|근데|그럼)[\s,]*", re.IGNORECASE)
ERROR_RE = re.compile(r"(?:Error|에러|오류|TypeError|SyntaxError|ReferenceError)[:\s][^\n]+", re.IGNORECASE)
STACK_RE = re.compile(r"at\s+\w+.*\(.*:\d+:\d+\)")
FENCED_RE = re.compile(r"```[\s\S]*?```")
INLINE_RE = re.compile(r"`[^`]+`")
EXPECTED_RE = re.compile(r"(?:expected|should|원래|기대|해야|되어야)[^.。]*[.。]", re.IGNORECASE)

THINK_HINTS = {
    Complexity.MEDIUM: "think",
    Complexity.COMPLEX: "think hard",
    Complexity.ADVANCED: "think harder",
}

TECH_CONSTRAINTS: Dict[str, Tuple[str, ...]] = {
    "TypeScript": ("Keep type safety", "Stay compatible with strict mode"),
    "React": ("Use function components", "Follow hooks conventions"),
    "Vue": ("Use the Composition API style",),
    "Next.js": ("Stay compatible with the App Router", "Account for server-side rendering"),
    "Firebase": ("Respect security rules", "Keep usage costs down"),
    "Tailwind CSS": ("Reuse the existing theme",),
    "Electron": ("Keep main and renderer processes separated",),
    "Node.js": ("Use async/await",),
    "Vite": ("Keep HMR working",),
    "Python": ("Follow PEP 8", "Add type hints to new functions"),
    "Django": ("Follow Django app conventions",),
    "FastAPI": ("Declare request and response models",),
}

CATEGORY_CONSTRAINTS: Dict[TaskCategory, Tuple[str, ...]] = {
    C.CODE_GENERATION: ("Follow the existing code style",),
    C.BUG_FIX: ("Minimize side effects",),
    C.REFACTORING: ("Preserve existing behavior",),
    C.CODE_REVIEW: ("Reference concrete line numbers",),
    C.TESTING: ("Cover edge cases",),
}

OUTPUT_FORMATS: Dict[TaskCategory, Tuple[str, ...]] = {
    C.CODE_GENERATION: ("Complete implementation code, including imports", "Explanation of the key logic"),
    C.BUG_FIX: ("Root cause analysis", "Fixed code", "How to prevent a recurrence"),
    C.CODE_REVIEW: ("Issues ranked by severity", "Improved code examples"),
    C.REFACTORING: ("Refactored code", "Reason for each change"),
    C.EXPLANATION: ("Step-by-step explanation", "Code examples"),
    C.TESTING: ("Test code", "Coverage considerations"),
    C.GENERAL: ("A concrete deliverable",),
}

SUCCESS_CRITERIA: Dict[TaskCategory, str] = {
    C.CODE_GENERATION: "Verify the code runs and the feature works",
    C.BUG_FIX: "Verify the error is resolved and a reproduction test passes",
    C.CODE_REVIEW: "Verify every finding has been checked",
    C.REFACTORING: "Verify existing behavior is preserved and tests pass",
    C.EXPLANATION: "Verify the concept can be applied to a real example",
    C.TESTING: "Verify tests pass and coverage goals are met",
    C.GENERAL: "Verify the request is fully satisfied",
}


# ── text extraction ──────────────────────────────────────────────────────────
def extract_core_request(text: str) -> str:
    """Drop a leading greeting and a leading conjunction."""
    cleaned = GREETING_RE.sub("", text.strip(), count=1)
    cleaned = CONJUNCTION_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def extract_error(text: str) -> Optional[str]:
    match = ERROR_RE.search(text)
    if match:
        return match.group(0).strip()
    match = STACK_RE.search(text)
    return match.group(0) if match else None


def extract_code(text: str) -> Optional[str]:
    """The first fenced block, else every inline span joined with ', '."""
    match = FENCED_RE.search(text)
    if match:
        return match.group(0)
    spans = INLINE_RE.findall(text)
    return ", ".join(spans) if spans else None


def tech_stack_constraints(tech_stack: Sequence[str], limit: int = 3) -> List[str]:
    constraints: List[str] = []
    for tech in tech_stack:
        constraints.extend(TECH_CONSTRAINTS.get(tech, ()))
    return constraints[:limit]


def output_format_for(category: TaskCategory) -> Tuple[str, ...]:
    return OUTPUT_FORMATS.get(category, OUTPUT_FORMATS[C.GENERAL])


def success_criteria_for(category: TaskCategory) -> List[str]:
    items = [SUCCESS_CRITERIA.get(category, SUCCESS_CRITERIA[C.GENERAL])]
    if category in (C.CODE_GENERATION, C.BUG_FIX):
        items.append("No type errors or new exceptions")
    if category == C.TESTING:
        items.append("All tests pass")
    return items


def think_hint(complexity: Complexity) -> Optional[str]:
    return THINK_HINTS.get(complexity)


def _bullets(items: Sequence[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _respond_in(items: Sequence[str]) -> str:
    return "Respond in this format:\n" + _bullets(items)


# ── template context ─────────────────────────────────────────────────────────
@dataclass(frozen=True)
class TemplateContext:
    original: str
    core_request: str
    category: TaskCategory
    evaluation: GuidelineEvaluation
    complexity: Complexity
    session_context: Optional[SessionContext] = None
    extracted_code: Optional[str] = None
    extracted_error: Optional[str] = None
    tech_stack: List[str] = field(default_factory=list)


def create_template_context(text: str, classification: Classification,
                            evaluation: GuidelineEvaluation,
                            session_context: Optional[SessionContext] = None) -> TemplateContext:
    original = normalize_text(text).strip()
    return TemplateContext(
        original=original,
        core_request=extract_core_request(original),
        category=classification.task_category,
        evaluation=evaluation,
        complexity=estimate_complexity(original, session_context),
        session_context=session_context,
        extracted_code=extract_code(original),
        extracted_error=extract_error(original),
        tech_stack=list(session_context.tech_stack) if session_context else [],
    )


Generator = Callable[[TemplateContext], Optional[str]]


@dataclass(frozen=True)
class CategoryTemplate:
    sections: Tuple[Tuple[str, Generator], ...]
    quality_factors: Tuple[str, ...] = ()


# ── bug-fix sections ─────────────────────────────────────────────────────────
def _error_context(ctx: TemplateContext) -> Optional[str]:
    lines = []
    if ctx.extracted_error:
        lines.append(f"Error message: {ctx.extracted_error}")
    if ctx.session_context and ctx.session_context.recent_files:
        lines.append(f"Location: {basename(ctx.session_context.recent_files[0])}")
    if ctx.extracted_code:
        lines.append(f"Related code:\n{ctx.extracted_code}")
    return "\n".join(lines) or None


def _expected_behavior(ctx: TemplateContext) -> str:
    match = EXPECTED_RE.search(ctx.original)
    return match.group(0).strip() if match else "Normal, error-free behavior"


def _bug_fix_constraints(ctx: TemplateContext) -> str:
    items = ["Minimize side effects", "Keep existing behavior intact"]
    if "TypeScript" in ctx.tech_stack:
        items.append("Keep type safety")
    return _bullets(items)


# ── code-generation sections ─────────────────────────────────────────────────
def _project_context(ctx: TemplateContext) -> Optional[str]:
    sc = ctx.session_context
    if sc is None:
        return None
    lines = []
    if ctx.tech_stack:
        lines.append(f"Project: {sc.project_name} ({', '.join(ctx.tech_stack)})")
    else:
        lines.append(f"Project: {sc.project_name}")
    if sc.has_active_task:
        lines.append(f"Current task: {truncate(sc.current_task, 60)}")
    if sc.has_feature_branch:
        lines.append(f"Branch: {sc.git_branch}")
    return "\n".join(lines)


def _requirements(ctx: TemplateContext) -> str:
    items = []
    if re.search(r"컴포넌트|component", ctx.original, re.IGNORECASE):
        items.append("Reusable component structure")
    if re.search(r"\bapi\b|엔드포인트|endpoint", ctx.original, re.IGNORECASE):
        items.append("Include error handling")
    if "TypeScript" in ctx.tech_stack:
        items.append("Include type definitions")
    return _bullets(items or ["Follow the existing code style"])


def _generation_constraints(ctx: TemplateContext) -> str:
    return _bullets(tech_stack_constraints(ctx.tech_stack) or ["Follow the existing code style"])


def _generation_output(ctx: TemplateContext) -> str:
    items = ["Complete implementation code, including imports"]
    if ctx.complexity != Complexity.SIMPLE:
        items.append("Explanation of the key logic")
    if "TypeScript" in ctx.tech_stack:
        items.append("Interface and type definitions")
    return _respond_in(items)


# ── refactoring sections ─────────────────────────────────────────────────────
def _refactoring_goals(ctx: TemplateContext) -> str:
    checks = (
        (r"성능|최적화|performance", "Improve performance"),
        (r"가독성|readab|clean", "Improve readability"),
        (r"중복|duplicat|\bdry\b", "Remove duplication"),
        (r"테스트|test", "Make the code easier to test"),
    )
    goals = [goal for pattern, goal in checks if re.search(pattern, ctx.original, re.IGNORECASE)]
    return _bullets(goals or ["Improve code quality", "Improve maintainability"])


def _refactoring_constraints(ctx: TemplateContext) -> str:
    items = ["Preserve all existing behavior", "Do not change public interfaces"]
    if "TypeScript" in ctx.tech_stack:
        items.append("Keep type compatibility")
    return _bullets(items)


# ── explanation sections ─────────────────────────────────────────────────────
def _explanation_context(ctx: TemplateContext) -> Optional[str]:
    lines = []
    if ctx.extracted_code:
        lines.append(f"Reference code:\n{ctx.extracted_code}")
    if ctx.tech_stack:
        lines.append(f"Environment: {', '.join(ctx.tech_stack)}")
    return "\n\n".join(lines) or None


def _knowledge_level(ctx: TemplateContext) -> str:
    if re.search(r"초보|beginner|기초|basic", ctx.original, re.IGNORECASE):
        return "Beginner: start from the fundamentals"
    if re.search(r"깊이|심층|advanced|상세|in[- ]depth", ctx.original, re.IGNORECASE):
        return "Experienced: focus on in-depth details"
    return "Intermediate: focus on the core concepts"


CATEGORY_TEMPLATES: Dict[TaskCategory, CategoryTemplate] = {
    C.BUG_FIX: CategoryTemplate(
        sections=(
            ("error_context", _error_context),
            ("task", lambda ctx: ctx.core_request),
            ("expected_behavior", _expected_behavior),
            ("constraints", _bug_fix_constraints),
            ("output_format", lambda ctx: _respond_in(OUTPUT_FORMATS[C.BUG_FIX])),
            ("success_criteria", lambda ctx: _bullets(success_criteria_for(C.BUG_FIX))),
        ),
        quality_factors=("Error message included", "Expected behavior stated"),
    ),
    C.CODE_GENERATION: CategoryTemplate(
        sections=(
            ("context", _project_context),
            ("task", lambda ctx: ctx.core_request),
            ("requirements", _requirements),
            ("constraints", _generation_constraints),
            ("output_format", _generation_output),
        ),
        quality_factors=("Tech stack stated", "Requirements made concrete", "Output format specified"),
    ),
    C.REFACTORING: CategoryTemplate(
        sections=(
            ("current_code", lambda ctx: ctx.extracted_code),
            ("task", lambda ctx: ctx.core_request),
            ("refactoring_goals", _refactoring_goals),
            ("constraints", _refactoring_constraints),
            ("output_format", lambda ctx: _respond_in(
                ("Refactored code", "Explanation of the changes", "Optional step-by-step migration guide"))),
        ),
        quality_factors=("Target code included", "Refactoring goals stated"),
    ),
    C.EXPLANATION: CategoryTemplate(
        sections=(
            ("topic", lambda ctx: ctx.core_request),
            ("context", _explanation_context),
            ("knowledge_level", _knowledge_level),
            ("output_format", lambda ctx: _respond_in(
                ("Concept explanation", "Code examples", "Real-world use cases"))),
        ),
        quality_factors=("Knowledge level stated", "Examples requested"),
    ),
}


def _applied_factors(template: CategoryTemplate, ctx: TemplateContext) -> List[str]:
    applied = []
    for factor in template.quality_factors:
        lowered = factor.lower()
        if "error" in lowered and ctx.extracted_error:
            applied.append(factor)
        elif "code" in lowered and ctx.extracted_code:
            applied.append(factor)
        elif "tech stack" in lowered and ctx.tech_stack:
            applied.append(factor)
        elif any(word in lowered for word in ("requirements", "output format", "goals", "knowledge")):
            applied.append(factor)
    return applied[:2]


# ── rendering ────────────────────────────────────────────────────────────────
def generate_from_template(ctx: TemplateContext) -> str:
    template = CATEGORY_TEMPLATES[ctx.category]
    sections = []
    hint = think_hint(ctx.complexity)
    if hint:
        sections.append(hint)
    for tag, generator in template.sections:
        content = generator(ctx)
        if content:
            sections.append(f"<{tag}>\n{content}\n</{tag}>")
    return "\n\n".join(sections)


def _generic_context_lines(ctx: TemplateContext) -> List[str]:
    sc = ctx.session_context
    lines = []
    if sc is not None:
        lines.append(f"Project: {sc.project_name}")
        if sc.tech_stack:
            lines.append(f"Tech stack: {', '.join(sc.tech_stack)}")
        if sc.has_active_task:
            lines.append(f"Current task: {truncate(sc.current_task, 60)}")
        if sc.has_feature_branch:
            lines.append(f"Git branch: {sc.git_branch}")
        if sc.recent_files:
            lines.append("Related files: " + ", ".join(basename(f) for f in sc.recent_files[:3]))
        if sc.last_exchange and sc.last_exchange.assistant_files:
            lines.append("Just modified: " + ", ".join(
                basename(f) for f in sc.last_exchange.assistant_files[:2]))
    if not lines:
        if ctx.extracted_error:
            lines.append(f"Error: {truncate(ctx.extracted_error, 80)}")
        if ctx.extracted_code and "```" not in ctx.extracted_code:
            lines.append(f"Reference: {ctx.extracted_code}")
    return lines


def build_xml_prompt(ctx: TemplateContext) -> str:
    """Generic structurer for categories without a bespoke template."""
    golden = ctx.evaluation.golden_score
    sections = []

    context_lines = _generic_context_lines(ctx)
    if context_lines:
        sections.append("<context>\n" + "\n".join(context_lines) + "\n</context>")

    task = ctx.core_request
    code = ctx.extracted_code
    if code and "```" in code:
        task = ctx.core_request.replace(code, "").strip() or ctx.core_request
        sections.append(f"<reference_code>\n{code}\n</reference_code>")
    sections.append(f"<task>\n{task}\n</task>")

    constraints = tech_stack_constraints(ctx.tech_stack) + list(CATEGORY_CONSTRAINTS.get(ctx.category, ()))
    if constraints:
        sections.append(f"<constraints>\n{_bullets(constraints)}\n</constraints>")

    if golden.output < 0.5:
        sections.append(f"<output_format>\n{_respond_in(output_format_for(ctx.category))}\n</output_format>")

    if golden.evaluation < 0.5:
        sections.append(f"<success_criteria>\n{_bullets(success_criteria_for(ctx.category))}\n</success_criteria>")

    hint = think_hint(ctx.complexity)
    if hint:
        sections.insert(0, hint)
    return "\n\n".join(sections)


def render(text: str, classification: Classification, evaluation: GuidelineEvaluation,
           session_context: Optional[SessionContext] = None) -> str:
    """
    Build the structured rewrite text for a prompt.

    Args:
        text: The original prompt
        classification: Supplies the task category
        evaluation: Supplies the GOLDEN dimensions the rewrite should target
        session_context: Optional workspace facts for context/constraint sections

    Returns:
        The rewritten prompt; sections with nothing to say are left out
    """
    ctx = create_template_context(text, classification, evaluation, session_context)
    if ctx.category in CATEGORY_TEMPLATES:
        return generate_from_template(ctx)
    return build_xml_prompt(ctx)


DIMENSION_LABELS = {
    "goal": "goal", "output": "output", "limits": "limits",
    "data": "context", "evaluation": "evaluation", "next": "next steps",
}


def build_template_candidate(text: str, classification: Classification,
                             evaluation: GuidelineEvaluation,
                             session_context: Optional[SessionContext] = None,
                             config: RewriterConfig = DEFAULT_REWRITER_CONFIG) -> RewriteResult:
    """The engine-produced candidate, present whether or not AI is configured."""
    if evaluation.overall_score >= config.already_good_threshold:
        return RewriteResult(
            text=text,
            key_changes=["Prompt is already well written"],
            confidence=config.ai_confidence,
            variant_kind=VariantKind.TEMPLATE,
            label="Template rewrite",
            original_score=evaluation.golden_score.total,
        )

    ctx = create_template_context(text, classification, evaluation, session_context)
    template = CATEGORY_TEMPLATES.get(ctx.category)
    hint = think_hint(ctx.complexity)
    changes: List[str] = []

    if template is not None:
        rewritten = generate_from_template(ctx)
        changes.append(f"{category_label(ctx.category)} template")
        if hint:
            changes.append(f"Think: {hint}")
        changes.extend(_applied_factors(template, ctx))
    else:
        rewritten = build_xml_prompt(ctx)
        if hint:
            changes.append(f"Think mode: {hint}")
        changes.append("XML structure")

    if ctx.tech_stack:
        changes.append("Tech stack applied")
    if session_context is not None and session_context.has_active_task:
        changes.append("Session context")

    weak = evaluation.golden_score.weak_dimensions()
    if weak and template is None:
        changes.append("Strengthened " + "/".join(DIMENSION_LABELS[d] for d in weak[:2]))

    factors = ConfidenceFactors.from_evaluation(
        classification_confidence=classification.category_confidence,
        evaluation=evaluation,
        has_template=template is not None,
        session_context=session_context,
    )
    return RewriteResult(
        text=rewritten,
        key_changes=list(dict.fromkeys(changes))[:5],
        confidence=calibrated_confidence_for(factors),
        variant_kind=VariantKind.TEMPLATE,
        label="Template rewrite",
        original_score=evaluation.golden_score.total,
    )
