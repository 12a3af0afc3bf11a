"""
golden.py - GOLDEN scoring, guideline evaluation and anti-pattern detection

This module provides:
- calculate_golden_score(): six-dimension rubric (Goal, Output, Limits,
  Data, Evaluation, Next) plus a length-bonus total
- evaluate_guidelines(): six prompt-writing guidelines, weighted into an
  overall score and a letter grade
- detect_anti_patterns(): fixed, ordered list of prompt defects
- evaluate() / evaluate_many(): full evaluation and batch summary

Everything here is pure and deterministic: the rewrite orchestrator calls
calculate_golden_score() again on generated text to pick the best sample.
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple, Union

from promptforge.core.features import has_code_block, has_file_path
from promptforge.core.models import (
    AntiPattern,
    GOLDEN_DIMENSIONS,
    GOLDENScore,
    Grade,
    GuidelineEvaluation,
    GuidelineScore,
    GuidelinesSummary,
    Severity,
)
from promptforge.utils.config import AnalysisConfig, DEFAULT_ANALYSIS_CONFIG
from promptforge.utils.logging_helper import get_logger
from promptforge.utils.text_processing import count_words, normalize_text, snippet

log = get_logger()

Matcher = Union["re.Pattern[str]", Callable[[str], bool]]


def _ko_en(ko: str, en: str = "") -> "re.Pattern[str]":
    """Korean alternatives as-is, English alternatives on word boundaries."""
    parts = [f"(?:{ko})"] if ko else []
    if en:
        parts.append(rf"\b(?:{en})\b")
    return re.compile("|".join(parts), re.IGNORECASE)


def _hit(matcher: Matcher, text: str) -> bool:
    if callable(matcher):
        return matcher(text)
    return matcher.search(text) is not None


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


# ── GOLDEN dimension checks: (weight, matcher, evidence label) ──────────────
GOLDEN_CHECKS: Dict[str, Tuple[Tuple[float, Matcher, str], ...]] = {
    "goal": (
        (0.3, _ko_en("목표|목적|원하는|요청|기능", "goal|want|need|purpose"), "objective"),
        (0.3, _ko_en("해\\s?줘|해\\s?주세요|해주시|하세요|합니다|해야",
                     "create|make|build|implement|generate|develop"), "imperative"),
        (0.2, _ko_en("구현|작성|개발|생성|추가|수정|변경|설계|분석|리팩토링|구축|적용|설정|연동",
                     "add|fix|update|refactor|design|analyze|configure|integrate"), "action verb"),
        (0.2, _ko_en("기능|컴포넌트|모듈|시스템|API|페이지|화면|폼|버튼|로그인|회원가입|인증",
                     "component|module|system|page|screen|form|button|login|signup|auth|authentication|"
                     "endpoint|function|class|service"), "deliverable"),
    ),
    "output": (
        (0.4, _ko_en("형식|포맷|구조|타입|인터페이스",
                     "format|JSON|table|list|structure|schema|interface"), "format"),
        (0.3, _ko_en("예시|샘플|템플릿", "examples?|samples?|templates?"), "example"),
        (0.3, re.compile(r"\.(?:tsx?|jsx?|py|java|go)\b|코드|\b(?:code|component|function|class)\b",
                         re.IGNORECASE), "code artifact"),
    ),
    "limits": (
        (0.3, _ko_en("하지\\s?마|제외|금지|불가",
                     "without|except|don't|do not|not|never|avoid"), "exclusion"),
        (0.2, _ko_en("만|특정|한정", "only|just|specific"), "scope"),
        (0.2, _ko_en("버전", "React|TypeScript|Firebase|Node|Python|Java|version"), "technology"),
        (0.3, _ko_en("최대|최소|이상|이하|범위|사이|까지|부터",
                     "at most|at least|maximum|minimum|max|min|under|within|between|up to|"
                     "no more than|limit"), "range"),
    ),
    "data": (
        (0.25, has_code_block, "code block"),
        (0.25, has_file_path, "file path"),
        (0.25, _ko_en("현재|상황|환경|프로젝트|시스템|아키텍처",
                      "current|currently|background|context|environment|project|system|architecture"),
         "background"),
        (0.25, _ko_en("사용|스택|라이브러리|프레임워크", "using|stack|library|framework"), "stack"),
    ),
    "evaluation": (
        (0.3, _ko_en("확인|검증|보장", "verify|validate|check|ensure|confirm"), "verification"),
        (0.35, _ko_en("테스트|성공|품질|요구사항",
                      "tests?|success|quality|requirements?|pass|passes|passing"), "acceptance"),
        (0.35, _ko_en("성능|보안|안전|안정|에러|예외",
                      "performance|security|safe|safety|errors?|exceptions?"), "quality attribute"),
    ),
    "next": (
        (0.35, _ko_en("그다음|다음|이후|완료\\s?후", "then|after|next|afterwards"), "sequence"),
        (0.35, _ko_en("단계|순서|절차|프로세스|워크플로우", "steps?|workflow|process|procedure"), "steps"),
        (0.3, _ko_en("추가로|또한|그리고|추후|향후|확장", "also|additionally|later|follow[- ]up|extend"),
         "follow-up"),
    ),
}


def _score_checks(text: str, checks) -> Tuple[float, List[str]]:
    score, evidence = 0.0, []
    for weight, matcher, label in checks:
        if _hit(matcher, text):
            score += weight
            evidence.append(label)
    return _clamp(score), evidence


def calculate_golden_score(text: str, config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> GOLDENScore:
    """
    Score a prompt on the six GOLDEN dimensions.

    Each dimension is a sum of small contributions clamped to [0, 1]. The
    total is their mean plus a length bonus of word_count/50 (capped at
    0.15), clamped again.
    """
    text = normalize_text(text)
    dims = {name: _score_checks(text, GOLDEN_CHECKS[name])[0] for name in GOLDEN_DIMENSIONS}
    mean = sum(dims.values()) / len(dims)
    bonus = min(count_words(text) / config.length_bonus_words, config.length_bonus_cap)
    return GOLDENScore(total=_clamp(mean + bonus), **dims)


# ── guidelines ───────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Guideline:
    id: str
    name: str
    description: str
    suggestion: str
    checks: Tuple[Tuple[float, Matcher, str], ...]


MARKDOWN_RE = re.compile(r"^(?:#+\s|\*\s|-\s|\d+\.\s)", re.MULTILINE)

GUIDELINES: Tuple[Guideline, ...] = (
    Guideline(
        "beExplicit", "Be explicit",
        "States the requested action and its target precisely.",
        "Name the exact action and the file or component it applies to.",
        (
            (0.3, _ko_en("만들|생성|작성|수정|추가|삭제|변경|확인",
                         "create|make|build|write|update|add|remove|change|check|implement|fix|refactor"),
             "action verb"),
            (0.3, has_file_path, "file path"),
            (0.2, lambda t: len(t) >= 20, "sufficient length"),
            (0.2, has_code_block, "code block"),
        ),
    ),
    Guideline(
        "addContext", "Add context",
        "Explains the situation, the goal behind the request and the environment.",
        "Describe the current situation and why you need this.",
        (
            (0.3, _ko_en("현재|지금|상황|배경", "currently|right now|situation|background"), "situation"),
            (0.3, _ko_en("목표|목적|원하는|필요", "goal|want|need|purpose"), "goal"),
            (0.2, _ko_en("버전|환경", "version|environment|react|vue|node|typescript|python"),
             "environment"),
            (0.2, lambda t: has_file_path(t) or has_code_block(t), "reference material"),
        ),
    ),
    Guideline(
        "useXMLTags", "Use structure",
        "Separates parts of the prompt with XML tags, markdown or code fences.",
        "Split the prompt into sections such as <context>, <task> and <constraints>.",
        (
            (0.5, re.compile(r"<[a-z][^>]*>[\s\S]*</[a-z][^>]*>", re.IGNORECASE), "xml tags"),
            (0.3, MARKDOWN_RE, "markdown"),
            (0.2, re.compile(r"```"), "code fence"),
        ),
    ),
    Guideline(
        "chainOfThought", "Ask for reasoning",
        "Invites step-by-step reasoning or an explanation of the approach.",
        "Ask for a step-by-step approach or for the reasoning behind the answer.",
        (
            (0.4, _ko_en("단계|순서|차례|먼저|그다음", "step|steps|step by step|one by one|first"),
             "steps"),
            (0.3, _ko_en("설명|이유|왜", "explain|reason|why"), "explanation"),
            (0.3, _ko_en("생각|분석", "think|consider|analy[sz]e"), "analysis"),
        ),
    ),
    Guideline(
        "specificOutput", "Specify the output",
        "Describes the expected format, length or shape of the answer.",
        "Say what the answer should look like: format, length or an example.",
        (
            (0.4, _ko_en("형식|포맷|표|리스트", "format|JSON|YAML|markdown|table|list"), "format"),
            (0.3, _ko_en("예시|예를 들어", "example|like this|such as"), "example"),
            (0.3, _ko_en("간단히|짧게|자세히|상세히", "brief|short|detailed|concise"), "length"),
        ),
    ),
    Guideline(
        "constraints", "Set constraints",
        "Limits scope with exclusions, specifics or conditions.",
        "Add limits: what to avoid, what to keep and under which conditions.",
        (
            (0.4, _ko_en("하지 마|제외|않고", "only|without|except|don't|not|avoid"), "exclusion"),
            (0.3, _ko_en("만|만을|특정", "only|just|specific"), "scope"),
            (0.3, _ko_en("경우|조건", "if|when|unless|condition"), "condition"),
        ),
    ),
)

GUIDELINES_BY_ID = {g.id: g for g in GUIDELINES}


def evaluate_guidelines(text: str, config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> List[GuidelineScore]:
    scores = []
    for guideline in GUIDELINES:
        value, evidence = _score_checks(text, guideline.checks)
        scores.append(GuidelineScore(
            guideline=guideline.id,
            name=guideline.name,
            description=guideline.description,
            score=value,
            weight=config.guideline_weights.get(guideline.id, 0.0),
            evidence=evidence,
            suggestion=guideline.suggestion,
        ))
    return scores


# ── anti-patterns ────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class AntiPatternRule:
    id: str
    name: str
    severity: Severity
    description: str
    fix: str
    detect: Callable[[str], bool]


ANTI_PATTERN_RULES: Tuple[AntiPatternRule, ...] = (
    AntiPatternRule(
        "vague-objective", "Vague objective", Severity.HIGH,
        "The prompt is too short to state a clear objective.",
        "Describe the concrete result you want and where it applies.",
        lambda t: 0 < len(t) <= 15,
    ),
    AntiPatternRule(
        "unstructured-context", "Unstructured context", Severity.MEDIUM,
        "A long unbroken block of text makes the request hard to follow.",
        "Break the prompt into short sections or bullet points.",
        lambda t: re.search(r"[^\n]{200,}", t) is not None,
    ),
    AntiPatternRule(
        "implicit-constraints", "Implicit constraints", Severity.LOW,
        "Asks for something to be created without stating any limits.",
        "State what must not change and which technologies to use.",
        lambda t: re.match(r"^(?!.*(?:만|without|제외|don't|not)).*(?:해줘|create|make)",
                           t, re.IGNORECASE) is not None,
    ),
    AntiPatternRule(
        "missing-output-format", "Missing output format", Severity.LOW,
        "Asks for information without saying how it should be presented.",
        "Name the format you want, for example a list, a table or JSON.",
        lambda t: re.match(r"^(?!.*(?:형식|format|JSON|table|list|markdown)).*(?:알려줘|tell|show|explain)",
                           t, re.IGNORECASE) is not None,
    ),
    AntiPatternRule(
        "vague-reference", "Vague reference", Severity.MEDIUM,
        "Refers to something with a pronoun the model cannot resolve.",
        "Replace 'this' or 'it' with the actual file, function or error.",
        lambda t: re.search(r"이거|저거|그거|\b(?:this|that)\b|\bit\b(?!\s+is)", t, re.IGNORECASE) is not None,
    ),
    AntiPatternRule(
        "retry-without-context", "Retry without context", Severity.HIGH,
        "Asks for a retry without saying what was wrong with the previous answer.",
        "Explain what was wrong last time and what should be different.",
        lambda t: re.match(r"^(?:다시|again|retry|한번 더).{0,20}$", t, re.IGNORECASE) is not None,
    ),
)


def detect_anti_patterns(text: str, config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> List[AntiPattern]:
    """Run every rule in order and report each one that matches."""
    text = normalize_text(text).strip()
    found = []
    for rule in ANTI_PATTERN_RULES:
        if rule.detect(text):
            found.append(AntiPattern(
                id=rule.id,
                name=rule.name,
                severity=rule.severity,
                description=rule.description,
                evidence_snippet=snippet(text, config.evidence_snippet_length),
                fix=rule.fix,
            ))
    return found


# ── evaluation ───────────────────────────────────────────────────────────────
def grade_for(score: float, config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> Grade:
    for letter, threshold in config.grade_thresholds:
        if score >= threshold:
            return Grade(letter)
    return Grade.F


def build_recommendations(guideline_scores: Sequence[GuidelineScore],
                          anti_patterns: Sequence[AntiPattern],
                          config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> List[str]:
    """High-severity anti-pattern fixes first, then weak guidelines, then the rest."""
    urgent = []
    regular = [
        f"[{g.name}] {g.suggestion}"
        for g in guideline_scores
        if g.score < config.weak_guideline_threshold
    ]
    for ap in anti_patterns:
        if ap.severity == Severity.HIGH:
            urgent.append(f"[urgent] {ap.name}: {ap.fix}")
        else:
            regular.append(f"[{ap.name}] {ap.fix}")
    return (urgent + regular)[:config.max_recommendations]


def evaluate(text: str, config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG) -> GuidelineEvaluation:
    """
    Evaluate a prompt against the guidelines, GOLDEN and the anti-pattern list.

    Args:
        text: Raw prompt text
        config: Weights and thresholds

    Returns:
        A fresh GuidelineEvaluation; nothing is cached between calls
    """
    normalized = normalize_text(text)
    guideline_scores = evaluate_guidelines(normalized, config)
    overall = _clamp(sum(g.score * g.weight for g in guideline_scores))
    golden = calculate_golden_score(normalized, config)
    anti_patterns = detect_anti_patterns(normalized, config)

    result = GuidelineEvaluation(
        overall_score=overall,
        guideline_scores=guideline_scores,
        golden_score=golden,
        anti_patterns=anti_patterns,
        recommendations=build_recommendations(guideline_scores, anti_patterns, config),
        grade=grade_for(overall, config),
    )
    log.debug(f"evaluate: overall={overall:.2f} golden={golden.total:.2f} "
              f"anti_patterns={[a.id for a in anti_patterns]}")
    return result


def evaluate_many(texts: Sequence[str], config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG
                  ) -> Tuple[List[GuidelineEvaluation], GuidelinesSummary]:
    """Evaluate a batch and summarize it."""
    evaluations = [evaluate(t, config) for t in texts]
    return evaluations, summarize(evaluations)


def summarize(evaluations: Sequence[GuidelineEvaluation]) -> GuidelinesSummary:
    count = len(evaluations)
    if count == 0:
        return GuidelinesSummary(0, 0.0, {}, [], [], [], GOLDENScore())

    grades = Counter(e.grade.value for e in evaluations)
    per_guideline: Dict[str, List[float]] = {}
    for e in evaluations:
        for g in e.guideline_scores:
            per_guideline.setdefault(g.guideline, []).append(g.score)
    averages = {gid: sum(vals) / len(vals) for gid, vals in per_guideline.items()}
    ordered = sorted(averages, key=lambda gid: averages[gid])

    ap_counts = Counter(ap.id for e in evaluations for ap in e.anti_patterns)
    golden_avg = {
        name: sum(getattr(e.golden_score, name) for e in evaluations) / count
        for name in GOLDEN_DIMENSIONS + ("total",)
    }

    return GuidelinesSummary(
        count=count,
        average_score=sum(e.overall_score for e in evaluations) / count,
        grade_distribution={g.value: grades.get(g.value, 0) for g in Grade},
        weakest_guidelines=ordered[:3],
        strongest_guidelines=list(reversed(ordered))[:3],
        top_anti_patterns=[{"id": ap_id, "count": n} for ap_id, n in ap_counts.most_common(5)],
        average_golden=GOLDENScore(**golden_avg),
    )
