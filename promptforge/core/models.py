"""
models.py - Data model shared by the analysis and rewrite pipeline

This module provides:
- String enums for every closed vocabulary (intent, category, grade, ...)
- Immutable analysis records (Features, Classification, GuidelineEvaluation)
- SessionContext, the optional read-only description of the caller's workspace
- RewriteResult and ProviderConfig for the rewrite orchestrator

Every record exposes ``to_dict()`` returning JSON-serializable data so a
history collaborator can persist results without knowing these classes.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from promptforge.utils.text_processing import basename


# =============================================================================
# ENUMS
# =============================================================================

class LanguageHint(str, Enum):
    KO = "ko"
    EN = "en"
    MIXED = "mixed"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    ADVANCED = "advanced"

    @property
    def level(self) -> int:
        return _COMPLEXITY_ORDER.index(self)

    def upgraded(self) -> "Complexity":
        """One level up, capped at ADVANCED."""
        return _COMPLEXITY_ORDER[min(self.level + 1, len(_COMPLEXITY_ORDER) - 1)]

    @classmethod
    def at_least(cls, current: "Complexity", floor: "Complexity") -> "Complexity":
        return current if current.level >= floor.level else floor


_COMPLEXITY_ORDER = [Complexity.SIMPLE, Complexity.MEDIUM, Complexity.COMPLEX, Complexity.ADVANCED]


class Intent(str, Enum):
    COMMAND = "command"
    QUESTION = "question"
    INSTRUCTION = "instruction"
    FEEDBACK = "feedback"
    CONTEXT = "context"
    CLARIFICATION = "clarification"
    UNKNOWN = "unknown"


class TaskCategory(str, Enum):
    CODE_GENERATION = "code-generation"
    CODE_REVIEW = "code-review"
    BUG_FIX = "bug-fix"
    REFACTORING = "refactoring"
    EXPLANATION = "explanation"
    DOCUMENTATION = "documentation"
    TESTING = "testing"
    ARCHITECTURE = "architecture"
    DEPLOYMENT = "deployment"
    DATA_ANALYSIS = "data-analysis"
    GENERAL = "general"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Grade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class VariantKind(str, Enum):
    TEMPLATE = "template"
    AI = "ai"


class ProviderKind(str, Enum):
    CLAUDE = "claude"
    OPENAI = "openai"
    GEMINI = "gemini"


class FailureKind(str, Enum):
    """Provider-call failure taxonomy. Every kind triggers failover."""
    AUTH = "auth"
    RATE_LIMIT = "rateLimit"
    SERVER_ERROR = "serverError"
    NETWORK = "network"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformedResponse"
    UNKNOWN = "unknown"


GOLDEN_DIMENSIONS = ("goal", "output", "limits", "data", "evaluation", "next")


def _plain(value: Any) -> Any:
    """Recursively turn enums into their values for JSON output."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {_plain(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        return _plain(asdict(self))


# =============================================================================
# ANALYSIS RECORDS
# =============================================================================

@dataclass(frozen=True)
class Features(_Serializable):
    language_hint: LanguageHint
    has_code_block: bool
    has_file_path: bool
    has_url: bool
    has_question_mark: bool
    has_exclamation_mark: bool
    word_count: int
    length: int
    complexity: Complexity


@dataclass(frozen=True)
class IntentScoreDetails(_Serializable):
    base: float = 0.0
    position: float = 0.0
    negation: float = 0.0
    question_mark: float = 0.0
    total: float = 0.0


@dataclass(frozen=True)
class CategoryScore(_Serializable):
    category: TaskCategory
    confidence: float


@dataclass(frozen=True)
class MultiLabelClassification(_Serializable):
    primary: CategoryScore
    secondary: List[CategoryScore] = field(default_factory=list)
    is_multi_intent: bool = False


@dataclass(frozen=True)
class Classification(_Serializable):
    intent: Intent
    intent_confidence: float
    task_category: TaskCategory
    category_confidence: float
    matched_keywords: List[str]
    features: Features
    multi_label: MultiLabelClassification
    intent_score_details: Dict[str, IntentScoreDetails] = field(default_factory=dict)


@dataclass(frozen=True)
class GOLDENScore(_Serializable):
    goal: float = 0.0
    output: float = 0.0
    limits: float = 0.0
    data: float = 0.0
    evaluation: float = 0.0
    next: float = 0.0
    total: float = 0.0

    def dimensions(self) -> Dict[str, float]:
        """The six rubric dimensions without the total."""
        return {name: getattr(self, name) for name in GOLDEN_DIMENSIONS}

    def weak_dimensions(self, threshold: float = 0.5) -> List[str]:
        return [name for name, value in self.dimensions().items() if value < threshold]


@dataclass(frozen=True)
class AntiPattern(_Serializable):
    id: str
    name: str
    severity: Severity
    description: str
    evidence_snippet: str
    fix: str


@dataclass(frozen=True)
class GuidelineScore(_Serializable):
    guideline: str
    name: str
    description: str
    score: float
    weight: float
    evidence: List[str]
    suggestion: str


@dataclass(frozen=True)
class GuidelineEvaluation(_Serializable):
    overall_score: float
    guideline_scores: List[GuidelineScore]
    golden_score: GOLDENScore
    anti_patterns: List[AntiPattern]
    recommendations: List[str]
    grade: Grade


@dataclass(frozen=True)
class GuidelinesSummary(_Serializable):
    """Aggregate view over a batch of evaluations."""
    count: int
    average_score: float
    grade_distribution: Dict[str, int]
    weakest_guidelines: List[str]
    strongest_guidelines: List[str]
    top_anti_patterns: List[Dict[str, Any]]
    average_golden: GOLDENScore


# =============================================================================
# SESSION CONTEXT
# =============================================================================

IDLE_TASK_MARKERS = {"작업 진행 중", "in progress", "working", "idle"}


@dataclass(frozen=True)
class LastExchange(_Serializable):
    user_message: str = ""
    assistant_summary: str = ""
    assistant_tools: List[str] = field(default_factory=list)
    assistant_files: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SessionContext(_Serializable):
    """Workspace facts supplied by the host. Every field may be empty."""
    project_path: str = ""
    tech_stack: List[str] = field(default_factory=list)
    current_task: str = ""
    recent_files: List[str] = field(default_factory=list)
    recent_tools: List[str] = field(default_factory=list)
    git_branch: str = ""
    last_exchange: Optional[LastExchange] = None

    @property
    def project_name(self) -> str:
        return basename(self.project_path) if self.project_path else "project"

    @property
    def has_active_task(self) -> bool:
        task = (self.current_task or "").strip()
        return len(task) > 5 and task.lower() not in IDLE_TASK_MARKERS

    @property
    def has_feature_branch(self) -> bool:
        return bool(self.git_branch) and self.git_branch not in ("main", "master")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionContext":
        """Build from snake_case or camelCase keys (host payloads use either)."""
        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        exchange = pick("last_exchange", "lastExchange")
        last = None
        if isinstance(exchange, dict):
            last = LastExchange(
                user_message=exchange.get("user_message") or exchange.get("userMessage") or "",
                assistant_summary=exchange.get("assistant_summary") or exchange.get("assistantSummary") or "",
                assistant_tools=list(exchange.get("assistant_tools") or exchange.get("assistantTools") or []),
                assistant_files=list(exchange.get("assistant_files") or exchange.get("assistantFiles") or []),
            )
        return cls(
            project_path=pick("project_path", "projectPath", default=""),
            tech_stack=list(pick("tech_stack", "techStack", default=[])),
            current_task=pick("current_task", "currentTask", default=""),
            recent_files=list(pick("recent_files", "recentFiles", default=[])),
            recent_tools=list(pick("recent_tools", "recentTools", default=[])),
            git_branch=pick("git_branch", "gitBranch", default=""),
            last_exchange=last,
        )


# =============================================================================
# REWRITE RECORDS
# =============================================================================

@dataclass
class RewriteResult(_Serializable):
    text: str
    key_changes: List[str]
    confidence: float
    variant_kind: VariantKind
    label: str
    is_ai_generated: bool = False
    needs_setup: bool = False
    provider: Optional[ProviderKind] = None
    was_fallback: bool = False
    fallback_reason: Optional[str] = None
    explanation: Optional[str] = None
    sample_label: Optional[str] = None
    original_score: Optional[float] = None
    improved_score: Optional[float] = None
    improvement_percent: Optional[int] = None


@dataclass(frozen=True)
class ProviderConfig(_Serializable):
    provider: ProviderKind
    api_key: str = ""
    enabled: bool = True
    is_primary: bool = False
    priority: int = 1
    model: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_usable(self) -> bool:
        return self.enabled and bool(self.api_key and self.api_key.strip())

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["api_key"] = "***" if self.api_key else ""
        return data
