"""
orchestrator.py - Produces the ranked list of rewrite candidates

Terminal states of one request:
- AI selected (a provider answered; maybe after failover)
- AI placeholder, needs setup (no usable provider configured)
- AI placeholder, all failed (every provider failed)

Every state also carries the template candidate, which returns an already
good prompt unchanged. rewrite() never raises.
"""

from typing import List, Optional, Sequence

from promptforge.core.classifier import classify
from promptforge.core.golden import evaluate
from promptforge.core.models import (
    GuidelineEvaluation,
    ProviderConfig,
    RewriteResult,
    SessionContext,
    VariantKind,
)
from promptforge.core.rewriting.fallback import (
    ClientFactory,
    FallbackResult,
    Scorer,
    rewrite_with_fallback,
)
from promptforge.core.rewriting.prompts import REWRITE_SYSTEM_PROMPT, build_user_message
from promptforge.core.rewriting.templates import build_template_candidate
from promptforge.utils.config import (
    AnalysisConfig,
    DEFAULT_ANALYSIS_CONFIG,
    DEFAULT_REWRITER_CONFIG,
    RewriterConfig,
    enabled_providers,
)
from promptforge.utils.llm_client import get_provider_client
from promptforge.utils.logging_helper import get_logger

log = get_logger()

AI_LABEL = "AI rewrite"


def needs_setup_placeholder() -> RewriteResult:
    return RewriteResult(
        text="",
        key_changes=["Add an API key for Claude, OpenAI or Gemini to enable AI rewrites"],
        confidence=0.0,
        variant_kind=VariantKind.AI,
        label=AI_LABEL,
        is_ai_generated=False,
        needs_setup=True,
    )


def failed_placeholder(reason: Optional[str] = None) -> RewriteResult:
    return RewriteResult(
        text="",
        key_changes=["AI rewrite unavailable"],
        confidence=0.0,
        variant_kind=VariantKind.AI,
        label=AI_LABEL,
        is_ai_generated=False,
        needs_setup=False,
        fallback_reason=reason,
    )


def ai_result(outcome: FallbackResult, config: RewriterConfig = DEFAULT_REWRITER_CONFIG) -> RewriteResult:
    """Turn a successful fallback outcome into a candidate."""
    selection = outcome.selection
    original = round(selection.original_score.total * 100)
    improved = round(selection.score.total * 100)
    pct = selection.improvement_percent

    changes = list(selection.generation.improvements)
    if selection.note:
        changes.insert(0, selection.note)
    changes.append(f"GOLDEN score: {original}% → {improved}% ({pct:+d}%)")

    return RewriteResult(
        text=selection.text,
        key_changes=list(dict.fromkeys(changes))[:5],
        confidence=config.ai_confidence,
        variant_kind=VariantKind.AI,
        label=AI_LABEL,
        is_ai_generated=True,
        provider=outcome.provider.provider,
        was_fallback=outcome.fallback_used,
        fallback_reason=outcome.reason() if outcome.fallback_used else None,
        explanation=selection.generation.explanation,
        sample_label=selection.label,
        original_score=selection.original_score.total,
        improved_score=selection.score.total,
        improvement_percent=pct,
    )


def rank(results: List[RewriteResult]) -> List[RewriteResult]:
    """Confidence descending; the sort is stable so insertion order breaks ties."""
    return sorted(results, key=lambda r: r.confidence, reverse=True)


async def rewrite(text: str,
                  evaluation: Optional[GuidelineEvaluation] = None,
                  session_context: Optional[SessionContext] = None,
                  provider_configs: Optional[Sequence[ProviderConfig]] = None,
                  *,
                  analysis_config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG,
                  config: RewriterConfig = DEFAULT_REWRITER_CONFIG,
                  client_factory: ClientFactory = get_provider_client,
                  scorer: Optional[Scorer] = None) -> List[RewriteResult]:
    """
    Build every rewrite candidate for a prompt.

    Args:
        text: The prompt to rewrite
        evaluation: Precomputed evaluation; computed here when omitted
        session_context: Optional workspace facts
        provider_configs: Point-in-time snapshot of configured providers
        analysis_config: Scoring constants
        config: Rewriter timeouts, sampling and attempt cap
        client_factory: Builds provider clients; tests inject stubs here
        scorer: GOLDEN scorer override for sample selection

    Returns:
        One or more RewriteResults ordered by confidence, descending
    """
    results: List[RewriteResult] = []
    try:
        if evaluation is None:
            evaluation = evaluate(text, analysis_config)
        classification = classify(text, session_context, analysis_config)
        results.append(build_template_candidate(text, classification, evaluation,
                                                session_context, config))

        chain = enabled_providers(list(provider_configs or []))
        if not chain:
            log.info("No AI provider configured; returning template candidate only")
            results.append(needs_setup_placeholder())
            return rank(results)

        message = build_user_message(text, evaluation, session_context)
        outcome = await rewrite_with_fallback(
            chain, REWRITE_SYSTEM_PROMPT, message, text,
            rewriter=config, client_factory=client_factory, scorer=scorer,
        )
        if outcome.success:
            results.insert(0, ai_result(outcome, config))
        else:
            results.append(failed_placeholder(outcome.reason()))
    except Exception:
        log.exception("Unexpected error while rewriting; returning what is available")
        results = [r for r in results if r.variant_kind == VariantKind.TEMPLATE]
        results.append(failed_placeholder("unexpected error"))
    return rank(results)
