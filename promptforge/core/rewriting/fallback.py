"""
fallback.py - Provider failover with multi-temperature sampling

This module handles:
- Fanning one provider out over several sampling temperatures and keeping
  the sample with the best GOLDEN total
- Stripping placeholder markers from generated text before it is scored
- Trying providers strictly one after another, recording a FallbackEvent for
  each failure

Usage:
    outcome = await rewrite_with_fallback(chain, system, message, original)
    if outcome.success:
        print(outcome.selection.text, outcome.provider.provider)
"""

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from promptforge.core.golden import calculate_golden_score
from promptforge.core.models import FailureKind, GOLDENScore, ProviderConfig
from promptforge.core.rewriting.prompts import Generation, parse_generation
from promptforge.utils.config import DEFAULT_REWRITER_CONFIG, RewriterConfig
from promptforge.utils.llm_client import ProviderError, classify_exception, get_provider_client
from promptforge.utils.logging_helper import get_logger

log = get_logger()

ClientFactory = Callable[[ProviderConfig, RewriterConfig], Any]
Scorer = Callable[[str], GOLDENScore]

PLACEHOLDER_RES = (
    re.compile(r"\[[^\[\]\n]*(?:입력|설명|정보)\]"),
    re.compile(r"\[(?:insert|paste|your|describe|enter)\b[^\[\]\n]*\]", re.IGNORECASE),
    re.compile(r"\[(?:placeholder|TBD)\]", re.IGNORECASE),
)
EMPTY_AFTER_STRIP_NOTE = "Generated text contained only placeholders; the original prompt was kept"


def strip_placeholders(text: str) -> str:
    """Remove placeholder brackets and tidy the whitespace they leave behind."""
    for pattern in PLACEHOLDER_RES:
        text = pattern.sub("", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class FallbackEvent:
    """Record of one provider failure."""
    provider: str
    failure_kind: FailureKind
    message: str
    attempt: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def describe(self) -> str:
        return f"{self.provider} ({self.failure_kind.value}): {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "failure_kind": self.failure_kind.value,
            "message": self.message,
            "attempt": self.attempt,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class SampleSelection:
    """The winning sample of one provider dispatch."""
    text: str
    label: str
    temperature: float
    score: GOLDENScore
    original_score: GOLDENScore
    generation: Generation
    sample_count: int
    note: Optional[str] = None

    @property
    def improvement_percent(self) -> int:
        base = max(self.original_score.total, 0.01)
        return round((self.score.total - self.original_score.total) / base * 100)


@dataclass
class FallbackResult:
    success: bool
    selection: Optional[SampleSelection] = None
    provider: Optional[ProviderConfig] = None
    attempt_index: int = 0
    events: List[FallbackEvent] = field(default_factory=list)

    @property
    def fallback_used(self) -> bool:
        return self.success and self.attempt_index > 0

    def reason(self) -> Optional[str]:
        if not self.events:
            return None
        return "; ".join(e.describe() for e in self.events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "fallback_used": self.fallback_used,
            "final_provider": self.provider.provider.value if self.provider else None,
            "attempt_index": self.attempt_index,
            "events": [e.to_dict() for e in self.events],
        }


# =============================================================================
# SAMPLING
# =============================================================================

async def _one_sample(client, system: str, message: str, temperature: float,
                      rewriter: RewriterConfig) -> str:
    return await asyncio.wait_for(
        client.generate(system, message, temperature=temperature, max_tokens=rewriter.max_tokens),
        timeout=rewriter.request_timeout,
    )


def _as_provider_error(exc: BaseException, config: ProviderConfig) -> ProviderError:
    if isinstance(exc, ProviderError):
        return exc
    return ProviderError(classify_exception(exc), config.provider, str(exc) or type(exc).__name__)


async def sample_provider(client, config: ProviderConfig, system: str, message: str,
                          original: str, rewriter: RewriterConfig = DEFAULT_REWRITER_CONFIG,
                          scorer: Optional[Scorer] = None) -> SampleSelection:
    """
    Request every configured temperature in parallel and keep the best sample.

    Failed samples are dropped. Raises ProviderError (kind of the first
    failure) only when every sample failed.
    """
    score = scorer or calculate_golden_score
    plan = rewriter.temperatures()
    outcomes = await asyncio.gather(
        *(_one_sample(client, system, message, temp, rewriter) for _, temp in plan),
        return_exceptions=True,
    )

    original_score = score(original)
    best: Optional[SampleSelection] = None
    errors: List[ProviderError] = []

    for (label, temp), outcome in zip(plan, outcomes):
        if isinstance(outcome, BaseException):
            err = _as_provider_error(outcome, config)
            log.debug(f"{config.provider.value} sample '{label}' failed: {err}")
            errors.append(err)
            continue

        generation = parse_generation(outcome)
        text, note = strip_placeholders(generation.text), None
        if not text:
            text, note = original, EMPTY_AFTER_STRIP_NOTE
        sample_score = score(text)
        # strict > keeps the earlier, lower-temperature sample on ties
        if best is None or sample_score.total > best.score.total:
            best = SampleSelection(
                text=text,
                label=label,
                temperature=temp,
                score=sample_score,
                original_score=original_score,
                generation=generation,
                sample_count=0,
                note=note,
            )

    if best is None:
        first = errors[0] if errors else ProviderError(
            FailureKind.MALFORMED_RESPONSE, config.provider, "no samples returned")
        raise first

    best.sample_count = len(plan) - len(errors)
    log.info(f"{config.provider.value}: picked '{best.label}' sample "
             f"({best.score.total:.2f} vs original {original_score.total:.2f}, "
             f"{best.sample_count}/{len(plan)} samples ok)")
    return best


# =============================================================================
# FAILOVER
# =============================================================================

async def close_client(client: Any) -> None:
    """Release a client's connections; clients without ``aclose`` are left alone."""
    aclose = getattr(client, "aclose", None)
    if aclose is not None:
        await aclose()


async def rewrite_with_fallback(chain: Sequence[ProviderConfig], system: str, message: str,
                                original: str, *,
                                rewriter: RewriterConfig = DEFAULT_REWRITER_CONFIG,
                                client_factory: ClientFactory = get_provider_client,
                                scorer: Optional[Scorer] = None) -> FallbackResult:
    """
    Try each provider in order until one yields a usable sample.

    Args:
        chain: Providers already filtered and sorted by priority
        system: System instructions
        message: User message
        original: The prompt being rewritten, used for scoring
        rewriter: Timeouts, temperatures and the optional attempt cap
        client_factory: Builds a client exposing ``async generate(...)``
        scorer: GOLDEN scorer override

    Returns:
        FallbackResult; failures never raise
    """
    result = FallbackResult(success=False)

    for index, config in enumerate(chain):
        if rewriter.max_attempts is not None and index >= rewriter.max_attempts:
            log.warning(f"Stopping after {rewriter.max_attempts} provider attempt(s)")
            break
        name = config.display_name or config.provider.value
        client = None
        try:
            client = client_factory(config, rewriter)
            selection = await sample_provider(client, config, system, message, original,
                                              rewriter, scorer)
        except Exception as raw:
            exc = _as_provider_error(raw, config)
            event = FallbackEvent(config.provider.value, exc.kind, exc.message, index + 1)
            result.events.append(event)
            log.warning(f"Provider {name} failed ({exc.kind.value}); trying next")
            continue
        finally:
            await close_client(client)

        result.success = True
        result.selection = selection
        result.provider = config
        result.attempt_index = index
        if index > 0:
            log.info(f"Fell back to {name} after {index} failure(s)")
        return result

    log.error(f"All {len(result.events)} provider attempt(s) failed")
    return result
