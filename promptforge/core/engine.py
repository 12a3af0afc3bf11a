"""
engine.py - Public entry points

    analyze(text)            -> GuidelineEvaluation   (pure, synchronous)
    rewrite(text, ...)       -> List[RewriteResult]   (async, never raises)

Both take their configuration explicitly. ``Settings`` bundles the analysis
constants, rewriter tunables and the provider registry; when ``rewrite()``
gets no explicit provider list it reads a snapshot from the registry.
"""

from typing import List, Optional, Sequence

from promptforge.core.classifier import classify
from promptforge.core.golden import evaluate
from promptforge.core.models import (
    Classification,
    GuidelineEvaluation,
    ProviderConfig,
    RewriteResult,
    SessionContext,
)
from promptforge.core.rewriting.fallback import ClientFactory
from promptforge.core.rewriting.orchestrator import rewrite as _rewrite
from promptforge.utils.config import Settings
from promptforge.utils.llm_client import get_provider_client

DEFAULT_SETTINGS = Settings()


def analyze(text: str, settings: Settings = DEFAULT_SETTINGS) -> GuidelineEvaluation:
    return evaluate(text, settings.analysis)


def classify_prompt(text: str, session_context: Optional[SessionContext] = None,
                    settings: Settings = DEFAULT_SETTINGS) -> Classification:
    return classify(text, session_context, settings.analysis)


async def rewrite(text: str,
                  evaluation: Optional[GuidelineEvaluation] = None,
                  session_context: Optional[SessionContext] = None,
                  provider_configs: Optional[Sequence[ProviderConfig]] = None,
                  *,
                  settings: Settings = DEFAULT_SETTINGS,
                  client_factory: ClientFactory = get_provider_client) -> List[RewriteResult]:
    """Rewrite candidates for ``text``, ranked by confidence."""
    if provider_configs is None:
        provider_configs = settings.providers.get_providers()
    return await _rewrite(
        text,
        evaluation,
        session_context,
        provider_configs,
        analysis_config=settings.analysis,
        config=settings.rewriter,
        client_factory=client_factory,
    )
