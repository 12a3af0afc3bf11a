#!/usr/bin/env python
"""
config.py – explicit configuration values for analysis and rewriting.

Nothing in the engine reads the environment on its own: callers build a
``Settings`` (usually via ``load_settings()``) and pass its parts into
``analyze()`` / ``rewrite()``. That keeps every analysis function free of
ambient state.

Sources, in order of precedence:
    1. an explicit YAML file (``providers:`` list, optional ``rewriter:`` block)
    2. environment variables (a ``.env`` file is loaded first)
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from promptforge.core.models import ProviderConfig, ProviderKind
from promptforge.utils.io_helpers import load_mapping
from promptforge.utils.logging_helper import get_logger

log = get_logger()


# ── provider metadata ────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ProviderMetadata:
    kind: ProviderKind
    display_name: str
    default_model: str
    key_prefix: str
    env_vars: Tuple[str, ...]
    docs_url: str


PROVIDER_METADATA: Mapping[ProviderKind, ProviderMetadata] = MappingProxyType({
    ProviderKind.CLAUDE: ProviderMetadata(
        ProviderKind.CLAUDE, "Claude", "claude-sonnet-4-20250514", "sk-ant-",
        ("ANTHROPIC_API_KEY",), "https://console.anthropic.com/settings/keys"),
    ProviderKind.OPENAI: ProviderMetadata(
        ProviderKind.OPENAI, "OpenAI", "gpt-4o", "sk-",
        ("OPENAI_API_KEY",), "https://platform.openai.com/api-keys"),
    ProviderKind.GEMINI: ProviderMetadata(
        ProviderKind.GEMINI, "Gemini", "gemini-2.0-flash", "AIza",
        ("GEMINI_API_KEY", "GOOGLE_API_KEY"), "https://aistudio.google.com/apikey"),
})


def has_valid_key_format(kind: ProviderKind, key: str) -> bool:
    """Cheap prefix check; a mismatch is only worth a warning."""
    if not key or not key.strip():
        return False
    return key.strip().startswith(PROVIDER_METADATA[kind].key_prefix)


# ── analysis tunables ────────────────────────────────────────────────────────
@dataclass(frozen=True)
class AnalysisConfig:
    """Empirically tuned constants, kept together so they can be calibrated."""
    # keyword position weighting
    early_position_threshold: float = 0.25
    early_position_multiplier: float = 1.5
    default_position_weight: float = 1.0

    # intent confidence
    question_mark_bonus: float = 2.0
    intent_confidence_cap: float = 0.95
    intent_gap_factor: float = 0.2
    intent_gap_cap: float = 0.15
    intent_base_bonus: float = 0.1
    question_inference_confidence: float = 0.6
    complexity_inference_confidence: float = 0.45
    no_match_intent_confidence: float = 0.4

    # category confidence
    category_confidence_cap: float = 0.95
    category_gap_factor: float = 0.15
    category_gap_cap: float = 0.1
    category_base_bonus: float = 0.05
    unknown_category_confidence: float = 0.2
    secondary_confidence_cap: float = 0.9
    multi_intent_gap_ratio: float = 0.15

    # language hint
    mixed_script_ratio: float = 0.2

    # complexity length buckets (characters)
    medium_length: int = 50
    complex_length: int = 200
    advanced_length: int = 500

    # GOLDEN total
    length_bonus_words: float = 50.0
    length_bonus_cap: float = 0.15

    # guideline weights
    guideline_weights: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({
        "beExplicit": 0.20,
        "addContext": 0.20,
        "useXMLTags": 0.15,
        "chainOfThought": 0.15,
        "specificOutput": 0.15,
        "constraints": 0.15,
    }))

    # grade thresholds on overall score
    grade_thresholds: Tuple[Tuple[str, float], ...] = (
        ("A", 0.90), ("B", 0.75), ("C", 0.60), ("D", 0.40),
    )

    weak_guideline_threshold: float = 0.5
    max_recommendations: int = 5
    evidence_snippet_length: int = 50


DEFAULT_ANALYSIS_CONFIG = AnalysisConfig()


# ── rewriter tunables ────────────────────────────────────────────────────────
@dataclass(frozen=True)
class RewriterConfig:
    request_timeout: float = 30.0
    connect_timeout: float = 10.0
    max_tokens: int = 1500
    sample_temperatures: Tuple[float, ...] = (0.3, 0.5, 0.7)
    sample_labels: Tuple[str, ...] = ("conservative", "balanced", "comprehensive")
    single_sample_temperature: float = 0.5
    multi_sample: bool = True
    max_attempts: Optional[int] = None
    already_good_threshold: float = 0.85
    ai_confidence: float = 0.95

    def temperatures(self) -> List[Tuple[str, float]]:
        """(label, temperature) pairs for one provider dispatch."""
        if not self.multi_sample or len(self.sample_temperatures) < 2:
            return [("balanced", self.single_sample_temperature)]
        labels = list(self.sample_labels) + [
            f"sample-{i + 1}" for i in range(len(self.sample_labels), len(self.sample_temperatures))
        ]
        return list(zip(labels, self.sample_temperatures))


DEFAULT_REWRITER_CONFIG = RewriterConfig()


# ── provider registry ────────────────────────────────────────────────────────
class ProviderRegistry:
    """Holds provider configs; hands out point-in-time snapshots."""

    def __init__(self, configs: Optional[List[ProviderConfig]] = None):
        self._configs = list(configs or [])

    def get_providers(self) -> List[ProviderConfig]:
        return list(self._configs)

    def get_enabled_providers(self) -> List[ProviderConfig]:
        return enabled_providers(self._configs)

    def get_primary_provider(self) -> Optional[ProviderConfig]:
        for cfg in self._configs:
            if cfg.is_primary and cfg.is_usable:
                return cfg
        enabled = self.get_enabled_providers()
        return enabled[0] if enabled else None

    def has_any_provider(self) -> bool:
        return bool(self.get_enabled_providers())


def enabled_providers(configs: List[ProviderConfig]) -> List[ProviderConfig]:
    """Usable providers in ascending priority; equal priorities keep input order."""
    usable = [c for c in configs if c.is_usable]
    return sorted(usable, key=lambda c: c.priority)


def _parse_kind(value: str) -> ProviderKind:
    value = (value or "").strip().lower()
    aliases = {"anthropic": "claude", "google": "gemini"}
    return ProviderKind(aliases.get(value, value))


def providers_from_env(env: Optional[Mapping[str, str]] = None) -> List[ProviderConfig]:
    """
    Build provider configs from environment variables.

    PROMPT_FORGE_PROVIDER_ORDER   comma list, e.g. "claude,openai,gemini"
    PROMPT_FORGE_PRIMARY          provider marked primary (default: first)
    PROMPT_FORGE_<KIND>_MODEL     model override per provider
    """
    env = os.environ if env is None else env
    order_raw = env.get("PROMPT_FORGE_PROVIDER_ORDER", "claude,openai,gemini")
    order = [_parse_kind(k) for k in order_raw.split(",") if k.strip()]
    primary_raw = env.get("PROMPT_FORGE_PRIMARY", "")
    primary = _parse_kind(primary_raw) if primary_raw.strip() else None

    configs = []
    for priority, kind in enumerate(order, start=1):
        meta = PROVIDER_METADATA[kind]
        key = next((env[v] for v in meta.env_vars if env.get(v)), "")
        if not key:
            continue
        if not has_valid_key_format(kind, key):
            log.warning(f"{meta.display_name} key does not start with '{meta.key_prefix}'")
        configs.append(ProviderConfig(
            provider=kind,
            api_key=key,
            enabled=True,
            is_primary=(kind == primary) if primary else not configs,
            priority=priority,
            model=env.get(f"PROMPT_FORGE_{kind.value.upper()}_MODEL") or None,
            display_name=meta.display_name,
        ))
    return configs


def providers_from_file(path: Path, env: Optional[Mapping[str, str]] = None) -> List[ProviderConfig]:
    """
    Load the ``providers:`` list from a YAML/JSON file.

    A missing ``api_key`` falls back to the provider's environment variable so
    secrets can stay out of the file.
    """
    env = os.environ if env is None else env
    data = load_mapping(path)
    configs = []
    for index, entry in enumerate(data.get("providers") or [], start=1):
        kind = _parse_kind(entry.get("provider", ""))
        meta = PROVIDER_METADATA[kind]
        key = entry.get("api_key") or next((env[v] for v in meta.env_vars if env.get(v)), "")
        configs.append(ProviderConfig(
            provider=kind,
            api_key=key,
            enabled=bool(entry.get("enabled", True)),
            is_primary=bool(entry.get("primary", entry.get("is_primary", False))),
            priority=int(entry.get("priority", index)),
            model=entry.get("model"),
            display_name=entry.get("display_name", meta.display_name),
        ))
    return configs


def _rewriter_from_mapping(base: RewriterConfig, data: Dict) -> RewriterConfig:
    known = {k: v for k, v in data.items() if k in RewriterConfig.__dataclass_fields__}
    for key in ("sample_temperatures", "sample_labels"):
        if key in known:
            known[key] = tuple(known[key])
    return replace(base, **known)


@dataclass(frozen=True)
class Settings:
    analysis: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG
    rewriter: RewriterConfig = DEFAULT_REWRITER_CONFIG
    providers: ProviderRegistry = field(default_factory=ProviderRegistry)


def load_settings(config_path: Optional[Path] = None, dotenv_path: Optional[Path] = None) -> Settings:
    """Read .env, then the environment or an explicit config file."""
    load_dotenv(dotenv_path)

    rewriter = DEFAULT_REWRITER_CONFIG
    timeout = os.getenv("PROMPT_FORGE_TIMEOUT")
    if timeout:
        rewriter = replace(rewriter, request_timeout=float(timeout))
    if os.getenv("PROMPT_FORGE_MULTI_SAMPLE", "1") == "0":
        rewriter = replace(rewriter, multi_sample=False)

    if config_path is not None:
        data = load_mapping(config_path)
        providers = providers_from_file(config_path)
        if isinstance(data.get("rewriter"), dict):
            rewriter = _rewriter_from_mapping(rewriter, data["rewriter"])
        log.info(f"Loaded {len(providers)} provider config(s) from {config_path}")
    else:
        providers = providers_from_env()
        log.debug(f"Loaded {len(providers)} provider config(s) from environment")

    return Settings(rewriter=rewriter, providers=ProviderRegistry(providers))
