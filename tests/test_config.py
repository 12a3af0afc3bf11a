from dataclasses import FrozenInstanceError

import pytest

from conftest import provider
from promptforge.core.models import ProviderKind, SessionContext
from promptforge.utils.config import (
    AnalysisConfig,
    ProviderRegistry,
    RewriterConfig,
    enabled_providers,
    has_valid_key_format,
    load_settings,
    providers_from_env,
    providers_from_file,
)

CLAUDE = ProviderKind.CLAUDE
OPENAI = ProviderKind.OPENAI
GEMINI = ProviderKind.GEMINI


def test_providers_from_env_default_order():
    env = {"ANTHROPIC_API_KEY": "sk-ant-abc", "GEMINI_API_KEY": "AIza-xyz"}
    configs = providers_from_env(env)
    assert [c.provider for c in configs] == [CLAUDE, GEMINI]
    assert [c.priority for c in configs] == [1, 3]
    assert configs[0].is_primary and not configs[1].is_primary


def test_providers_from_env_custom_order_and_aliases():
    env = {
        "PROMPT_FORGE_PROVIDER_ORDER": "google,anthropic",
        "PROMPT_FORGE_PRIMARY": "anthropic",
        "GOOGLE_API_KEY": "AIza-xyz",
        "ANTHROPIC_API_KEY": "sk-ant-abc",
        "PROMPT_FORGE_CLAUDE_MODEL": "claude-3-5-haiku-latest",
    }
    configs = providers_from_env(env)
    assert [c.provider for c in configs] == [GEMINI, CLAUDE]
    assert configs[1].is_primary
    assert configs[1].model == "claude-3-5-haiku-latest"


def test_providers_from_file_falls_back_to_env_key(tmp_path):
    path = tmp_path / "providers.yaml"
    path.write_text(
        "providers:\n"
        "  - provider: openai\n"
        "    priority: 2\n"
        "  - provider: claude\n"
        "    api_key: sk-ant-file\n"
        "    priority: 1\n"
        "    primary: true\n"
        "  - provider: gemini\n"
        "    enabled: false\n",
        encoding="utf-8",
    )
    configs = providers_from_file(path, env={"OPENAI_API_KEY": "sk-env"})
    assert configs[0].api_key == "sk-env"
    assert configs[1].is_primary
    assert not configs[2].enabled
    assert [c.provider for c in enabled_providers(configs)] == [CLAUDE, OPENAI]


def test_enabled_providers_is_stable_and_filters():
    configs = [
        provider(OPENAI, 2),
        provider(CLAUDE, 1, api_key="  "),
        provider(GEMINI, 2),
        provider(CLAUDE, 1, enabled=False),
    ]
    assert [c.provider for c in enabled_providers(configs)] == [OPENAI, GEMINI]


def test_registry_returns_snapshots():
    registry = ProviderRegistry([provider(OPENAI, 2), provider(GEMINI, 1)])
    snapshot = registry.get_providers()
    snapshot.clear()
    assert len(registry.get_providers()) == 2
    assert registry.get_primary_provider().provider == GEMINI
    assert registry.has_any_provider()
    assert not ProviderRegistry().has_any_provider()
    assert ProviderRegistry().get_primary_provider() is None


def test_key_format():
    assert has_valid_key_format(CLAUDE, "sk-ant-123")
    assert not has_valid_key_format(CLAUDE, "sk-123")
    assert has_valid_key_format(GEMINI, "AIzaSy")
    assert not has_valid_key_format(OPENAI, "   ")


def test_provider_config_masks_key():
    data = provider(OPENAI, api_key="sk-secret").to_dict()
    assert data["api_key"] == "***"
    assert data["provider"] == "openai"


def test_configs_are_frozen():
    with pytest.raises(FrozenInstanceError):
        AnalysisConfig().medium_length = 10
    with pytest.raises(TypeError):
        AnalysisConfig().guideline_weights["beExplicit"] = 1.0


def test_rewriter_temperatures():
    assert RewriterConfig().temperatures() == [
        ("conservative", 0.3), ("balanced", 0.5), ("comprehensive", 0.7),
    ]
    assert RewriterConfig(multi_sample=False).temperatures() == [("balanced", 0.5)]
    four = RewriterConfig(sample_temperatures=(0.2, 0.4, 0.6, 0.8)).temperatures()
    assert four[-1] == ("sample-4", 0.8)


def test_load_settings_from_env(clean_env, tmp_path):
    clean_env.setenv("OPENAI_API_KEY", "sk-env")
    clean_env.setenv("PROMPT_FORGE_TIMEOUT", "12")
    clean_env.setenv("PROMPT_FORGE_MULTI_SAMPLE", "0")
    settings = load_settings(dotenv_path=tmp_path / ".env")
    assert settings.rewriter.request_timeout == 12.0
    assert not settings.rewriter.multi_sample
    assert [c.provider for c in settings.providers.get_providers()] == [OPENAI]


def test_load_settings_from_file(clean_env, tmp_path):
    path = tmp_path / "prompt-forge.yaml"
    path.write_text(
        "providers:\n"
        "  - provider: claude\n"
        "    api_key: sk-ant-file\n"
        "rewriter:\n"
        "  max_attempts: 2\n"
        "  sample_temperatures: [0.2, 0.9]\n"
        "  unknown_key: ignored\n",
        encoding="utf-8",
    )
    settings = load_settings(path, dotenv_path=tmp_path / ".env")
    assert settings.rewriter.max_attempts == 2
    assert settings.rewriter.sample_temperatures == (0.2, 0.9)
    assert settings.providers.get_primary_provider().provider == CLAUDE


def test_session_context_from_camel_case():
    ctx = SessionContext.from_dict({
        "projectPath": "/home/dev/shop",
        "techStack": ["Django"],
        "currentTask": "작업 진행 중",
        "gitBranch": "main",
        "lastExchange": {"userMessage": "add tests", "assistantFiles": ["shop/tests.py"]},
    })
    assert ctx.project_name == "shop"
    assert not ctx.has_active_task
    assert not ctx.has_feature_branch
    assert ctx.last_exchange.assistant_files == ["shop/tests.py"]
    assert SessionContext().project_name == "project"
