import os
import sys
from pathlib import Path

import pytest

# No log files during tests
os.environ["PROMPT_FORGE_LOG_DIR"] = ""

# Ensure the project root is on the import path so ``promptforge`` can be imported
root_path = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(root_path))

from promptforge.core.models import FailureKind, ProviderConfig, ProviderKind  # noqa: E402
from promptforge.utils.llm_client import ProviderError  # noqa: E402

PROVIDER_ENV_VARS = ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY",
                     "PROMPT_FORGE_PROVIDER_ORDER", "PROMPT_FORGE_PRIMARY",
                     "PROMPT_FORGE_TIMEOUT", "PROMPT_FORGE_MULTI_SAMPLE")


class StubClient:
    """Stands in for ProviderClient; replies by temperature or raises."""

    def __init__(self, reply=None, error=None, by_temperature=None):
        self.reply = reply
        self.error = error
        self.by_temperature = by_temperature or {}
        self.calls = []

    async def generate(self, system, prompt, temperature=0.5, max_tokens=1500):
        self.calls.append(temperature)
        outcome = self.by_temperature.get(temperature, self.error if self.error else self.reply)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def make_factory(clients):
    """client_factory returning the stub registered for each provider kind."""
    def factory(config, rewriter):
        return clients[config.provider]
    return factory


def provider(kind: ProviderKind, priority: int = 1, **kwargs) -> ProviderConfig:
    return ProviderConfig(provider=kind, api_key=kwargs.pop("api_key", "test-key"),
                          priority=priority, **kwargs)


def auth_error(kind: ProviderKind) -> ProviderError:
    return ProviderError(FailureKind.AUTH, kind, "invalid api key")


@pytest.fixture()
def clean_env(monkeypatch):
    for var in PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
