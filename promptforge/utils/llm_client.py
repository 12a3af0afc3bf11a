"""
llm_client.py – one async ``generate()`` over Claude, OpenAI and Gemini.

The provider is a tagged value (``ProviderConfig.provider``) and the client
dispatches on it, so the failover loop treats every provider the same way.
Every SDK or HTTP failure is folded into ``ProviderError`` with a
``FailureKind``; nothing else escapes ``generate()``.

Usage:
    client = get_provider_client(config, rewriter_config)
    text = await client.generate(system, prompt, temperature=0.5, max_tokens=1500)
"""

import asyncio
from typing import Any, Iterable, Optional

import anthropic
import httpx
import openai
from openai import AsyncOpenAI

from promptforge.core.models import FailureKind, ProviderConfig, ProviderKind
from promptforge.utils.config import (
    DEFAULT_REWRITER_CONFIG,
    PROVIDER_METADATA,
    RewriterConfig,
)
from promptforge.utils.logging_helper import get_logger

log = get_logger()

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class ProviderError(Exception):
    """A classified provider failure; every kind triggers failover."""

    def __init__(self, kind: FailureKind, provider: Optional[ProviderKind], message: str):
        super().__init__(message)
        self.kind = kind
        self.provider = provider
        self.message = message

    def __str__(self) -> str:
        name = self.provider.value if self.provider else "provider"
        return f"{name} ({self.kind.value}): {self.message}"


def _kind_for_status(status: Optional[int]) -> FailureKind:
    if status in (401, 403):
        return FailureKind.AUTH
    if status == 429:
        return FailureKind.RATE_LIMIT
    if status is not None and status >= 500:
        return FailureKind.SERVER_ERROR
    return FailureKind.UNKNOWN


def classify_exception(exc: BaseException) -> FailureKind:
    """Map SDK, httpx and asyncio exceptions onto the failure taxonomy."""
    if isinstance(exc, ProviderError):
        return exc.kind
    # timeouts first: the SDK timeout errors subclass their connection errors
    if isinstance(exc, (anthropic.APITimeoutError, openai.APITimeoutError,
                        httpx.TimeoutException, asyncio.TimeoutError)):
        return FailureKind.TIMEOUT
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError,
                        openai.AuthenticationError, openai.PermissionDeniedError)):
        return FailureKind.AUTH
    if isinstance(exc, (anthropic.RateLimitError, openai.RateLimitError)):
        return FailureKind.RATE_LIMIT
    if isinstance(exc, (anthropic.APIStatusError, openai.APIStatusError)):
        return _kind_for_status(exc.status_code)
    if isinstance(exc, httpx.HTTPStatusError):
        return _kind_for_status(exc.response.status_code)
    if isinstance(exc, (anthropic.APIConnectionError, openai.APIConnectionError, httpx.TransportError)):
        return FailureKind.NETWORK
    if isinstance(exc, (ValueError, KeyError, IndexError, TypeError)):
        return FailureKind.MALFORMED_RESPONSE
    return FailureKind.UNKNOWN


def _flatten_anthropic_content(content_blocks: Iterable[Any]) -> str:
    """Anthropic returns a list of blocks; join the text ones."""
    parts = []
    for block in content_blocks or []:
        if getattr(block, "type", "text") != "text":
            continue
        text = getattr(block, "text", None)
        if isinstance(text, str):
            parts.append(text)
        elif isinstance(block, str):
            parts.append(block)
    return "".join(parts)


class ProviderClient:
    """Uniform async client for one configured provider."""

    def __init__(self, config: ProviderConfig, timeout: httpx.Timeout):
        self.config = config
        self.kind = config.provider
        self.model = config.model or PROVIDER_METADATA[config.provider].default_model
        self.timeout = timeout
        self._sdk = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def generate(self, system: str, prompt: str,
                       temperature: float = 0.5, max_tokens: int = 1500) -> str:
        """Return the raw completion text, or raise ProviderError."""
        try:
            if self.kind == ProviderKind.CLAUDE:
                text = await self._generate_claude(system, prompt, temperature, max_tokens)
            elif self.kind == ProviderKind.OPENAI:
                text = await self._generate_openai(system, prompt, temperature, max_tokens)
            else:
                text = await self._generate_gemini(system, prompt, temperature, max_tokens)
        except ProviderError:
            raise
        except Exception as exc:
            kind = classify_exception(exc)
            log.warning(f"{self.kind.value} request failed ({kind.value}): {exc}")
            raise ProviderError(kind, self.kind, str(exc) or type(exc).__name__) from exc

        if not text or not text.strip():
            raise ProviderError(FailureKind.MALFORMED_RESPONSE, self.kind, "empty response body")
        return text

    async def validate_key(self) -> bool:
        """Send a minimal request; True when the provider answers."""
        try:
            await self.generate("Reply with OK.", "ping", temperature=0.0, max_tokens=5)
        except ProviderError as exc:
            log.info(f"Key check failed for {self.kind.value}: {exc}")
            return False
        return True

    async def aclose(self) -> None:
        """Close the SDK client and its connection pool, if one was opened."""
        if self._sdk is not None:
            sdk, self._sdk = self._sdk, None
            await sdk.close()

    # ------------------------------------------------------------------
    # Provider dispatch
    # ------------------------------------------------------------------
    async def _generate_claude(self, system, prompt, temperature, max_tokens) -> str:
        if self._sdk is None:
            self._sdk = anthropic.AsyncAnthropic(api_key=self.config.api_key, timeout=self.timeout)
        response = await self._sdk.messages.create(
            model=self.model,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return _flatten_anthropic_content(response.content)

    async def _generate_openai(self, system, prompt, temperature, max_tokens) -> str:
        if self._sdk is None:
            self._sdk = AsyncOpenAI(api_key=self.config.api_key, timeout=self.timeout)
        response = await self._sdk.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if not response.choices:
            raise ProviderError(FailureKind.MALFORMED_RESPONSE, self.kind, "no choices in response")
        return response.choices[0].message.content or ""

    async def _generate_gemini(self, system, prompt, temperature, max_tokens) -> str:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "systemInstruction": {"parts": [{"text": system}]},
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }
        async with httpx.AsyncClient(timeout=self.timeout) as http:
            response = await http.post(
                GEMINI_URL.format(model=self.model),
                params={"key": self.config.api_key},
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(FailureKind.MALFORMED_RESPONSE, self.kind,
                                f"unexpected Gemini payload: {exc}") from exc


def build_timeout(rewriter: RewriterConfig = DEFAULT_REWRITER_CONFIG) -> httpx.Timeout:
    return httpx.Timeout(rewriter.request_timeout, connect=rewriter.connect_timeout)


def get_provider_client(config: ProviderConfig,
                        rewriter: RewriterConfig = DEFAULT_REWRITER_CONFIG) -> ProviderClient:
    """Default ``client_factory`` used by the rewrite orchestrator."""
    return ProviderClient(config, timeout=build_timeout(rewriter))
