import asyncio
from types import SimpleNamespace

import anthropic
import httpx
import openai
import pytest

from promptforge.core.golden import evaluate
from promptforge.core.models import FailureKind, ProviderConfig, ProviderKind, SessionContext
from promptforge.core.rewriting.prompts import build_user_message, parse_generation
from promptforge.utils.config import RewriterConfig
from promptforge.utils.llm_client import (
    ProviderClient,
    ProviderError,
    _flatten_anthropic_content,
    build_timeout,
    classify_exception,
    get_provider_client,
)

REQUEST = httpx.Request("POST", "https://api.example.com/v1")


def response(status):
    return httpx.Response(status, request=REQUEST)


# ── failure classification ───────────────────────────────────────────────────
@pytest.mark.parametrize("exc,kind", [
    (asyncio.TimeoutError(), FailureKind.TIMEOUT),
    (httpx.ConnectTimeout("slow", request=REQUEST), FailureKind.TIMEOUT),
    (httpx.ConnectError("refused", request=REQUEST), FailureKind.NETWORK),
    (httpx.HTTPStatusError("x", request=REQUEST, response=response(401)), FailureKind.AUTH),
    (httpx.HTTPStatusError("x", request=REQUEST, response=response(429)), FailureKind.RATE_LIMIT),
    (httpx.HTTPStatusError("x", request=REQUEST, response=response(503)), FailureKind.SERVER_ERROR),
    (httpx.HTTPStatusError("x", request=REQUEST, response=response(418)), FailureKind.UNKNOWN),
    (ValueError("bad json"), FailureKind.MALFORMED_RESPONSE),
    (RuntimeError("???"), FailureKind.UNKNOWN),
])
def test_classify_exception(exc, kind):
    assert classify_exception(exc) == kind


def test_classify_sdk_exceptions():
    assert classify_exception(openai.RateLimitError("slow down", response=response(429), body=None)) \
        == FailureKind.RATE_LIMIT
    assert classify_exception(openai.APITimeoutError(request=REQUEST)) == FailureKind.TIMEOUT
    assert classify_exception(openai.InternalServerError("boom", response=response(500), body=None)) \
        == FailureKind.SERVER_ERROR
    assert classify_exception(anthropic.AuthenticationError("nope", response=response(401), body=None)) \
        == FailureKind.AUTH
    assert classify_exception(anthropic.APIConnectionError(request=REQUEST)) == FailureKind.NETWORK


def test_provider_error_str():
    err = ProviderError(FailureKind.AUTH, ProviderKind.CLAUDE, "invalid key")
    assert str(err) == "claude (auth): invalid key"


# ── client ───────────────────────────────────────────────────────────────────
def test_build_timeout():
    timeout = build_timeout(RewriterConfig(request_timeout=12.0, connect_timeout=3.0))
    assert timeout.read == 12.0
    assert timeout.connect == 3.0


def test_client_uses_default_model():
    client = get_provider_client(ProviderConfig(ProviderKind.GEMINI, api_key="AIza-test"))
    assert client.model == "gemini-2.0-flash"
    client = get_provider_client(ProviderConfig(ProviderKind.OPENAI, api_key="sk-x", model="gpt-4o-mini"))
    assert client.model == "gpt-4o-mini"


@pytest.mark.asyncio
async def test_generate_wraps_transport_errors(monkeypatch):
    client = ProviderClient(ProviderConfig(ProviderKind.OPENAI, api_key="sk-x"), build_timeout())

    async def refuse(*args):
        raise httpx.ConnectError("refused", request=REQUEST)

    monkeypatch.setattr(client, "_generate_openai", refuse)
    with pytest.raises(ProviderError) as info:
        await client.generate("system", "prompt")
    assert info.value.kind == FailureKind.NETWORK
    assert info.value.provider == ProviderKind.OPENAI


@pytest.mark.asyncio
async def test_generate_rejects_empty_body(monkeypatch):
    client = ProviderClient(ProviderConfig(ProviderKind.CLAUDE, api_key="sk-ant-x"), build_timeout())

    async def blank(*args):
        return "   "

    monkeypatch.setattr(client, "_generate_claude", blank)
    with pytest.raises(ProviderError) as info:
        await client.generate("system", "prompt")
    assert info.value.kind == FailureKind.MALFORMED_RESPONSE


@pytest.mark.asyncio
async def test_validate_key(monkeypatch):
    client = ProviderClient(ProviderConfig(ProviderKind.CLAUDE, api_key="sk-ant-x"), build_timeout())

    async def ok(*args):
        return "OK"

    async def denied(*args):
        raise ProviderError(FailureKind.AUTH, ProviderKind.CLAUDE, "invalid key")

    monkeypatch.setattr(client, "_generate_claude", ok)
    assert await client.validate_key()
    monkeypatch.setattr(client, "_generate_claude", denied)
    assert not await client.validate_key()


def test_flatten_anthropic_content():
    blocks = [
        SimpleNamespace(type="text", text="Hello, "),
        SimpleNamespace(type="tool_use", text=None),
        SimpleNamespace(type="text", text="world"),
    ]
    assert _flatten_anthropic_content(blocks) == "Hello, world"
    assert _flatten_anthropic_content(None) == ""


# ── messages and parsing ─────────────────────────────────────────────────────
def test_parse_generation_json():
    raw = ('```json\n{"rewrittenPrompt": "Add a logout button to Header.tsx", '
           '"explanation": "Named the file", "improvements": ["target file", "scope"]}\n```')
    generation = parse_generation(raw)
    assert generation.text == "Add a logout button to Header.tsx"
    assert generation.explanation == "Named the file"
    assert generation.improvements == ["target file", "scope"]


def test_parse_generation_plain_text():
    assert parse_generation("  Just a better prompt  ").text == "Just a better prompt"
    assert parse_generation("{not json}").text == "{not json}"
    assert parse_generation('{"other": 1}').text == '{"other": 1}'
    assert parse_generation("").text == ""


def test_user_message_contains_scores_and_context():
    text = "로그인 기능 만들어줘"
    context = SessionContext(project_path="/work/shop", tech_stack=["Django"], git_branch="feat/login")
    message = build_user_message(text, evaluate(text), context)
    assert text in message
    assert "GOLDEN scores:" in message
    assert "Issues found:" in message
    assert "- Project: shop" in message
    assert "- Tech stack: Django" in message
    assert "- Branch: feat/login" in message


def test_user_message_without_context():
    message = build_user_message("fix it", evaluate("fix it"))
    assert "Session context:" not in message


@pytest.mark.asyncio
async def test_aclose_releases_sdk_client():
    client = ProviderClient(ProviderConfig(ProviderKind.OPENAI, api_key="sk-x"), build_timeout())
    await client.aclose()

    closed = []

    async def close():
        closed.append(True)

    client._sdk = SimpleNamespace(close=close)
    await client.aclose()
    await client.aclose()
    assert closed == [True]
    assert client._sdk is None
