"""Tests for the LLM provider chain and prompt construction."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from enhancer import (
    GroqProvider,
    HuggingFaceProvider,
    LLMEnhancementClient,
    build_enhancement_prompt,
)
from errors import InsufficientEnhancement, ModelLoadingError, NoEnhancementProviderAvailable, ProviderUnavailable
from models import ReferenceDocument

_GOOD_HTML = "<h2>Better</h2><p>" + "Improved content. " * 20 + "</p>"


def _hf_transport(status: int, body) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=json.dumps(body).encode(), headers={"Content-Type": "application/json"})

    return httpx.MockTransport(handler)


def _groq_completion(text: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def _mock_openai(create: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.chat.completions.create = create
    return MagicMock(return_value=client)


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def test_prompt_truncates_original_and_references() -> None:
    refs = [ReferenceDocument(url=f"https://r{i}.example", title=f"Ref {i}", content="<p>" + "r" * 2000 + "</p>") for i in range(4)]

    prompt = build_enhancement_prompt("<p>" + "o" * 5000 + "</p>", refs)

    assert "o" * 3000 in prompt
    assert "o" * 3001 not in prompt
    assert "r" * 1500 in prompt
    assert "r" * 1501 not in prompt
    assert "Reference 3 (Ref 2)" in prompt
    assert "Reference 4" not in prompt
    assert prompt.rstrip().endswith("Enhanced article:")


def test_prompt_without_references() -> None:
    prompt = build_enhancement_prompt("<p>hello</p>")

    assert "ORIGINAL ARTICLE:\nhello" in prompt
    assert "REFERENCE ARTICLES" not in prompt


# ---------------------------------------------------------------------------
# Provider chain
# ---------------------------------------------------------------------------

def test_primary_provider_result_is_used() -> None:
    create = AsyncMock(return_value=_groq_completion("```html\n" + _GOOD_HTML + "\n```"))
    fallback = HuggingFaceProvider("hf-key", transport=_hf_transport(500, {}))
    client = LLMEnhancementClient([GroqProvider("groq-key"), fallback])

    with patch("enhancer.AsyncOpenAI", _mock_openai(create)):
        result = asyncio.run(client.enhance("<p>original</p>"))

    assert result == _GOOD_HTML
    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "llama-3.3-70b-versatile"
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 4000
    assert kwargs["messages"][0]["role"] == "system"


def test_only_secondary_configured_skips_primary() -> None:
    openai_cls = MagicMock()
    hf = HuggingFaceProvider("hf-key", transport=_hf_transport(200, [{"generated_text": _GOOD_HTML}]))
    client = LLMEnhancementClient([GroqProvider(None), hf])

    with patch("enhancer.AsyncOpenAI", openai_cls):
        result = asyncio.run(client.enhance("<p>original</p>"))

    assert result == _GOOD_HTML
    openai_cls.assert_not_called()


def test_primary_failure_falls_back_to_secondary() -> None:
    create = AsyncMock(side_effect=RuntimeError("rate limited"))
    hf = HuggingFaceProvider("hf-key", transport=_hf_transport(200, [{"generated_text": _GOOD_HTML}]))
    client = LLMEnhancementClient([GroqProvider("groq-key"), hf])

    with patch("enhancer.AsyncOpenAI", _mock_openai(create)):
        result = asyncio.run(client.enhance("<p>original</p>"))

    assert result == _GOOD_HTML
    create.assert_awaited_once()


def test_short_response_raises_insufficient_enhancement() -> None:
    hf = HuggingFaceProvider("hf-key", transport=_hf_transport(200, [{"generated_text": "x" * 50}]))
    client = LLMEnhancementClient([GroqProvider(None), hf])

    with pytest.raises(InsufficientEnhancement) as exc_info:
        asyncio.run(client.enhance("<p>original</p>"))

    assert exc_info.value.length == 50


def test_model_loading_is_reported() -> None:
    hf = HuggingFaceProvider("hf-key", transport=_hf_transport(503, {"error": "loading"}))
    client = LLMEnhancementClient([GroqProvider(None), hf])

    with pytest.raises(ModelLoadingError, match="Model is loading"):
        asyncio.run(client.enhance("<p>original</p>"))


def test_no_keys_configured() -> None:
    client = LLMEnhancementClient([GroqProvider(None), HuggingFaceProvider(None)])

    with pytest.raises(NoEnhancementProviderAvailable, match="No AI API keys configured"):
        asyncio.run(client.enhance("<p>original</p>"))


def test_all_providers_failing_collects_errors() -> None:
    create = AsyncMock(side_effect=RuntimeError("down"))
    hf = HuggingFaceProvider("hf-key", transport=_hf_transport(401, {"error": "bad token"}))
    client = LLMEnhancementClient([GroqProvider("groq-key"), hf])

    with patch("enhancer.AsyncOpenAI", _mock_openai(create)):
        with pytest.raises(NoEnhancementProviderAvailable) as exc_info:
            asyncio.run(client.enhance("<p>original</p>"))

    assert len(exc_info.value.errors) == 2


def test_from_env_reads_keys_at_call_time() -> None:
    with patch.dict("os.environ", {"HUGGINGFACE_API_KEY": "hf"}, clear=True):
        client = LLMEnhancementClient.from_env()

    configured = [p.name for p in client.providers if p.configured]
    assert configured == ["huggingface"]


def test_huggingface_payload() -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"generated_text": _GOOD_HTML}])

    provider = HuggingFaceProvider("hf-key", transport=httpx.MockTransport(handler))

    asyncio.run(provider.generate("prompt text"))

    assert captured["auth"] == "Bearer hf-key"
    assert captured["body"]["inputs"] == "prompt text"
    assert captured["body"]["parameters"]["max_new_tokens"] == 2000
    assert captured["body"]["parameters"]["return_full_text"] is False


def test_groq_client_is_closed_after_each_call() -> None:
    create = AsyncMock(return_value=_groq_completion(_GOOD_HTML))
    openai_cls = _mock_openai(create)
    provider = GroqProvider("groq-key")

    with patch("enhancer.AsyncOpenAI", openai_cls):
        asyncio.run(provider.generate("first prompt"))
        asyncio.run(provider.generate("second prompt"))

    client = openai_cls.return_value
    assert openai_cls.call_count == 2
    assert client.__aexit__.await_count == 2
    assert openai_cls.call_args.kwargs["max_retries"] == 0


def test_groq_client_is_closed_when_request_fails() -> None:
    create = AsyncMock(side_effect=RuntimeError("503 from upstream"))
    openai_cls = _mock_openai(create)

    with patch("enhancer.AsyncOpenAI", openai_cls):
        with pytest.raises(ProviderUnavailable):
            asyncio.run(GroqProvider("groq-key").generate("prompt"))

    openai_cls.return_value.__aexit__.assert_awaited_once()
