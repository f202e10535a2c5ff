"""
LLM-backed article rewriting

Groq (OpenAI-compatible chat completions) is the primary provider and the
Hugging Face Inference API the fallback. Providers are tried in order; a
provider without a credential is skipped without a network call.
"""
import logging
import os
import re
from typing import Any, List, Optional, Sequence

import httpx
from openai import AsyncOpenAI

import config
from errors import (
    EnhancementError,
    InsufficientEnhancement,
    ModelLoadingError,
    NoEnhancementProviderAvailable,
    ProviderUnavailable,
)
from html_sanitizer import strip_html
from models import ReferenceDocument

LOGGER = logging.getLogger(__name__)

ORIGINAL_CHAR_BUDGET = 3000
REFERENCE_CHAR_BUDGET = 1500
MAX_PROMPT_REFERENCES = 3
MIN_ENHANCED_LENGTH = 100

_FENCE_RE = re.compile(r"^```(?:html)?\s*([\s\S]*?)\s*```$", re.IGNORECASE)

SYSTEM_PROMPT = (
    "You are an expert content writer and SEO specialist. Rewrite articles to improve "
    "quality, readability, and SEO while maintaining the core message."
)

INSTRUCTIONS = """
INSTRUCTIONS:
1. Rewrite the original article with improved structure and flow
2. Use clear headings (H2, H3) for better organization
3. Make it more engaging and reader-friendly
4. Add relevant keywords naturally for SEO
5. Keep the tone professional but conversational
6. Maintain factual accuracy from the original
7. Output in clean HTML format with proper tags (<h2>, <p>, <ul>, etc.)
8. Aim for similar or slightly longer length than original

Enhanced article:"""


def build_enhancement_prompt(
    original_html: str,
    references: Sequence[ReferenceDocument] = (),
    max_references: int = MAX_PROMPT_REFERENCES,
) -> str:
    original_text = strip_html(original_html)[:ORIGINAL_CHAR_BUDGET]
    prompt = (
        "Rewrite this article to match the style, formatting, and structure of top-ranking "
        "articles. Maintain the core message but improve readability and SEO.\n\n"
        f"ORIGINAL ARTICLE:\n{original_text}\n\n"
    )
    refs = list(references)[:max_references]
    if refs:
        prompt += "REFERENCE ARTICLES (top-ranking content for inspiration):\n\n"
        for index, ref in enumerate(refs, start=1):
            ref_text = strip_html(ref.content)[:REFERENCE_CHAR_BUDGET]
            prompt += f"Reference {index} ({ref.title}):\n{ref_text}\n\n"
    return prompt + INSTRUCTIONS


def _unwrap_code_fence(text: str) -> str:
    """Models sometimes wrap the HTML in a markdown fence."""
    s = (text or "").strip()
    fence = _FENCE_RE.match(s)
    return fence.group(1).strip() if fence else s


class GroqProvider:
    name = "groq"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = config.GROQ_MODEL,
        base_url: str = config.GROQ_BASE_URL,
        timeout_s: float = 60.0,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> Any:
        return AsyncOpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout_s, max_retries=0)

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise ProviderUnavailable(self.name, "GROQ_API_KEY not found in environment variables")
        LOGGER.info("[enhance] Calling Groq API (%s)...", self.model)
        try:
            async with self._client() as client:
                chat = await client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
        except Exception as e:
            raise ProviderUnavailable(self.name, f"Groq API error: {e}") from e
        try:
            return (chat.choices[0].message.content or "").strip()
        except (AttributeError, IndexError) as e:
            raise ProviderUnavailable(self.name, f"Unexpected Groq response: {e}") from e


class HuggingFaceProvider:
    name = "huggingface"

    def __init__(
        self,
        api_key: Optional[str],
        model_url: str = config.HUGGINGFACE_MODEL_URL,
        timeout_s: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model_url = model_url
        self.timeout_s = timeout_s
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise ProviderUnavailable(self.name, "HUGGINGFACE_API_KEY not found in environment variables")
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": 2000,
                "temperature": 0.7,
                "top_p": 0.95,
                "return_full_text": False,
            },
        }
        LOGGER.info("[enhance] Calling Hugging Face API...")
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.post(self.model_url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise ProviderUnavailable(self.name, f"Hugging Face request failed: {e}") from e
        if r.status_code == 503:
            raise ModelLoadingError(self.name)
        if r.status_code >= 400:
            raise ProviderUnavailable(self.name, f"Hugging Face API error {r.status_code}: {r.text[:200]}")
        try:
            data = r.json()
            return (data[0].get("generated_text") or "").strip()
        except (ValueError, LookupError, AttributeError) as e:
            raise ProviderUnavailable(self.name, f"Unexpected Hugging Face response: {e}") from e


class LLMEnhancementClient:
    def __init__(self, providers: Sequence[Any], min_length: int = MIN_ENHANCED_LENGTH) -> None:
        self.providers = list(providers)
        self.min_length = min_length

    @classmethod
    def from_env(cls) -> "LLMEnhancementClient":
        return cls([
            GroqProvider(os.environ.get("GROQ_API_KEY")),
            HuggingFaceProvider(os.environ.get("HUGGINGFACE_API_KEY")),
        ])

    async def enhance(self, original_html: str, references: Sequence[ReferenceDocument] = ()) -> str:
        """Rewrite the original article using the reference articles as inspiration.

        Raises NoEnhancementProviderAvailable when no provider is configured or
        all of them failed, ModelLoadingError when the last provider is still
        warming up and InsufficientEnhancement when the last provider returned
        a body shorter than `min_length`.
        """
        prompt = build_enhancement_prompt(original_html, references)
        errors: List[Exception] = []
        for provider in self.providers:
            if not provider.configured:
                LOGGER.debug("[enhance] %s not configured, skipping", provider.name)
                continue
            try:
                content = await provider.generate(prompt)
            except ProviderUnavailable as e:
                LOGGER.warning("[enhance] %s failed: %s", provider.name, e)
                errors.append(e)
                continue
            content = _unwrap_code_fence(content)
            if len(content) < self.min_length:
                e = InsufficientEnhancement(len(content), self.min_length, provider.name)
                LOGGER.warning("[enhance] %s", e)
                errors.append(e)
                continue
            LOGGER.info("[enhance] Article enhanced by %s (%s chars)", provider.name, len(content))
            return content

        if errors and isinstance(errors[-1], (ModelLoadingError, EnhancementError)):
            raise errors[-1]
        raise NoEnhancementProviderAvailable(errors)
