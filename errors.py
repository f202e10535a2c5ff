"""
Error taxonomy for the acquisition and enhancement pipeline
"""
from typing import List, Optional


class PipelineError(Exception):
    """Base class for every error raised by the pipeline components."""


class NavigationTimeout(PipelineError):
    def __init__(self, url: str, timeout_ms: int) -> None:
        super().__init__(f"Navigation to {url} did not settle within {timeout_ms}ms")
        self.url = url
        self.timeout_ms = timeout_ms


class NavigationError(PipelineError):
    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"Navigation to {url} failed: {message}")
        self.url = url


class ExtractionInsufficient(PipelineError):
    def __init__(self, url: str) -> None:
        super().__init__(f"No content could be extracted from {url}")
        self.url = url


class ProviderUnavailable(PipelineError):
    """A search or LLM provider is unconfigured, unreachable or returned an error."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ModelLoadingError(ProviderUnavailable):
    """The hosted model is still warming up; the caller may retry later."""

    def __init__(self, provider: str) -> None:
        super().__init__(provider, "Model is loading. Please try again in a few minutes.")


class EnhancementError(PipelineError):
    pass


class NoEnhancementProviderAvailable(EnhancementError):
    def __init__(self, errors: Optional[List[Exception]] = None) -> None:
        self.errors = list(errors or [])
        if self.errors:
            detail = " | ".join(str(e) for e in self.errors)
            message = f"All enhancement providers failed: {detail}"
        else:
            message = "No AI API keys configured. Set GROQ_API_KEY or HUGGINGFACE_API_KEY."
        super().__init__(message)


class InsufficientEnhancement(EnhancementError):
    def __init__(self, length: int, minimum: int, provider: str = "") -> None:
        who = f"{provider} " if provider else ""
        super().__init__(f"AI {who}returned insufficient content ({length} < {minimum} chars)")
        self.length = length
        self.minimum = minimum
        self.provider = provider


class PersistenceError(PipelineError):
    pass


class FatalStartupError(PipelineError):
    pass
