"""Text generation providers."""

from ..config import Config
from .base import (
    CompletionConfig,
    CompletionResult,
    Provider,
    ProviderRegistry,
)
from .gemini import GeminiProvider
from .openai import OpenAIProvider

__all__ = [
    "Provider",
    "ProviderRegistry",
    "CompletionConfig",
    "CompletionResult",
    "GeminiProvider",
    "OpenAIProvider",
    "setup_providers",
]


def setup_providers(config: Config) -> ProviderRegistry:
    """Register every provider that has an API key configured."""
    registry = ProviderRegistry()
    if config.gemini_api_key:
        registry.register(GeminiProvider(config.gemini_api_key))
    if config.openai_api_key:
        registry.register(OpenAIProvider(config.openai_api_key))
    return registry
