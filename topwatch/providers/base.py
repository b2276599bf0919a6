"""Drafting provider interface.

A provider turns a rendered prompt into post text. Providers are looked
up by the AI_PROVIDER name, case-insensitively.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass
class CompletionConfig:
    """Model settings for one drafting call."""

    model: str
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class CompletionResult:
    """Drafted text and token usage as reported by the provider."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0


@runtime_checkable
class Provider(Protocol):
    name: str

    def complete(self, prompt: str, config: CompletionConfig) -> CompletionResult:
        """Draft text for `prompt`.

        Raises:
            ProviderError: If the provider call fails.
        """
        ...


class ProviderRegistry:
    """Drafting providers available to a run, keyed by AI_PROVIDER name."""

    def __init__(self):
        self._by_name: dict[str, Provider] = {}

    def register(self, provider: Provider) -> None:
        self._by_name[provider.name.lower()] = provider

    def get(self, name: str) -> Provider | None:
        return self._by_name.get(name.strip().lower())

    def names(self) -> list[str]:
        """Registered provider names, sorted."""
        return sorted(self._by_name)
