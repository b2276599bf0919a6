"""OpenAI provider."""

from typing import Any

from ..errors import ProviderError
from ..http import request_json
from .base import CompletionConfig, CompletionResult

OPENAI_BASE_URL = "https://api.openai.com"


class OpenAIProvider:
    """Provider for OpenAI chat models."""

    name = "openai"

    def __init__(self, api_key: str, base_url: str = OPENAI_BASE_URL):
        if not api_key:
            raise ProviderError("OpenAI API key is not configured", retryable=False)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    def complete(self, prompt: str, config: CompletionConfig) -> CompletionResult:
        """Execute a chat completion request."""
        body: dict[str, Any] = {
            "model": config.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if config.max_tokens:
            body["max_tokens"] = config.max_tokens
        if config.temperature is not None:
            body["temperature"] = config.temperature

        result = request_json(
            "POST",
            f"{self.base_url}/v1/chat/completions",
            service="OpenAI",
            headers={"Authorization": f"Bearer {self.api_key}"},
            body=body,
            timeout=120,
            error_cls=ProviderError,
        )
        return self._parse_response(result)

    def _parse_response(self, result: dict) -> CompletionResult:
        """Parse API response into CompletionResult."""
        choices = result.get("choices") or []
        content = ""
        if choices:
            message = choices[0].get("message") or {}
            content = message.get("content") or ""

        usage = result.get("usage") or {}
        return CompletionResult(
            content=content.strip(),
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
        )
