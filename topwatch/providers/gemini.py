"""Google Gemini provider.

Uses the google-genai SDK. Transient API errors (429, 5xx) and transport
failures are retried with the same backoff as the HTTP clients.
"""

import logging
import time

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..errors import ProviderError
from ..http import RETRY_DELAYS, RETRYABLE_STATUSES
from .base import CompletionConfig, CompletionResult

logger = logging.getLogger(__name__)


class GeminiProvider:
    """Provider for Google Gemini models."""

    name = "gemini"

    def __init__(self, api_key: str, retries: int = 3):
        if not api_key:
            raise ProviderError("Gemini API key is not configured", retryable=False)
        self.api_key = api_key
        self.retries = retries
        self._client: genai.Client | None = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _build_config(self, config: CompletionConfig) -> types.GenerateContentConfig | None:
        if config.temperature is None and config.max_tokens is None:
            return None
        return types.GenerateContentConfig(
            temperature=config.temperature,
            max_output_tokens=config.max_tokens,
        )

    def complete(self, prompt: str, config: CompletionConfig) -> CompletionResult:
        """Execute a generateContent request."""
        generation_config = self._build_config(config)

        for attempt in range(self.retries + 1):
            try:
                response = self.client.models.generate_content(
                    model=config.model,
                    contents=prompt,
                    config=generation_config,
                )
                return self._parse_response(response)

            except genai_errors.APIError as e:
                if e.code in RETRYABLE_STATUSES:
                    if attempt < self.retries:
                        logger.warning("Gemini returned %s, retrying (%d/%d)", e.code, attempt + 1, self.retries)
                        time.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                        continue
                    raise ProviderError(f"Gemini API error {e.code} after retries: {e.message}", retryable=True) from e
                raise ProviderError(f"Gemini API error {e.code}: {e.message}", retryable=False) from e

            except httpx.TransportError as e:
                if attempt < self.retries:
                    logger.warning("Gemini request failed: %s, retrying (%d/%d)", e, attempt + 1, self.retries)
                    time.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                    continue
                raise ProviderError(f"Gemini network error: {e}", retryable=True) from e

        raise ProviderError("Max retries exceeded", retryable=True)

    def _parse_response(self, response: types.GenerateContentResponse) -> CompletionResult:
        usage = response.usage_metadata
        return CompletionResult(
            content=(response.text or "").strip(),
            input_tokens=(usage.prompt_token_count or 0) if usage else 0,
            output_tokens=(usage.candidates_token_count or 0) if usage else 0,
        )
