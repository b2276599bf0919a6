"""Drafting the post text: AI draft when available, fallback template otherwise."""

import logging
from pathlib import Path
from typing import Any

from .config import Config
from .errors import ProviderError
from .providers import CompletionConfig, ProviderRegistry
from .template import render

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_TEMPLATE = """\
🚀 New entries in CoinMarketCap Top %top_n% (%convert%)

%EACH new_coins%• #%rank% %name% (%symbol%)%IF market_cap% — mcap: %market_cap%%END_IF%
%END_EACH%%IF exited_coins%
📉 Exited:
%EACH exited_coins%• #%rank% %name% (%symbol%)
%END_EACH%%END_IF%"""

DEFAULT_PROMPT = """\
You write short posts for a Telegram channel that tracks the CoinMarketCap top %top_n% ranked by market cap in %convert%.

Current time: %timestamp_utc%

Coins that just entered the top %top_n%:
%EACH new_coins%- #%rank% %name% (%symbol%)%IF market_cap%, market cap %market_cap% %market_cap_currency%%END_IF%
%END_EACH%%IF exited_coins%
Coins that dropped out:
%EACH exited_coins%- #%rank% %name% (%symbol%)
%END_EACH%%END_IF%%IF recent_posts%
Recent posts on the channel. Do not repeat their wording:
%EACH recent_posts%--- %created_at_utc%
%text%
%END_EACH%%END_IF%
Write the post in plain text, 2 to 5 short lines. Mark coin names with **bold**.
Reply with the post text only, no preamble and no code fences."""


def load_template_or_default(path: str | Path, default: str) -> str:
    """Read a template override from disk, falling back to the bundled default."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError:
        return default
    except UnicodeDecodeError as e:
        logger.warning("Template %s is not valid UTF-8 (%s), using bundled default", path, e)
        return default


def sanitize_ai_text(text: str) -> str:
    """Strip code fences and a leading language tag from a model reply."""
    cleaned = text.strip()
    cleaned = cleaned.removeprefix("```")
    cleaned = cleaned.removesuffix("```")
    cleaned = cleaned.removeprefix("markdown")
    return cleaned.strip()


def draft_with_ai(config: Config, context: dict[str, Any], registry: ProviderRegistry) -> str | None:
    """Ask the configured provider for a draft. Returns None on any failure."""
    provider = registry.get(config.ai_provider)
    if provider is None:
        logger.warning(
            "Unsupported or unconfigured AI_PROVIDER %r (available: %s), using fallback template",
            config.ai_provider,
            ", ".join(registry.names()) or "none",
        )
        return None

    prompt = render(load_template_or_default(config.prompt_template_path, DEFAULT_PROMPT), context)
    logger.debug("AI prompt:\n%s", prompt)
    try:
        result = provider.complete(prompt, CompletionConfig(model=config.ai_model))
    except ProviderError as e:
        logger.warning("%s failed: %s, using fallback template", provider.name, e)
        return None

    logger.debug("AI response:\n%s", result.content)
    text = sanitize_ai_text(result.content)
    if not text:
        logger.warning("%s returned empty output, using fallback template", provider.name)
        return None
    logger.info(
        "Drafted post with %s (%d input / %d output tokens)",
        provider.name,
        result.input_tokens,
        result.output_tokens,
    )
    return text


def produce_text(config: Config, context: dict[str, Any], registry: ProviderRegistry) -> str:
    """Produce the post text for a render context."""
    if config.ai_enabled:
        text = draft_with_ai(config, context, registry)
        if text:
            return text
    fallback = load_template_or_default(config.fallback_template_path, DEFAULT_FALLBACK_TEMPLATE)
    return render(fallback, context)
