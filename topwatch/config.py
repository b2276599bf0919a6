"""Runtime configuration loaded from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError

APP_NAME = "coinmarketcap_top100_bot"

DEFAULT_MODELS = {
    "gemini": "gemini-3-flash-preview",
    "openai": "gpt-4o-mini",
}


def load_dotenv(env_path: Path) -> None:
    """Load .env file into os.environ if it exists.

    Does not override existing environment variables.
    Supports standard .env format: KEY=VALUE, with optional quotes.
    """
    if not env_path.exists():
        return

    with open(env_path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export "):]
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            if key not in os.environ:
                os.environ[key] = value


def _env(name: str, default: str = "") -> str:
    """Read a trimmed variable; empty values count as unset."""
    value = os.environ.get(name, "").strip()
    return value or default


def _require(name: str, allow_missing: bool = False) -> str:
    value = _env(name)
    if not value and not allow_missing:
        raise ConfigError(f"missing required env var {name}")
    return value


@dataclass
class RunOptions:
    """Per-invocation switches, set from the command line."""

    dry_run: bool = False
    notify_exits: bool = False
    convert: str = "USD"
    skip_mongo: bool = False
    test_message: str = ""
    test_image_url: str = ""


@dataclass
class Config:
    """Credentials and settings for one bot deployment."""

    cmc_api_key: str
    telegram_token: str = ""
    telegram_channel_id: str = ""
    mongodb_connection_string: str = ""
    mongodb_db: str = "cmc_top"
    mongodb_state_collection: str = "state"
    mongodb_coins_collection: str = "coins"
    mongodb_history_collection: str = "history"
    top_n: int = 100
    ai_enabled: bool = False
    ai_provider: str = "gemini"
    ai_model: str = DEFAULT_MODELS["gemini"]
    gemini_api_key: str = ""
    openai_api_key: str = ""
    fallback_template_path: str = "templates/telegram_post_fallback.template.md"
    prompt_template_path: str = "prompts/newcoins.prompts.md"

    def api_key_for(self, provider: str) -> str:
        """API key configured for a provider, empty if none."""
        return {
            "gemini": self.gemini_api_key,
            "openai": self.openai_api_key,
        }.get(provider, "")

    @classmethod
    def from_env(
        cls,
        dry_run: bool = False,
        skip_mongo: bool = False,
        env_file: str | Path = ".env",
    ) -> "Config":
        """Build a Config from environment variables.

        Telegram credentials may be absent for dry runs and the MongoDB
        connection string may be absent when MongoDB is skipped.

        Raises:
            ConfigError: If a required variable is missing or invalid.
        """
        load_dotenv(Path(env_file))

        raw_top_n = _env("TOP_N", "100")
        try:
            top_n = int(raw_top_n)
        except ValueError:
            raise ConfigError("TOP_N must be a positive integer") from None
        if top_n <= 0:
            raise ConfigError("TOP_N must be a positive integer")

        ai_provider = _env("AI_PROVIDER", "gemini").lower()
        config = cls(
            cmc_api_key=_require("CMC_API_KEY"),
            telegram_token=_require("TELEGRAM_COINMARKETCAP_TOP_100_BOT_TOKEN", dry_run),
            telegram_channel_id=_require("TELEGRAM_COINMARKETCAP_TOP_100_CHANNEL_ID", dry_run),
            mongodb_connection_string=_require("MONGODB_CONNECTION_STRING", skip_mongo),
            mongodb_db=_env("MONGODB_DB", "cmc_top"),
            mongodb_state_collection=_env("MONGODB_STATE_COLLECTION", "state"),
            mongodb_coins_collection=_env("MONGODB_COINS_COLLECTION", "coins"),
            mongodb_history_collection=_env("MONGODB_HISTORY_COLLECTION", "history"),
            top_n=top_n,
            ai_provider=ai_provider,
            ai_model=_env("AI_MODEL", DEFAULT_MODELS.get(ai_provider, "")),
            gemini_api_key=_env("GEMINI_API_KEY"),
            openai_api_key=_env("OPENAI_API_KEY"),
            fallback_template_path=_env(
                "FALLBACK_TEMPLATE_PATH", "templates/telegram_post_fallback.template.md"
            ),
            prompt_template_path=_env("PROMPT_TEMPLATE_PATH", "prompts/newcoins.prompts.md"),
        )

        raw_enabled = _env("AI_ENABLED")
        if raw_enabled:
            config.ai_enabled = raw_enabled.lower() == "true"
        else:
            config.ai_enabled = bool(config.api_key_for(ai_provider))
        return config
