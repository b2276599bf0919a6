"""One polling run: fetch the top-N, diff against stored state, post, persist."""

import logging
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, TextIO

from .compose import produce_text
from .config import APP_NAME, Config, RunOptions
from .market import CoinMarketCapClient
from .models import Coin, RecentPost, format_utc
from .providers import ProviderRegistry, setup_providers
from .store import MongoStateStore
from .telegram import TelegramClient

logger = logging.getLogger(__name__)

RECENT_POSTS_LIMIT = 3
SKIP_MONGO_SAMPLE = 3


class MarketSource(Protocol):
    def fetch_top_n(self, top_n: int, convert: str) -> list[Coin]: ...


class Notifier(Protocol):
    def send(self, text: str, image_url: str = "") -> int | None: ...


@dataclass
class RunResult:
    """Outcome of a run.

    status is one of "baseline", "no_changes", "dry_run", "posted".
    """

    status: str
    text: str | None = None
    message_id: int | None = None
    new_coins: list[Coin] = field(default_factory=list)
    exited_coins: list[Coin] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"RunResult(status={self.status!r}, new={len(self.new_coins)}, "
            f"exited={len(self.exited_coins)}, message_id={self.message_id})"
        )


def find_new_coins(current: list[Coin], previous_ids: set[int]) -> list[Coin]:
    """Coins in `current` that were not in the previous top-N, in current order."""
    return [c for c in current if c.id not in previous_ids]


def find_exited_coins(previous: list[Coin], current: list[Coin]) -> list[Coin]:
    """Coins from the previous top-N that are no longer listed."""
    current_ids = {c.id for c in current}
    return [c for c in previous if c.id not in current_ids]


def first_coin_image_url(coins: list[Coin]) -> str:
    for coin in coins:
        if coin.image_url.strip():
            return coin.image_url
    return ""


def build_render_context(
    config: Config,
    options: RunOptions,
    new_coins: list[Coin],
    exited_coins: list[Coin],
    recent_posts: list[RecentPost],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Assemble the template context.

    exited_coins and recent_posts are only present when non-empty, so
    %IF% blocks over them are skipped when there is nothing to show.
    """
    context: dict[str, Any] = {
        "project_name": APP_NAME,
        "timestamp_utc": format_utc(now or datetime.now(UTC)),
        "top_n": config.top_n,
        "convert": options.convert,
        "new_coins": [c.to_dict() for c in new_coins],
    }
    if exited_coins:
        context["exited_coins"] = [c.to_dict() for c in exited_coins]
    if recent_posts:
        context["recent_posts"] = [p.to_dict() for p in recent_posts]
    return context


def _coin_symbols(coins: list[Coin]) -> list[str]:
    return [c.symbol for c in coins]


def run_once(
    config: Config,
    options: RunOptions,
    *,
    market: MarketSource | None = None,
    store: MongoStateStore | None = None,
    notifier: Notifier | None = None,
    registry: ProviderRegistry | None = None,
    out: TextIO | None = None,
) -> RunResult:
    """Run one poll/diff/post cycle.

    Collaborators default to the real clients built from `config`; tests
    pass their own.

    Raises:
        TopwatchError: On market data, storage or Telegram failures. AI
            failures never abort a run.
    """
    logger.info(
        "Run start: top_n=%d convert=%s dry_run=%s notify_exits=%s skip_mongo=%s ai_enabled=%s ai_provider=%s",
        config.top_n,
        options.convert,
        options.dry_run,
        options.notify_exits,
        options.skip_mongo,
        config.ai_enabled,
        config.ai_provider,
    )
    market = market or CoinMarketCapClient(config.cmc_api_key)
    notifier = notifier or TelegramClient(config.telegram_token, config.telegram_channel_id)
    registry = registry or setup_providers(config)
    out = out or sys.stdout

    if options.skip_mongo:
        return _run_without_store(config, options, market, notifier, registry, out)

    owns_store = store is None
    if store is None:
        store = MongoStateStore.connect(config)
    try:
        return _run_with_store(config, options, market, store, notifier, registry, out)
    finally:
        if owns_store:
            store.close()


def _run_with_store(
    config: Config,
    options: RunOptions,
    market: MarketSource,
    store: MongoStateStore,
    notifier: Notifier,
    registry: ProviderRegistry,
    out: TextIO,
) -> RunResult:
    logger.info("Step 1/7: fetching current top-%d from CoinMarketCap", config.top_n)
    current = market.fetch_top_n(config.top_n, options.convert)
    logger.info("Fetched %d coins: %s", len(current), _coin_symbols(current))

    logger.info("Step 2/7: loading previous state")
    previous = store.load_state()
    if previous is None:
        logger.info("No previous state found; writing baseline without posting")
        store.write_state(config.top_n, options.convert, current)
        return RunResult(status="baseline")
    previous_coins = store.load_state_coins()
    logger.info("Previous state has %d ids: %s", len(previous.ids), _coin_symbols(previous_coins))

    logger.info("Step 3/7: diffing previous and current top-%d", config.top_n)
    new_coins = find_new_coins(current, set(previous.ids))
    if not new_coins:
        logger.info("No new coins; nothing to post")
        return RunResult(status="no_changes")
    logger.info("Detected %d new coin(s): %s", len(new_coins), _coin_symbols(new_coins))

    exited_coins: list[Coin] = []
    if options.notify_exits:
        exited_coins = find_exited_coins(previous_coins, current)
        logger.info("Detected %d exited coin(s): %s", len(exited_coins), _coin_symbols(exited_coins))

    logger.info("Step 4/7: loading recent posts")
    recent_posts = store.load_recent_posts(RECENT_POSTS_LIMIT)

    logger.info("Step 5/7: producing post text")
    context = build_render_context(config, options, new_coins, exited_coins, recent_posts)
    text = produce_text(config, context, registry)
    logger.info("Produced post text with %d characters", len(text))

    if options.dry_run:
        print(text, file=out)
        return RunResult(status="dry_run", text=text, new_coins=new_coins, exited_coins=exited_coins)

    logger.info("Step 6/7: sending Telegram message")
    message_id = notifier.send(text, first_coin_image_url(new_coins))
    logger.info("Telegram message sent: message_id=%s", message_id)

    logger.info("Step 7/7: persisting state and history")
    store.write_state(config.top_n, options.convert, current)
    store.append_history(config.top_n, options.convert, new_coins, text, message_id)
    logger.info("Run completed")
    return RunResult(
        status="posted",
        text=text,
        message_id=message_id,
        new_coins=new_coins,
        exited_coins=exited_coins,
    )


def _run_without_store(
    config: Config,
    options: RunOptions,
    market: MarketSource,
    notifier: Notifier,
    registry: ProviderRegistry,
    out: TextIO,
) -> RunResult:
    """Exercise the posting path without MongoDB. Nothing is persisted."""
    logger.info("MongoDB skipped: testing the posting flow")
    test_message = options.test_message.strip()
    if test_message:
        if options.dry_run:
            print(options.test_message, file=out)
            return RunResult(status="dry_run", text=options.test_message)
        message_id = notifier.send(options.test_message, options.test_image_url.strip())
        logger.info("Test post sent: message_id=%s", message_id)
        return RunResult(status="posted", text=options.test_message, message_id=message_id)

    current = market.fetch_top_n(config.top_n, options.convert)
    if not current:
        logger.info("CoinMarketCap returned no coins")
        return RunResult(status="no_changes")

    new_coins = current[:SKIP_MONGO_SAMPLE]
    context = build_render_context(config, options, new_coins, [], [])
    text = produce_text(config, context, registry)
    if options.dry_run:
        print(text, file=out)
        return RunResult(status="dry_run", text=text, new_coins=new_coins)

    message_id = notifier.send(text, first_coin_image_url(new_coins))
    logger.info("Sample post sent: message_id=%s", message_id)
    return RunResult(status="posted", text=text, message_id=message_id, new_coins=new_coins)
