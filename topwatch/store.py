"""MongoDB persistence for the last seen top-N and the post history.

Three collections are used:
    - state: one document (`_id` "top") with the ids of the last top-N
    - coins: one document per coin ever seen, flagged `is_active` while
      it belongs to the current top-N
    - history: one document per published post
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .config import APP_NAME, Config
from .errors import StorageError
from .models import Coin, RecentPost, format_utc

logger = logging.getLogger(__name__)

STATE_ID = "top"


@dataclass
class StateSnapshot:
    """Previously persisted top-N membership."""

    ids: list[int] = field(default_factory=list)
    top_n: int = 0
    convert: str = ""
    updated_at: datetime | None = None


class MongoStateStore:
    """State and history store backed by MongoDB collections."""

    def __init__(
        self,
        state: Collection,
        coins: Collection,
        history: Collection,
        client: MongoClient | None = None,
    ):
        self.state = state
        self.coins = coins
        self.history = history
        self._client = client

    @classmethod
    def from_database(cls, db: Database, config: Config, client: MongoClient | None = None) -> "MongoStateStore":
        return cls(
            db[config.mongodb_state_collection],
            db[config.mongodb_coins_collection],
            db[config.mongodb_history_collection],
            client=client,
        )

    @classmethod
    def connect(cls, config: Config) -> "MongoStateStore":
        """Open a client for the configured connection string.

        Raises:
            StorageError: If the connection string is invalid.
        """
        try:
            client: MongoClient = MongoClient(config.mongodb_connection_string, appname=APP_NAME)
        except PyMongoError as e:
            raise StorageError(f"Failed to connect to MongoDB: {e}") from e
        logger.info("Connected to MongoDB database=%s", config.mongodb_db)
        return cls.from_database(client[config.mongodb_db], config, client=client)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def load_state(self) -> StateSnapshot | None:
        """Load the previous snapshot, or None on first run."""
        try:
            doc = self.state.find_one({"_id": STATE_ID})
        except PyMongoError as e:
            raise StorageError(f"Failed to load previous state: {e}") from e
        if doc is None:
            return None
        return StateSnapshot(
            ids=[int(i) for i in doc.get("ids") or []],
            top_n=int(doc.get("top_n") or 0),
            convert=doc.get("convert") or "",
            updated_at=doc.get("updated_at"),
        )

    def load_state_coins(self) -> list[Coin]:
        """Coins that were in the previous top-N, ordered by rank."""
        try:
            cursor = self.coins.find({"state_id": STATE_ID, "is_active": True}).sort("rank", ASCENDING)
            return [Coin.from_dict(doc) for doc in cursor]
        except PyMongoError as e:
            raise StorageError(f"Failed to load state coins: {e}") from e

    def write_state(self, top_n: int, convert: str, coins: list[Coin]) -> None:
        """Replace the stored top-N with `coins`."""
        now = datetime.now(UTC)
        try:
            self.coins.update_many(
                {"state_id": STATE_ID},
                {"$set": {"is_active": False, "updated_at": now}},
            )
            for coin in coins:
                self.coins.update_one(
                    {"state_id": STATE_ID, "id": coin.id},
                    {
                        "$set": {
                            "name": coin.name,
                            "symbol": coin.symbol,
                            "rank": coin.rank,
                            "market_cap": coin.market_cap,
                            "market_cap_currency": coin.market_cap_currency,
                            "image_url": coin.image_url,
                            "is_active": True,
                            "updated_at": now,
                        },
                        "$setOnInsert": {"created_at": now},
                    },
                    upsert=True,
                )
            self.state.replace_one(
                {"_id": STATE_ID},
                {
                    "_id": STATE_ID,
                    "updated_at": now,
                    "top_n": top_n,
                    "convert": convert,
                    "ids": [c.id for c in coins],
                },
                upsert=True,
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to write state: {e}") from e
        logger.debug("Stored state with %d coins", len(coins))

    def load_recent_posts(self, limit: int = 3) -> list[RecentPost]:
        """Most recent posts, newest first."""
        try:
            cursor = self.history.find({}).sort("created_at", DESCENDING).limit(limit)
            docs = list(cursor)
        except PyMongoError as e:
            raise StorageError(f"Failed to load recent posts: {e}") from e

        posts = []
        for doc in docs:
            created_at = doc.get("created_at")
            posts.append(
                RecentPost(
                    created_at_utc=format_utc(created_at) if isinstance(created_at, datetime) else "",
                    text=doc.get("text") or "",
                    mentioned_coins=[Coin.from_dict(c) for c in doc.get("mentioned_coins") or []],
                )
            )
        return posts

    def append_history(
        self,
        top_n: int,
        convert: str,
        new_coins: list[Coin],
        text: str,
        message_id: int | None,
    ) -> None:
        """Record a published post."""
        doc: dict[str, Any] = {
            "created_at": datetime.now(UTC),
            "top_n": top_n,
            "convert": convert,
            "new_coin_ids": [c.id for c in new_coins],
            "text": text,
            "mentioned_coins": [c.to_dict() for c in new_coins],
        }
        if message_id is not None:
            doc["telegram_message_id"] = message_id
        try:
            self.history.insert_one(doc)
        except PyMongoError as e:
            raise StorageError(f"Failed to append history: {e}") from e
