"""Records passed between the market client, the store and the renderer."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def format_utc(dt: datetime) -> str:
    """Format a datetime as RFC 3339 UTC. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class Coin:
    """One entry of the top-N listing."""

    id: int
    name: str
    symbol: str
    rank: int
    market_cap: float | None = None
    market_cap_currency: str = ""
    image_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to the document/context form. Unset optionals are omitted."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "rank": self.rank,
            "market_cap_currency": self.market_cap_currency,
        }
        if self.market_cap is not None:
            data["market_cap"] = self.market_cap
        if self.image_url:
            data["image_url"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Coin":
        """Create from a stored document. Unknown fields are ignored."""
        market_cap = data.get("market_cap")
        return cls(
            id=int(data.get("id") or 0),
            name=data.get("name") or "",
            symbol=data.get("symbol") or "",
            rank=int(data.get("rank") or 0),
            market_cap=float(market_cap) if market_cap is not None else None,
            market_cap_currency=data.get("market_cap_currency") or "",
            image_url=data.get("image_url") or "",
        )


@dataclass
class RecentPost:
    """A previously published post, fed back to the AI prompt."""

    created_at_utc: str
    text: str
    mentioned_coins: list[Coin] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "created_at_utc": self.created_at_utc,
            "text": self.text,
            "mentioned_coins": [c.to_dict() for c in self.mentioned_coins],
        }
