"""CoinMarketCap API client."""

import logging
from typing import Any

from .errors import MarketDataError
from .http import request_json
from .models import Coin

logger = logging.getLogger(__name__)

CMC_BASE_URL = "https://pro-api.coinmarketcap.com"


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def parse_listing(item: dict[str, Any], convert: str) -> Coin:
    """Build a Coin from one entry of the listings response."""
    quote = item.get("quote")
    market_cap = None
    if isinstance(quote, dict) and isinstance(quote.get(convert), dict):
        market_cap = _as_float(quote[convert].get("market_cap"))

    return Coin(
        id=_as_int(item.get("id")),
        name=item.get("name") or "Unknown",
        symbol=item.get("symbol") or "???",
        rank=_as_int(item.get("cmc_rank")),
        market_cap=market_cap,
        market_cap_currency=convert,
    )


class CoinMarketCapClient:
    """Fetches the top-N listing and coin logos."""

    def __init__(self, api_key: str, base_url: str = CMC_BASE_URL):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        payload = request_json(
            "GET",
            f"{self.base_url}{path}",
            service="CoinMarketCap",
            headers={"X-CMC_PRO_API_KEY": self.api_key},
            params=params,
            error_cls=MarketDataError,
        )
        if not isinstance(payload, dict):
            raise MarketDataError("CoinMarketCap response is not a JSON object")
        return payload

    def fetch_top_n(self, top_n: int, convert: str) -> list[Coin]:
        """Fetch the current top-N coins by market cap, with logos when available.

        Raises:
            MarketDataError: If the listing request fails or has no data array.
        """
        payload = self._get(
            "/v1/cryptocurrency/listings/latest",
            {
                "start": 1,
                "limit": top_n,
                "convert": convert,
                "sort": "market_cap",
                "sort_dir": "desc",
            },
        )
        data = payload.get("data")
        if not isinstance(data, list):
            raise MarketDataError("CoinMarketCap response missing data array")

        coins = [parse_listing(item, convert) for item in data if isinstance(item, dict)]

        try:
            logos = self.fetch_logos(coins)
        except MarketDataError as e:
            logger.warning("Unable to fetch coin logos: %s", e)
            return coins

        for coin in coins:
            coin.image_url = logos.get(coin.id, coin.image_url)
        return coins

    def fetch_logos(self, coins: list[Coin]) -> dict[int, str]:
        """Map coin id to logo URL for the given coins."""
        if not coins:
            return {}
        payload = self._get(
            "/v2/cryptocurrency/info",
            {"id": ",".join(str(c.id) for c in coins)},
        )
        data = payload.get("data")
        if not isinstance(data, dict):
            return {}

        logos: dict[int, str] = {}
        for key, entry in data.items():
            try:
                coin_id = int(key)
            except ValueError:
                continue
            if isinstance(entry, dict) and entry.get("logo"):
                logos[coin_id] = entry["logo"]
        return logos
