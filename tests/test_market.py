"""Tests for the CoinMarketCap client."""

import unittest
from unittest.mock import patch

from topwatch.errors import MarketDataError
from topwatch.market import CoinMarketCapClient, parse_listing
from topwatch.models import Coin

LISTING = {
    "data": [
        {
            "id": 1,
            "name": "Bitcoin",
            "symbol": "BTC",
            "cmc_rank": 1,
            "quote": {"USD": {"market_cap": 1.2e12, "price": 60000}},
        },
        {
            "id": 1027,
            "name": "Ethereum",
            "symbol": "ETH",
            "cmc_rank": 2,
            "quote": {"USD": {"market_cap": 400000000000}},
        },
        {"id": 52, "cmc_rank": 3, "quote": {"EUR": {"market_cap": 1}}},
    ]
}

INFO = {
    "data": {
        "1": {"logo": "https://s2.coinmarketcap.com/1.png"},
        "1027": {"logo": ""},
        "bogus": {"logo": "https://example.test/x.png"},
    }
}


class TestParseListing(unittest.TestCase):
    def test_full_entry(self):
        coin = parse_listing(LISTING["data"][0], "USD")
        self.assertEqual(coin.id, 1)
        self.assertEqual(coin.name, "Bitcoin")
        self.assertEqual(coin.symbol, "BTC")
        self.assertEqual(coin.rank, 1)
        self.assertEqual(coin.market_cap, 1.2e12)
        self.assertEqual(coin.market_cap_currency, "USD")

    def test_defaults_for_missing_fields(self):
        coin = parse_listing(LISTING["data"][2], "USD")
        self.assertEqual(coin.name, "Unknown")
        self.assertEqual(coin.symbol, "???")
        self.assertIsNone(coin.market_cap)

    def test_non_numeric_market_cap(self):
        coin = parse_listing({"id": 5, "quote": {"USD": {"market_cap": "n/a"}}}, "USD")
        self.assertIsNone(coin.market_cap)
        self.assertEqual(coin.rank, 0)


@patch("topwatch.market.request_json")
class TestCoinMarketCapClient(unittest.TestCase):
    def setUp(self):
        self.client = CoinMarketCapClient("cmc-key")

    def test_fetch_top_n(self, mock_request):
        mock_request.side_effect = [LISTING, INFO]

        coins = self.client.fetch_top_n(3, "USD")

        self.assertEqual([c.symbol for c in coins], ["BTC", "ETH", "???"])
        self.assertEqual(coins[0].image_url, "https://s2.coinmarketcap.com/1.png")
        self.assertEqual(coins[1].image_url, "")

        listing_call, info_call = mock_request.call_args_list
        self.assertEqual(
            listing_call.args[1],
            "https://pro-api.coinmarketcap.com/v1/cryptocurrency/listings/latest",
        )
        self.assertEqual(
            listing_call.kwargs["params"],
            {"start": 1, "limit": 3, "convert": "USD", "sort": "market_cap", "sort_dir": "desc"},
        )
        self.assertEqual(listing_call.kwargs["headers"], {"X-CMC_PRO_API_KEY": "cmc-key"})
        self.assertEqual(info_call.kwargs["params"], {"id": "1,1027,52"})

    def test_missing_data_array(self, mock_request):
        mock_request.return_value = {"status": {"error_code": 0}}

        with self.assertRaises(MarketDataError):
            self.client.fetch_top_n(10, "USD")

    def test_listing_error_propagates(self, mock_request):
        mock_request.side_effect = MarketDataError("CoinMarketCap error 401: bad key")

        with self.assertRaises(MarketDataError):
            self.client.fetch_top_n(10, "USD")

    def test_logo_failure_returns_coins(self, mock_request):
        mock_request.side_effect = [LISTING, MarketDataError("info failed")]

        with self.assertLogs("topwatch.market", level="WARNING"):
            coins = self.client.fetch_top_n(3, "USD")

        self.assertEqual(len(coins), 3)
        self.assertTrue(all(c.image_url == "" for c in coins))

    def test_fetch_logos_empty(self, mock_request):
        self.assertEqual(self.client.fetch_logos([]), {})
        mock_request.assert_not_called()

    def test_fetch_logos_skips_bad_entries(self, mock_request):
        mock_request.return_value = INFO
        coins = [Coin(id=1, name="Bitcoin", symbol="BTC", rank=1)]

        self.assertEqual(self.client.fetch_logos(coins), {1: "https://s2.coinmarketcap.com/1.png"})


if __name__ == "__main__":
    unittest.main()
