"""Topwatch - CoinMarketCap top-N entrant alerts for Telegram."""

from .bot import RunResult, run_once
from .config import Config, RunOptions
from .errors import (
    ConfigError,
    ExitCode,
    MarketDataError,
    NotifierError,
    ProviderError,
    StorageError,
    TopwatchError,
    UpstreamError,
)
from .template import render

__version__ = "0.1.0"

__all__ = [
    "run_once",
    "render",
    "Config",
    "RunOptions",
    "RunResult",
    "TopwatchError",
    "ConfigError",
    "StorageError",
    "UpstreamError",
    "MarketDataError",
    "NotifierError",
    "ProviderError",
    "ExitCode",
]
