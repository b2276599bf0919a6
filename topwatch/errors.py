"""Topwatch error types and exit codes."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes returned by the CLI."""

    SUCCESS = 0
    RUNTIME_ERROR = 1
    CONFIG_ERROR = 2
    UPSTREAM_ERROR = 3


class TopwatchError(Exception):
    """Base error for all Topwatch errors."""

    exit_code: ExitCode = ExitCode.RUNTIME_ERROR


class ConfigError(TopwatchError):
    """Missing or invalid configuration."""

    exit_code = ExitCode.CONFIG_ERROR


class StorageError(TopwatchError):
    """Error reading or writing persisted state."""

    exit_code = ExitCode.RUNTIME_ERROR


class UpstreamError(TopwatchError):
    """Error from a remote HTTP API."""

    exit_code = ExitCode.UPSTREAM_ERROR

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class MarketDataError(UpstreamError):
    """Error from the CoinMarketCap API."""


class NotifierError(UpstreamError):
    """Error from the Telegram Bot API."""


class ProviderError(UpstreamError):
    """Error from a text generation provider."""
