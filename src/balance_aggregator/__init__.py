"""Wallet balance aggregation over the Ethplorer API."""

from balance_aggregator.core import BalanceAggregator, FetchResult, RetryConfig, Token, Wallet
from balance_aggregator.integrations import EthplorerClient

__all__ = [
    "BalanceAggregator",
    "EthplorerClient",
    "FetchResult",
    "RetryConfig",
    "Token",
    "Wallet",
]

__version__ = "0.1.0"
