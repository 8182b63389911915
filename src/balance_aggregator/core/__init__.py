"""Core functionality including models, balance calculation, and batch aggregation."""

from balance_aggregator.core.aggregator import BalanceAggregator
from balance_aggregator.core.calculator import TokenFigures, compute_token_figures
from balance_aggregator.core.models import FetchResult, Token, Wallet
from balance_aggregator.core.retry import RetryConfig

__all__ = [
    "BalanceAggregator",
    "FetchResult",
    "RetryConfig",
    "Token",
    "TokenFigures",
    "Wallet",
    "compute_token_figures",
]
