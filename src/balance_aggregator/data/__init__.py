"""Settings and API key loading."""

from balance_aggregator.data.loader import (
    Settings,
    is_free_api_key,
    load_api_key,
    load_settings,
)

__all__ = [
    "Settings",
    "is_free_api_key",
    "load_api_key",
    "load_settings",
]
