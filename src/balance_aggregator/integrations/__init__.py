"""Clients for external balance lookup services."""

from balance_aggregator.integrations.ethplorer import (
    DecodeError,
    EthplorerAPIError,
    EthplorerClient,
    RequestConfigurationError,
    TransportError,
    decode_address_info,
)
from balance_aggregator.integrations.responses import (
    AddressInfoResponse,
    Price,
    TokenInfo,
    TokenInfoWrapper,
    decode_price,
)

__all__ = [
    "AddressInfoResponse",
    "DecodeError",
    "EthplorerAPIError",
    "EthplorerClient",
    "Price",
    "RequestConfigurationError",
    "TokenInfo",
    "TokenInfoWrapper",
    "TransportError",
    "decode_address_info",
    "decode_price",
]
