"""Pytest configuration for wallet-balance-aggregator tests."""

import json
from collections.abc import Callable

import httpx
import pytest

from balance_aggregator.integrations import EthplorerClient

ADDRESS_1 = "0x1111111111111111111111111111111111111111"
ADDRESS_2 = "0x2222222222222222222222222222222222222222"
ADDRESS_3 = "0x3333333333333333333333333333333333333333"

USDC_ADDRESS = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


def usdc_holding(balance: float = 2500000) -> dict:
    """Token record with a structured price."""
    return {
        "tokenInfo": {
            "address": USDC_ADDRESS,
            "name": "USD Coin",
            "decimals": "6",
            "symbol": "USDC",
            "totalSupply": "25000000000000000",
            "owner": "0xfcb19e6a322b27c06842a71e8c725399f049ae3a",
            "lastUpdated": 1700000000,
            "issuancesCount": 0,
            "holdersCount": 1850000,
            "ethTransfersCount": 0,
            "price": {
                "rate": 1.0001,
                "diff": 0.01,
                "diff7d": -0.02,
                "diff30d": 0.03,
                "ts": 1700000000,
                "marketCapUsd": 25000000000.0,
                "availableSupply": 25000000000.0,
                "volume24h": 5000000000.0,
                "currency": "USD",
            },
        },
        "balance": balance,
    }


def unpriced_holding(balance: float = 1500000000000000000) -> dict:
    """Token record whose price is the boolean sentinel."""
    return {
        "tokenInfo": {
            "address": "0x9999999999999999999999999999999999999999",
            "name": "Obscure Token",
            "decimals": "18",
            "symbol": "OBS",
            "price": False,
        },
        "balance": balance,
    }


def address_payload(address: str, eth_balance: float | None = 1.25, tokens: list | None = None) -> dict:
    """Build a getAddressInfo response body."""
    return {
        "address": address,
        "ETH": {"balance": eth_balance},
        "countTxs": 42,
        "tokens": [usdc_holding(), unpriced_holding()] if tokens is None else tokens,
    }


def address_from_request(request: httpx.Request) -> str:
    """Extract the queried address from a getAddressInfo request."""
    return request.url.path.rsplit("/", 1)[-1]


def json_response(payload: dict) -> httpx.Response:
    """Build a 200 response with a JSON body."""
    return httpx.Response(200, content=json.dumps(payload).encode())


@pytest.fixture
def make_client() -> Callable[..., EthplorerClient]:
    """Factory for EthplorerClients backed by an httpx.MockTransport."""
    clients = []

    def _make(handler: Callable[[httpx.Request], httpx.Response], api_key: str = "paidkey") -> EthplorerClient:
        http_client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(http_client)
        return EthplorerClient(api_key=api_key, client=http_client)

    yield _make

    for http_client in clients:
        http_client.close()
