"""Ethplorer API client for wallet balance lookups."""

import logging

import httpx
from pydantic import ValidationError

from balance_aggregator.core.calculator import compute_token_figures
from balance_aggregator.core.models import FetchResult, Token, Wallet
from balance_aggregator.integrations.responses import AddressInfoResponse, TokenInfoWrapper

logger = logging.getLogger(__name__)

FREE_API_KEY = "freekey"


class EthplorerAPIError(Exception):
    """Exception raised for Ethplorer API errors."""


class TransportError(EthplorerAPIError):
    """Network failure, timeout, or non-success response."""


class DecodeError(EthplorerAPIError):
    """Payload is not an address info envelope at all."""


class RequestConfigurationError(EthplorerAPIError):
    """Base URL or address cannot be assembled into a request."""


def decode_address_info(raw: bytes | str) -> AddressInfoResponse:
    """
    Decode a raw `getAddressInfo` payload.

    Individual fields that are missing or have an unexpected type decode as
    None; only payloads that are not a JSON object fail.

    Parameters
    ----------
    raw : bytes | str
        Response body

    Returns
    -------
    AddressInfoResponse
        Decoded response

    Raises
    ------
    DecodeError
        If the payload is not valid JSON or not a JSON object

    """
    try:
        return AddressInfoResponse.model_validate_json(raw)
    except ValidationError as e:
        msg = f"Malformed address info payload: {e.errors(include_url=False)[0]['msg']}"
        raise DecodeError(msg) from e


class EthplorerClient:
    """
    Client for the Ethplorer API.

    Fetches the ETH balance and token holdings of one address per request.

    Parameters
    ----------
    api_key : str
        Ethplorer API key ('freekey' for the rate-limited free tier)
    base_url : str
        API base URL
    timeout : float
        Request timeout in seconds
    client : httpx.Client | None
        Preconfigured HTTP client. Created (and owned) when None.

    """

    BASE_URL = "https://api.ethplorer.io"

    def __init__(
        self,
        api_key: str = FREE_API_KEY,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

    def build_url(self, address: str) -> httpx.URL:
        """
        Build the `getAddressInfo` URL for an address.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        httpx.URL
            Request URL including the apiKey query parameter

        Raises
        ------
        RequestConfigurationError
            If the address is empty or the URL is malformed

        """
        if not address or "/" in address or "?" in address or "#" in address:
            msg = f"Invalid address for request: {address!r}"
            raise RequestConfigurationError(msg)

        try:
            url = httpx.URL(f"{self.base_url}/getAddressInfo/{address}", params={"apiKey": self.api_key})
        except httpx.InvalidURL as e:
            msg = f"Cannot build request URL from {self.base_url!r}: {e}"
            raise RequestConfigurationError(msg) from e

        if url.scheme not in ("http", "https") or not url.host:
            msg = f"Base URL must be an absolute http(s) URL: {self.base_url!r}"
            raise RequestConfigurationError(msg)
        return url

    def get_address_info(self, address: str) -> AddressInfoResponse:
        """
        Fetch and decode address info for one address.

        Parameters
        ----------
        address : str
            Wallet address

        Returns
        -------
        AddressInfoResponse
            Decoded response

        Raises
        ------
        RequestConfigurationError
            If the request URL cannot be built
        TransportError
            If the request fails or the service reports an error
        DecodeError
            If the payload is not an address info envelope

        """
        url = self.build_url(address)

        try:
            logger.debug("Requesting address info for %s", address)
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            msg = f"Request timeout: {e}"
            raise TransportError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP error {e.response.status_code}: {e}"
            raise TransportError(msg) from e
        except httpx.HTTPError as e:
            msg = f"HTTP request failed: {e}"
            raise TransportError(msg) from e

        info = decode_address_info(response.content)
        if info.error is not None:
            msg = f"Service error {info.error.code}: {info.error.message}"
            raise TransportError(msg)
        return info

    def fetch_wallet(self, wallet: Wallet) -> FetchResult:
        """
        Fetch balances for a wallet.

        Makes exactly one request. Failures are not raised: the input wallet
        is returned unmodified with success set to False.

        Parameters
        ----------
        wallet : Wallet
            Wallet to look up

        Returns
        -------
        FetchResult
            Updated wallet and success flag

        """
        try:
            info = self.get_address_info(wallet.address)
        except EthplorerAPIError as e:
            logger.warning("Error getting address info for %s: %s", wallet.address, e)
            return FetchResult(wallet=wallet, success=False, error=str(e))

        updated = wallet.model_copy(
            update={
                "balance": info.native_balance,
                "tokens": [self._parse_token(wrapper) for wrapper in info.tokens],
            }
        )
        return FetchResult(wallet=updated, success=True)

    def _parse_token(self, wrapper: TokenInfoWrapper) -> Token:
        """
        Convert a decoded token record into a Token with derived balances.

        Parameters
        ----------
        wrapper : TokenInfoWrapper
            Token record from the response

        Returns
        -------
        Token
            Token model

        """
        info = wrapper.token_info
        price = info.price if info else None
        rate = price.rate if price else None
        decimals = info.decimals if info else None

        figures = compute_token_figures(wrapper.raw_balance, decimals, rate)

        return Token(
            address=info.address if info else None,
            name=info.name if info else None,
            symbol=info.symbol if info else None,
            decimals=decimals,
            raw_balance=wrapper.raw_balance,
            crypto_balance=figures.crypto_balance,
            fiat_balance=figures.fiat_balance,
            fiat_rate=rate,
            fiat_currency=price.currency if price else None,
        )

    def close(self) -> None:
        """Close HTTP client."""
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "EthplorerClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
