"""Tests for the Ethplorer client single-address fetch."""

import httpx
import pytest

from balance_aggregator.core.models import Token, Wallet
from balance_aggregator.integrations import (
    EthplorerClient,
    RequestConfigurationError,
    TransportError,
)
from conftest import ADDRESS_1, USDC_ADDRESS, address_payload, json_response


def test_build_url():
    """Requests go to getAddressInfo with the key as query parameter."""
    client = EthplorerClient(api_key="secret", base_url="https://api.ethplorer.io/")
    try:
        url = client.build_url(ADDRESS_1)
    finally:
        client.close()

    assert url.host == "api.ethplorer.io"
    assert url.path == f"/getAddressInfo/{ADDRESS_1}"
    assert url.params["apiKey"] == "secret"


@pytest.mark.parametrize("address", ["", "0xabc/def", "0xabc?x=1", "0xabc#frag"])
def test_build_url_rejects_bad_addresses(address):
    """Addresses that would change the request path are rejected."""
    client = EthplorerClient()
    try:
        with pytest.raises(RequestConfigurationError):
            client.build_url(address)
    finally:
        client.close()


@pytest.mark.parametrize("base_url", ["not a url", "ftp://api.ethplorer.io", "http://"])
def test_build_url_rejects_bad_base_url(base_url):
    """A base URL that is not absolute http(s) is a configuration error."""
    client = EthplorerClient(base_url=base_url)
    try:
        with pytest.raises(RequestConfigurationError):
            client.build_url(ADDRESS_1)
    finally:
        client.close()


def test_fetch_wallet(make_client):
    """A successful fetch attaches the ETH balance and derived token figures."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return json_response(address_payload(ADDRESS_1))

    client = make_client(handler, api_key="secret")
    result = client.fetch_wallet(Wallet(address=ADDRESS_1))

    assert result.success is True
    assert result.error is None
    assert len(requests) == 1
    assert requests[0].url.params["apiKey"] == "secret"

    wallet = result.wallet
    assert wallet.address == ADDRESS_1
    assert wallet.balance == 1.25
    assert [token.symbol for token in wallet.tokens] == ["USDC", "OBS"]

    usdc, obs = wallet.tokens
    assert usdc.address == USDC_ADDRESS
    assert usdc.decimals == 6
    assert usdc.raw_balance == 2500000
    assert usdc.crypto_balance == 2.5
    assert usdc.fiat_rate == 1.0001
    assert usdc.fiat_currency == "USD"
    assert usdc.fiat_balance == pytest.approx(2.50025)

    assert obs.crypto_balance == 1.5
    assert obs.fiat_rate is None
    assert obs.fiat_balance is None
    assert obs.fiat_currency is None


def test_fetch_wallet_does_not_mutate_input(make_client):
    """The caller's wallet is left untouched on success."""
    client = make_client(lambda request: json_response(address_payload(ADDRESS_1)))
    wallet = Wallet(address=ADDRESS_1)

    result = client.fetch_wallet(wallet)

    assert result.wallet is not wallet
    assert wallet.balance is None
    assert wallet.tokens == []


def test_token_without_info(make_client):
    """A holding without token metadata still becomes a Token."""
    payload = address_payload(ADDRESS_1, tokens=[{"balance": 100}])
    client = make_client(lambda request: json_response(payload))

    token = client.fetch_wallet(Wallet(address=ADDRESS_1)).wallet.tokens[0]

    assert token == Token(raw_balance=100)


def test_boolean_decimals_leave_figures_absent(make_client):
    """A `false` decimals value does not turn into an unscaled balance."""
    holding = {"tokenInfo": {"symbol": "FLG", "decimals": False, "price": {"rate": 2.0}}, "balance": 5000}
    payload = address_payload(ADDRESS_1, tokens=[holding])
    client = make_client(lambda request: json_response(payload))

    token = client.fetch_wallet(Wallet(address=ADDRESS_1)).wallet.tokens[0]

    assert token.raw_balance == 5000
    assert token.decimals is None
    assert token.crypto_balance is None
    assert token.fiat_balance is None
    assert token.fiat_rate == 2.0


class TestFetchFailures:
    """Failures return the input wallet unmodified with success False."""

    def _assert_failed(self, client, wallet):
        result = client.fetch_wallet(wallet)

        assert result.success is False
        assert result.error
        assert result.wallet is wallet
        assert result.wallet.balance is None
        return result

    def test_http_error_status(self, make_client):
        """Non-2xx responses are failures."""
        client = make_client(lambda request: httpx.Response(500, text="boom"))

        result = self._assert_failed(client, Wallet(address=ADDRESS_1))
        assert "500" in result.error

    def test_connection_error(self, make_client):
        """Unreachable service is a failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self._assert_failed(make_client(handler), Wallet(address=ADDRESS_1))

    def test_timeout(self, make_client):
        """Timeouts are failures."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = self._assert_failed(make_client(handler), Wallet(address=ADDRESS_1))
        assert "timeout" in result.error.lower()

    def test_undecodable_body(self, make_client):
        """A body that is not an address info object is a failure."""
        client = make_client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))

        self._assert_failed(client, Wallet(address=ADDRESS_1))

    def test_service_error_envelope(self, make_client):
        """An error envelope with status 200 is a failure."""
        payload = {"error": {"code": 104, "message": "Invalid API key"}}
        client = make_client(lambda request: json_response(payload))

        result = self._assert_failed(client, Wallet(address=ADDRESS_1))
        assert "Invalid API key" in result.error

    def test_bad_address_makes_no_request(self, make_client):
        """An unbuildable request fails without touching the network."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return json_response(address_payload(ADDRESS_1))

        self._assert_failed(make_client(handler), Wallet(address="0xabc/def"))
        assert requests == []

    def test_previous_balance_is_kept(self, make_client):
        """A failed refresh keeps whatever the wallet already held."""
        client = make_client(lambda request: httpx.Response(503))
        wallet = Wallet(address=ADDRESS_1, balance=3.0, tokens=[Token(symbol="USDC")])

        result = client.fetch_wallet(wallet)

        assert result.success is False
        assert result.wallet.balance == 3.0
        assert result.wallet.tokens == [Token(symbol="USDC")]


def test_get_address_info_raises(make_client):
    """The raw lookup raises typed errors instead of swallowing them."""
    client = make_client(lambda request: httpx.Response(404))

    with pytest.raises(TransportError):
        client.get_address_info(ADDRESS_1)


def test_fetch_is_idempotent(make_client):
    """Unchanged remote data yields identical figures."""
    client = make_client(lambda request: json_response(address_payload(ADDRESS_1)))

    first = client.fetch_wallet(Wallet(address=ADDRESS_1))
    second = client.fetch_wallet(Wallet(address=ADDRESS_1))

    assert first.model_dump_json() == second.model_dump_json()


def test_injected_client_is_not_closed(make_client):
    """Closing the Ethplorer client leaves an injected HTTP client open."""
    client = make_client(lambda request: json_response(address_payload(ADDRESS_1)))

    client.close()

    assert client.client.is_closed is False
