"""Lenient pydantic models for Ethplorer `getAddressInfo` payloads.

The service is loosely typed: fields come and go, numbers sometimes arrive as
strings, and `tokenInfo.price` is either an object or the boolean `false`.
Every leaf field therefore decodes to None on a type mismatch instead of
failing the whole response.
"""

from typing import Annotated, Any, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    ValidationError,
    ValidatorFunctionWrapHandler,
    WrapValidator,
    field_validator,
)

T = TypeVar("T")


def _absent_on_error(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None


def _absent_unless_number(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    # Lax mode would read true/false as 1/0
    if isinstance(value, bool):
        return None
    return _absent_on_error(value, handler)


# Optional field that falls back to None when the value has the wrong shape
Lenient = Annotated[T, WrapValidator(_absent_on_error)]

# Same for numeric fields, where booleans are also a wrong shape
LenientNumber = Annotated[T, WrapValidator(_absent_unless_number)]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", allow_inf_nan=False)


class Price(_WireModel):
    """
    Market price data attached to a token.

    Attributes
    ----------
    rate : float | None
        Fiat price per token
    diff, diff7d, diff30d : float | None
        Price change in percent over 24h, 7 days and 30 days
    timestamp : int | None
        Unix time of the quote
    market_cap_usd : float | None
        Market capitalisation in USD
    available_supply : float | None
        Circulating supply
    volume_24h : float | None
        Trading volume over 24h
    currency : str | None
        Currency of rate (e.g., 'USD')

    """

    rate: LenientNumber[float | None] = None
    diff: LenientNumber[float | None] = None
    diff7d: LenientNumber[float | None] = None
    diff30d: LenientNumber[float | None] = None
    timestamp: LenientNumber[NonNegativeInt | None] = Field(None, alias="ts")
    market_cap_usd: LenientNumber[float | None] = Field(None, alias="marketCapUsd")
    available_supply: LenientNumber[float | None] = Field(None, alias="availableSupply")
    volume_24h: LenientNumber[float | None] = Field(None, alias="volume24h")
    currency: Lenient[str | None] = None


def decode_price(value: Any) -> Price | None:
    """
    Decode the polymorphic `price` field.

    Tried in order: boolean sentinel (no price data), structured price
    object, absent.

    Parameters
    ----------
    value : Any
        Raw JSON value of the field

    Returns
    -------
    Price | None
        Structured price, or None when the service has no price data

    """
    if value is None or isinstance(value, bool):
        return None
    try:
        return Price.model_validate(value)
    except ValidationError:
        return None


class TokenInfo(_WireModel):
    """Token metadata as reported by the service."""

    address: Lenient[str | None] = None
    name: Lenient[str | None] = None
    decimals: LenientNumber[NonNegativeInt | None] = None
    symbol: Lenient[str | None] = None
    total_supply: Lenient[str | None] = Field(None, alias="totalSupply")
    owner: Lenient[str | None] = None
    last_updated: LenientNumber[NonNegativeInt | None] = Field(None, alias="lastUpdated")
    issuances_count: LenientNumber[NonNegativeInt | None] = Field(None, alias="issuancesCount")
    holders_count: LenientNumber[NonNegativeInt | None] = Field(None, alias="holdersCount")
    eth_transfers_count: LenientNumber[NonNegativeInt | None] = Field(None, alias="ethTransfersCount")
    price: Price | None = None

    @field_validator("price", mode="plain")
    @classmethod
    def _decode_price(cls, value: Any) -> Price | None:
        return decode_price(value)


class TokenInfoWrapper(_WireModel):
    """One token holding: metadata plus the raw balance."""

    token_info: Lenient[TokenInfo | None] = Field(None, alias="tokenInfo")
    raw_balance: LenientNumber[float | None] = Field(None, alias="balance")


class EthBalance(_WireModel):
    """Native-coin section of the response."""

    balance: LenientNumber[float | None] = None


class ServiceError(_WireModel):
    """Error envelope returned by the service instead of address data."""

    code: LenientNumber[int | None] = None
    message: Lenient[str | None] = None


class AddressInfoResponse(_WireModel):
    """
    Decoded `getAddressInfo` response.

    Attributes
    ----------
    address : str | None
        Queried address
    eth : EthBalance | None
        Native-coin balance section (`ETH` on the wire)
    count_txs : int | None
        Number of transactions of the address
    tokens : list[TokenInfoWrapper]
        Token holdings in service order
    error : ServiceError | None
        Set when the service answered with an error envelope

    """

    address: Lenient[str | None] = None
    eth: Lenient[EthBalance | None] = Field(None, alias="ETH")
    count_txs: LenientNumber[NonNegativeInt | None] = Field(None, alias="countTxs")
    tokens: list[TokenInfoWrapper] = Field(default_factory=list)
    error: Lenient[ServiceError | None] = None

    @field_validator("tokens", mode="before")
    @classmethod
    def _drop_malformed_tokens(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @property
    def native_balance(self) -> float | None:
        """Native-coin balance, None when absent."""
        return self.eth.balance if self.eth else None

    @property
    def transaction_count(self) -> int | None:
        """Transaction count of the address, None when absent."""
        return self.count_txs
