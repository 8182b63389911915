"""Data models for wallets, tokens, and per-address fetch outcomes."""

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


class Token(BaseModel):
    """
    Token holding of a wallet.

    Attributes
    ----------
    address : str | None
        Token contract address
    name : str | None
        Full token name
    symbol : str | None
        Token symbol (e.g., 'USDC')
    decimals : int | None
        Number of decimal places used by the raw balance
    raw_balance : float | None
        Balance in the token's smallest unit, as reported by the service
    crypto_balance : float | None
        Human-scale balance (raw_balance / 10**decimals)
    fiat_balance : float | None
        Fiat equivalent (crypto_balance * fiat_rate)
    fiat_rate : float | None
        Fiat price per token
    fiat_currency : str | None
        Currency of fiat_rate (e.g., 'USD')

    """

    model_config = ConfigDict(frozen=True)

    address: str | None = None
    name: str | None = None
    symbol: str | None = None
    decimals: NonNegativeInt | None = None
    raw_balance: float | None = None
    crypto_balance: float | None = None
    fiat_balance: float | None = None
    fiat_rate: float | None = None
    fiat_currency: str | None = None


class Wallet(BaseModel):
    """
    Wallet address with its native balance and token holdings.

    Attributes
    ----------
    address : str
        Wallet address, the lookup key
    balance : float | None
        Native-coin (ETH) balance, None until fetched
    tokens : list[Token]
        Token holdings in the order the service returned them

    """

    address: str
    balance: float | None = None
    tokens: list[Token] = Field(default_factory=list)


class FetchResult(BaseModel):
    """
    Outcome of fetching one wallet.

    Attributes
    ----------
    wallet : Wallet
        Updated wallet on success, the unmodified input wallet on failure
    success : bool
        Whether the lookup produced a decodable response
    error : str | None
        Failure description when success is False

    """

    wallet: Wallet
    success: bool
    error: str | None = None
