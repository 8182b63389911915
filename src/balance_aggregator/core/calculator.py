"""Derive crypto and fiat token balances from raw service figures."""

from typing import NamedTuple


class TokenFigures(NamedTuple):
    """Derived balances for one token; either may be None."""

    crypto_balance: float | None
    fiat_balance: float | None


def compute_token_figures(
    raw_balance: float | None,
    decimals: int | None,
    rate: float | None,
) -> TokenFigures:
    """
    Compute human-scale and fiat balances.

    Parameters
    ----------
    raw_balance : float | None
        Balance in the token's smallest unit
    decimals : int | None
        Decimal places of the token
    rate : float | None
        Fiat price per token

    Returns
    -------
    TokenFigures
        crypto_balance is present only when raw_balance and decimals are,
        fiat_balance only when crypto_balance and rate are

    Examples
    --------
    >>> compute_token_figures(1500000000000000000, 18, 2.0)
    TokenFigures(crypto_balance=1.5, fiat_balance=3.0)

    """
    crypto_balance = None
    if raw_balance is not None and decimals is not None:
        try:
            crypto_balance = float(raw_balance) / (10.0**decimals)
        except OverflowError:
            # Scale beyond float range
            crypto_balance = None

    fiat_balance = None
    if crypto_balance is not None and rate is not None:
        fiat_balance = crypto_balance * rate

    return TokenFigures(crypto_balance, fiat_balance)
