"""Retry policy for wallet fetches that came back unsuccessful."""

from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, NonNegativeInt


class RetryConfig(BaseModel):
    """
    How often, and how patiently, the aggregator re-fetches a failed wallet.

    Retries happen in the aggregator, never in the client: one
    `fetch_wallet` call is one request.

    Attributes
    ----------
    max_retries : int
        Extra attempts after the first failure (0 keeps a single attempt)
    base_delay : float
        Pause in seconds before the first retry
    max_delay : float
        Upper bound for any single pause
    exponential_base : float
        Growth factor of the pause from one retry to the next

    """

    model_config = ConfigDict(frozen=True)

    max_retries: NonNegativeInt = 0
    base_delay: NonNegativeFloat = 1.0
    max_delay: NonNegativeFloat = 30.0
    exponential_base: float = Field(2.0, ge=1.0)

    @property
    def max_attempts(self) -> int:
        """Total number of attempts including the first one."""
        return self.max_retries + 1

    def backoff(self, floor: float = 0.0) -> Iterator[float]:
        """
        Yield the pause before each retry.

        Parameters
        ----------
        floor : float
            Minimum pause, e.g. the free tier throttle

        Yields
        ------
        float
            Pause in seconds, one value per allowed retry

        Examples
        --------
        >>> list(RetryConfig(max_retries=4, base_delay=1.0, max_delay=5.0).backoff())
        [1.0, 2.0, 4.0, 5.0]

        """
        delay = self.base_delay
        for _ in range(self.max_retries):
            yield max(floor, min(delay, self.max_delay))
            delay *= self.exponential_base
