"""Balance aggregator that fetches many wallets and keeps input order."""

import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed, wait
from typing import Any, TypeVar

from balance_aggregator.core.models import FetchResult, Wallet
from balance_aggregator.core.retry import RetryConfig
from balance_aggregator.data.loader import Settings, is_free_api_key
from balance_aggregator.integrations.ethplorer import EthplorerAPIError, EthplorerClient
from balance_aggregator.integrations.responses import AddressInfoResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BalanceAggregator:
    """
    Fetches balances for a list of wallets.

    With a throttle, fetches run strictly one after another with a pause
    between them (required by the free API tier). Without one, fetches run
    concurrently on a thread pool. Either way results come back in input
    order, and only once every fetch has finished.

    Parameters
    ----------
    client : EthplorerClient
        Client used for single-address lookups
    throttle : float | None
        Pause in seconds between serialized fetches, None for concurrent fetches
    max_workers : int
        Thread pool size for concurrent fetches
    retry_config : RetryConfig | None
        Retry policy for failed fetches. No retries if None.

    """

    def __init__(
        self,
        client: EthplorerClient,
        throttle: float | None = None,
        max_workers: int = 8,
        retry_config: RetryConfig | None = None,
    ) -> None:
        if throttle is not None and throttle < 0:
            msg = f"throttle must be >= 0, got {throttle}"
            raise ValueError(msg)
        self.client = client
        self.throttle = throttle
        self.max_workers = max(1, max_workers)
        self.retry_config = retry_config if retry_config is not None else RetryConfig()
        self._owns_client = False
        self._background: ThreadPoolExecutor | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        api_key: str,
        retry_config: RetryConfig | None = None,
    ) -> "BalanceAggregator":
        """
        Build an aggregator for an API key.

        The throttle is enabled only for the free API key.

        Parameters
        ----------
        settings : Settings
            Loaded settings
        api_key : str
            Ethplorer API key
        retry_config : RetryConfig | None
            Retry policy. Uses settings.max_retries if None.

        Returns
        -------
        BalanceAggregator
            Aggregator owning a new EthplorerClient

        """
        client = EthplorerClient(api_key=api_key, base_url=settings.base_url, timeout=settings.timeout)
        throttle = settings.throttle_seconds if is_free_api_key(api_key, settings) else None
        if retry_config is None:
            retry_config = RetryConfig(max_retries=settings.max_retries)
        aggregator = cls(client, throttle=throttle, max_workers=settings.max_workers, retry_config=retry_config)
        aggregator._owns_client = True
        return aggregator

    @property
    def rate_limited(self) -> bool:
        """Whether fetches are serialized."""
        return self.throttle is not None

    def load_balances(
        self,
        addresses: Iterable[Any],
        cancel_event: threading.Event | None = None,
    ) -> list[Wallet]:
        """
        Fetch balances for all addresses.

        Parameters
        ----------
        addresses : Iterable[Any]
            Address strings, Wallets, or records with an `address` field
        cancel_event : threading.Event | None
            When set, no further fetches are issued

        Returns
        -------
        list[Wallet]
            Wallets in input order. Failed fetches are included unmodified;
            addresses whose fetch never finished are omitted.

        """
        return [result.wallet for result in self.load_balance_results(addresses, cancel_event)]

    def load_balance_results(
        self,
        addresses: Iterable[Any],
        cancel_event: threading.Event | None = None,
    ) -> list[FetchResult]:
        """
        Fetch balances for all addresses, keeping the per-address outcome.

        Parameters
        ----------
        addresses : Iterable[Any]
            Address strings, Wallets, or records with an `address` field
        cancel_event : threading.Event | None
            When set, no further fetches are issued

        Returns
        -------
        list[FetchResult]
            Results in input order

        """
        wallets = _to_wallets(addresses)

        def fetch(wallet: Wallet) -> FetchResult:
            return self._fetch_with_retry(wallet, cancel_event)

        collected = self._run_batch(wallets, fetch, cancel_event)
        results = [collected[index] for index in range(len(wallets)) if index in collected]

        failed = sum(1 for result in results if not result.success)
        logger.info(
            "Loaded %d of %d wallets (%d failed)",
            len(results) - failed,
            len(wallets),
            failed,
        )
        return results

    def load_balances_async(
        self,
        addresses: Iterable[Any],
        callback: Callable[[list[Wallet]], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Future:
        """
        Fetch balances on a background thread.

        Parameters
        ----------
        addresses : Iterable[Any]
            Address strings, Wallets, or records with an `address` field
        callback : Callable[[list[Wallet]], None] | None
            Called once with the ordered wallets when the batch is done
        cancel_event : threading.Event | None
            When set, no further fetches are issued

        Returns
        -------
        Future
            Resolves to the ordered list of wallets

        """
        addresses = list(addresses)
        if self._background is None:
            self._background = ThreadPoolExecutor(max_workers=1, thread_name_prefix="balance-batch")

        future = self._background.submit(self.load_balances, addresses, cancel_event)

        if callback is not None:

            def deliver(done: Future) -> None:
                if done.cancelled():
                    return
                error = done.exception()
                if error is not None:
                    logger.error("Balance batch failed: %s", error)
                    return
                callback(done.result())

            future.add_done_callback(deliver)

        return future

    def load_address_infos(
        self,
        addresses: Iterable[Any],
        cancel_event: threading.Event | None = None,
    ) -> list[AddressInfoResponse]:
        """
        Fetch the decoded service responses for all addresses.

        Parameters
        ----------
        addresses : Iterable[Any]
            Address strings, Wallets, or records with an `address` field
        cancel_event : threading.Event | None
            When set, no further fetches are issued

        Returns
        -------
        list[AddressInfoResponse]
            Responses in input order, failed addresses omitted

        """
        wallets = _to_wallets(addresses)

        def fetch(wallet: Wallet) -> AddressInfoResponse | None:
            try:
                return self.client.get_address_info(wallet.address)
            except EthplorerAPIError as e:
                logger.warning("Error getting address info for %s: %s", wallet.address, e)
                return None

        collected = self._run_batch(wallets, fetch, cancel_event)
        return [
            collected[index]
            for index in range(len(wallets))
            if collected.get(index) is not None
        ]

    def _run_batch(
        self,
        wallets: list[Wallet],
        task: Callable[[Wallet], T],
        cancel_event: threading.Event | None,
    ) -> dict[int, T]:
        """
        Run a task for every wallet and collect results by input position.

        Parameters
        ----------
        wallets : list[Wallet]
            Wallets to process
        task : Callable[[Wallet], T]
            Work for one wallet
        cancel_event : threading.Event | None
            Stops issuing new tasks once set

        Returns
        -------
        dict[int, T]
            Results keyed by input index; tasks that raised are missing

        """
        if not wallets:
            return {}

        workers = 1 if self.rate_limited else min(self.max_workers, len(wallets))
        collected: dict[int, T] = {}

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="balance-fetch") as executor:
            future_to_index: dict[Future, int] = {}

            for index, wallet in enumerate(wallets):
                if self.rate_limited and index > 0:
                    logger.debug("Rate limited, waiting %.1fs before next request", self.throttle)
                    self._pause(self.throttle, cancel_event)

                if cancel_event is not None and cancel_event.is_set():
                    logger.info("Batch cancelled, %d addresses not requested", len(wallets) - index)
                    break

                future = executor.submit(task, wallet)
                future_to_index[future] = index

                # Serialize: the next request is issued only after this one finished
                if self.rate_limited:
                    wait([future])

            # Collect results as they complete
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    collected[index] = future.result()
                except Exception:
                    # Continue with other wallets even if one fails
                    logger.exception("Unexpected error fetching %s", wallets[index].address)

        return collected

    def _fetch_with_retry(self, wallet: Wallet, cancel_event: threading.Event | None) -> FetchResult:
        """
        Fetch one wallet, retrying failures per the retry policy.

        Parameters
        ----------
        wallet : Wallet
            Wallet to fetch
        cancel_event : threading.Event | None
            Stops retrying once set

        Returns
        -------
        FetchResult
            Last attempt's result

        """
        result = self.client.fetch_wallet(wallet)

        # Retries on the free tier keep at least the throttle spacing
        delays = self.retry_config.backoff(floor=self.throttle or 0.0)
        for attempt, delay in enumerate(delays, start=1):
            if result.success or (cancel_event is not None and cancel_event.is_set()):
                break

            logger.debug(
                "Fetch for %s failed (attempt %d/%d), retrying in %.1fs...",
                wallet.address,
                attempt,
                self.retry_config.max_attempts,
                delay,
            )
            self._pause(delay, cancel_event)
            result = self.client.fetch_wallet(wallet)

        return result

    @staticmethod
    def _pause(seconds: float, cancel_event: threading.Event | None) -> None:
        if cancel_event is None:
            time.sleep(seconds)
        else:
            cancel_event.wait(seconds)

    def close(self) -> None:
        """Wait for background batches and release the HTTP client if owned."""
        if self._background is not None:
            self._background.shutdown(wait=True)
            self._background = None
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "BalanceAggregator":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()


def _to_wallets(addresses: Iterable[Any]) -> list[Wallet]:
    """
    Normalize caller input into fresh Wallets.

    Accepts address strings, Wallets, mappings with an "address" key, and
    objects with an `address` attribute. Entries without a string address are
    skipped.

    """
    wallets = []
    for item in addresses:
        if isinstance(item, Wallet):
            wallets.append(item)
            continue

        if isinstance(item, str):
            address = item
        elif isinstance(item, Mapping):
            address = item.get("address")
        else:
            address = getattr(item, "address", None)

        if not isinstance(address, str):
            logger.warning("Skipping entry without an address: %r", item)
            continue
        wallets.append(Wallet(address=address))
    return wallets
