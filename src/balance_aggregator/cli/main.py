"""CLI for wallet balance aggregation."""

import json
import logging
from enum import StrEnum
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from balance_aggregator.core import BalanceAggregator, FetchResult
from balance_aggregator.data import is_free_api_key, load_api_key, load_settings
from balance_aggregator.integrations import EthplorerAPIError, EthplorerClient

# Install rich traceback handler
install(show_locals=False)

app = typer.Typer(
    name="wallet-balances",
    help="Fetch ETH and token balances for wallet addresses from the Ethplorer API",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _configure_logging(debug: bool) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=debug)],
        force=True,
    )


@app.command()
def balances(
    addresses: list[str] = typer.Argument(..., help="Wallet addresses to query"),
    api_key: str | None = typer.Option(None, "--api-key", "-k", help="Ethplorer API key (default: env/apikeys.yaml/freekey)"),
    settings_file: Path | None = typer.Option(None, "--settings", "-s", help="Settings YAML file"),
    format: OutputFormat = typer.Option(
        OutputFormat.TABLE,
        "--format",
        "-f",
        help="Output format",
    ),
    workers: int | None = typer.Option(None, "--workers", "-w", min=1, help="Concurrent requests for paid keys"),
    retries: int | None = typer.Option(
        None, "--retries", "-r", min=0, help="Retries per failed address (default: max_retries from settings)"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Get ETH and token balances for wallet addresses.

    Examples:

        # Free API key (requests are serialized, 2s apart)
        wallet-balances balances 0xABC... 0xDEF...

        # Paid key, JSON output
        wallet-balances balances 0xABC... --api-key KEY --format json
    """
    _configure_logging(debug)

    settings = load_settings(settings_file)
    if workers is not None:
        settings = settings.model_copy(update={"max_workers": workers})
    if retries is not None:
        settings = settings.model_copy(update={"max_retries": retries})
    key = api_key or load_api_key(settings=settings)

    if is_free_api_key(key, settings):
        console.print(
            f"[yellow]Using the free API key: requests are spaced {settings.throttle_seconds:g}s apart[/yellow]"
        )

    with BalanceAggregator.from_settings(settings, key) as aggregator:
        if format == OutputFormat.JSON:
            results = aggregator.load_balance_results(addresses)
            _output_json(results)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task(f"Fetching balances for {len(addresses)} address(es)...", total=None)
                results = aggregator.load_balance_results(addresses)
                progress.update(task, description=f"✓ Fetched {len(results)} wallet(s)")
            _output_table(results)

    if not any(result.success for result in results):
        raise typer.Exit(1)


@app.command()
def address_info(
    address: str = typer.Argument(..., help="Wallet address to query"),
    api_key: str | None = typer.Option(None, "--api-key", "-k", help="Ethplorer API key"),
    settings_file: Path | None = typer.Option(None, "--settings", "-s", help="Settings YAML file"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Print the decoded Ethplorer response for one address as JSON."""
    _configure_logging(debug)

    settings = load_settings(settings_file)
    key = api_key or load_api_key(settings=settings)

    with EthplorerClient(api_key=key, base_url=settings.base_url, timeout=settings.timeout) as client:
        try:
            info = client.get_address_info(address)
        except EthplorerAPIError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)

    typer.echo(json.dumps(info.model_dump(mode="json", by_alias=True), indent=2))


def _output_table(results: list[FetchResult]) -> None:
    """Output wallets as rich tables."""
    if not results:
        console.print("\n[yellow]No wallets loaded[/yellow]")
        return

    for result in results:
        wallet = result.wallet
        title = f"{wallet.address[:10]}...{wallet.address[-8:]}"

        if not result.success:
            console.print(f"\n[bold red]{title}:[/bold red] {result.error}")
            continue

        balance_str = f"{wallet.balance:,.6f} ETH" if wallet.balance is not None else "-"

        table = Table(
            title=f"{title}  {balance_str}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Token", style="cyan")
        table.add_column("Name", style="blue")
        table.add_column("Balance", style="white", justify="right")
        table.add_column("Rate", style="yellow", justify="right")
        table.add_column("Fiat Value", style="bold green", justify="right")

        for token in wallet.tokens:
            currency = token.fiat_currency or ""
            table.add_row(
                token.symbol or "?",
                token.name or "",
                f"{token.crypto_balance:,.4f}" if token.crypto_balance is not None else "-",
                f"{token.fiat_rate:,.4f} {currency}" if token.fiat_rate is not None else "-",
                f"{token.fiat_balance:,.2f} {currency}" if token.fiat_balance is not None else "-",
            )

        console.print("\n")
        console.print(table)

    console.print("\n")


def _output_json(results: list[FetchResult]) -> None:
    """Output wallets as JSON."""
    data = [result.model_dump(mode="json") for result in results]
    typer.echo(json.dumps(data, indent=2))


if __name__ == "__main__":
    app()
