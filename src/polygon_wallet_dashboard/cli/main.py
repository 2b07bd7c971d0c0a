"""CLI for the Polygon wallet dashboard."""

import asyncio
import json
import logging
from decimal import Decimal
from enum import StrEnum
from typing import Any

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from polygon_wallet_dashboard.analytics import (
    DISPLAY_LIMIT,
    check_achievements,
    defi_total_value,
    distribution,
    estimate_yield,
    filter_transactions,
    health_report,
    rarity_color,
    total_value,
)
from polygon_wallet_dashboard.analytics.transactions import Direction, StatusFilter
from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.core import DashboardSnapshot, Domain, DomainStatus, ProtocolRegistry
from polygon_wallet_dashboard.core.aggregator import DashboardSession
from polygon_wallet_dashboard.core.models import LendingPosition, Transaction
from polygon_wallet_dashboard.errors import DashboardError
from polygon_wallet_dashboard.formatters import (
    addresses_equal,
    format_address,
    format_datetime,
    format_price,
    format_token_balance,
    is_valid_address,
)
from polygon_wallet_dashboard.pricing import CoinGeckoPricing

# Install rich traceback handler
install(show_locals=False)

app = typer.Typer(
    name="polygon-wallet-dashboard",
    help="Aggregate Polygon wallet balances, NFTs, DeFi positions and history",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=debug)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def _require_address(address: str) -> str:
    address = address.strip()
    if not is_valid_address(address):
        console.print(f"[bold red]Invalid address:[/bold red] {address!r}")
        console.print("[dim]Expected 0x followed by 40 hexadecimal characters[/dim]")
        raise typer.Exit(code=1)
    return address


def _load_settings() -> Settings:
    try:
        return Settings.from_env()
    except DashboardError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.message}")
        raise typer.Exit(code=1) from e


async def _load(
    settings: Settings,
    address: str,
    domains: list[Domain] | None = None,
    transaction_pages: int = 1,
) -> DashboardSnapshot | None:
    async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
        session = DashboardSession(settings, client)
        snapshot = await session.load(address, domains)
        for _ in range(transaction_pages - 1):
            if snapshot is None or not snapshot.states[Domain.TRANSACTIONS].has_more:
                break
            snapshot = await session.load_more_transactions()
        return snapshot


def _run_load(settings: Settings, address: str, description: str, **kwargs: Any) -> DashboardSnapshot:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        snapshot = asyncio.run(_load(settings, address, **kwargs))

    if snapshot is None:
        console.print("[bold red]Load was superseded[/bold red]")
        raise typer.Exit(code=1)
    return snapshot


@app.command()
def report(
    address: str = typer.Argument(..., help="Wallet address to query"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Load every domain for a wallet and print the full dashboard.

    Examples:

        polygon-wallet-dashboard report 0xABC...

        polygon-wallet-dashboard report 0xABC... --format json
    """
    _configure_logging(debug)
    address = _require_address(address)
    settings = _load_settings()

    snapshot = _run_load(settings, address, f"Loading dashboard for {format_address(address)}...")

    if format == OutputFormat.JSON:
        _output_json(_report_payload(snapshot, settings))
    else:
        _output_report(snapshot, settings)


@app.command()
def transactions(
    address: str = typer.Argument(..., help="Wallet address to query"),
    direction: Direction = typer.Option(Direction.ALL, "--direction", help="Filter by direction"),
    status: StatusFilter = typer.Option(StatusFilter.ALL, "--status", help="Filter by status"),
    search: str | None = typer.Option(None, "--search", "-s", help="Search hash, addresses or value"),
    pages: int = typer.Option(1, "--pages", "-n", min=1, help="Number of pages to load"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """List a wallet's transaction history."""
    _configure_logging(debug)
    address = _require_address(address)
    settings = _load_settings()

    snapshot = _run_load(
        settings,
        address,
        "Loading transactions...",
        domains=[Domain.TRANSACTIONS],
        transaction_pages=pages,
    )

    state = snapshot.states[Domain.TRANSACTIONS]
    if state.status == DomainStatus.FAILED:
        console.print(f"[bold red]{state.error.message}[/bold red]")
        raise typer.Exit(code=1)

    rows = filter_transactions(snapshot.model.transactions, address, direction, status, search)
    _print_transactions(rows, address, title=f"Transactions ({state.source})")
    if state.has_more:
        console.print("[dim]More transactions available, use --pages to load more[/dim]")


@app.command()
def prices(
    symbols: list[str] = typer.Argument(..., help="Token symbols (e.g., MATIC USDC)"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Print USD prices for token symbols."""
    _configure_logging(debug)
    settings = _load_settings()

    async def _resolve() -> dict[str, Decimal]:
        async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
            pricing = CoinGeckoPricing(settings, client)
            if len(symbols) == 1:
                price = await pricing.get_price(symbols[0])
                return {} if price is None else {symbols[0]: price}
            return await pricing.resolve(symbols)

    try:
        resolved = asyncio.run(_resolve())
    except DashboardError as e:
        console.print(f"[bold red]Price lookup failed:[/bold red] {e.message}")
        raise typer.Exit(code=1) from e

    table = Table(title="Token Prices", show_header=True, header_style="bold magenta")
    table.add_column("Symbol", style="cyan")
    table.add_column("USD Price", style="bold green", justify="right")
    for symbol in symbols:
        table.add_row(symbol, format_price(resolved.get(symbol)))
    console.print(table)


@app.command()
def list_protocols() -> None:
    """List all supported DeFi protocols."""
    table = Table(title="Supported Protocols", show_header=True, header_style="bold magenta")
    table.add_column("Protocol", style="cyan")
    table.add_column("Name")
    table.add_column("Type", style="yellow")
    table.add_column("Supported Chains", style="green")

    for row in ProtocolRegistry.describe():
        table.add_row(row["name"], row["display_name"], row["type"], ", ".join(row["chains"]))

    console.print(table)


def _report_payload(snapshot: DashboardSnapshot, settings: Settings) -> dict[str, Any]:
    model = snapshot.model
    return {
        "address": model.address,
        "states": {domain.value: state.model_dump(mode="json") for domain, state in snapshot.states.items()},
        "tokens": [
            {**token.model_dump(mode="json"), "quantity": str(token.quantity), "value_usd": str(token.value_usd)}
            for token in model.tokens
        ],
        "total_value_usd": str(total_value(model.tokens)),
        "distribution": [entry.model_dump(mode="json") for entry in distribution(model.tokens, DISPLAY_LIMIT)],
        "defi_positions": [position.model_dump(mode="json") for position in model.defi_positions],
        "defi_total_value_usd": str(defi_total_value(model.defi_positions)),
        "health": health_report(model).model_dump(mode="json"),
        "yield": estimate_yield(model.defi_positions, settings.yield_assumptions).model_dump(mode="json"),
        "achievements": [achievement.model_dump(mode="json") for achievement in check_achievements(model)],
        "nfts": [nft.model_dump(mode="json") for nft in model.nfts],
        "transactions": [tx.model_dump(mode="json") for tx in model.transactions],
    }


def _output_report(snapshot: DashboardSnapshot, settings: Settings) -> None:
    """Output the dashboard as rich tables, one section per domain."""
    model = snapshot.model
    states = snapshot.states
    console.print(f"\n[bold cyan]Dashboard for:[/bold cyan] {model.address}\n")

    # Balances
    if _print_state(Domain.BALANCES, snapshot):
        table = Table(title="Balances", show_header=True, header_style="bold magenta")
        table.add_column("Token", style="cyan")
        table.add_column("Balance", justify="right")
        table.add_column("Price", justify="right")
        table.add_column("USD Value", style="bold green", justify="right")
        for token in model.tokens:
            table.add_row(
                token.symbol,
                format_token_balance(token.raw_balance, token.decimals),
                format_price(token.unit_price_usd),
                f"${token.value_usd:,.2f}" if token.unit_price_usd is not None else "-",
            )
        console.print(table)
        console.print(f"[bold]Total Value:[/bold] [bold green]${total_value(model.tokens):,.2f}[/bold green]\n")

        entries = distribution(model.tokens, DISPLAY_LIMIT)
        if entries:
            dist = Table(title="Distribution", show_header=True, header_style="bold magenta")
            dist.add_column("Token", style="cyan")
            dist.add_column("Share", justify="right")
            for entry in entries:
                dist.add_row(entry.symbol, f"{entry.percentage:.2f}%")
            console.print(dist)

    # DeFi
    if _print_state(Domain.DEFI, snapshot):
        if not model.defi_positions:
            console.print("[yellow]No DeFi positions found[/yellow]\n")
        for position in model.defi_positions:
            if isinstance(position, LendingPosition):
                health = f"{position.health_factor:.2f}" if position.health_factor is not None else "∞"
                console.print(
                    f"{position.logo} [bold]{position.protocol_name}[/bold]  "
                    f"collateral ${position.total_collateral_usd:,.2f}  debt ${position.total_debt_usd:,.2f}  "
                    f"available ${position.available_borrow_usd:,.2f}  health {health}  "
                    f"LTV {position.loan_to_value:.2%}"
                )
            else:
                console.print(
                    f"{position.logo} [bold]{position.protocol_name}[/bold]  "
                    f"{position.position_count} pool(s): {', '.join(position.pairs)}"
                )

        yields = estimate_yield(model.defi_positions, settings.yield_assumptions)
        if yields.sources:
            console.print(
                f"[bold]Estimated yearly yield:[/bold] {format_price(yields.total_yield_usd)}  "
                f"(average APY {yields.average_apy:.2f}%)\n"
            )

    # Health
    if states[Domain.BALANCES].status == DomainStatus.SUCCEEDED:
        health = health_report(model)
        console.print(
            f"[bold]Health score:[/bold] {health.score} ({health.label}), {health.risk_level} risk"
        )
        for factor in health.risk_factors:
            console.print(f"  [red]- {factor}[/red]")
        for tip in health.recommendations:
            console.print(f"  [dim]* {tip}[/dim]")
        console.print()

        unlocked = check_achievements(model)
        if unlocked:
            console.print("[bold]Achievements:[/bold]")
            for achievement in unlocked:
                color = rarity_color(achievement.rarity)
                console.print(
                    f"  {achievement.icon} [{color}]{achievement.title}[/{color}]  [dim]{achievement.description}[/dim]"
                )
            console.print()

    # NFTs
    if _print_state(Domain.NFTS, snapshot):
        collections = {nft.collection_name for nft in model.nfts}
        console.print(f"[bold]NFTs:[/bold] {len(model.nfts)} across {len(collections)} collection(s)\n")

    # Transactions
    if _print_state(Domain.TRANSACTIONS, snapshot):
        _print_transactions(
            list(model.transactions),
            model.address,
            title=f"Recent Transactions ({states[Domain.TRANSACTIONS].source})",
        )


def _print_state(domain: Domain, snapshot: DashboardSnapshot) -> bool:
    """Print a domain's error, if any; return whether its data should be shown."""
    state = snapshot.states[domain]
    if state.error is not None:
        console.print(f"[bold red]{state.error.message}[/bold red]\n")
    return state.status == DomainStatus.SUCCEEDED


def _print_transactions(rows: list[Transaction], owner: str, title: str) -> None:
    if not rows:
        console.print("[yellow]No transactions found[/yellow]\n")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Hash", style="cyan")
    table.add_column("Time")
    table.add_column("Direction")
    table.add_column("Counterparty")
    table.add_column("Value", justify="right")
    table.add_column("Status")

    for tx in rows:
        outgoing = addresses_equal(tx.from_address, owner)
        counterparty = tx.to_address if outgoing else tx.from_address
        table.add_row(
            format_address(tx.hash),
            format_datetime(tx.timestamp) or "-",
            "[red]OUT[/red]" if outgoing else "[green]IN[/green]",
            format_address(counterparty) or "-",
            f"{tx.value.normalize():f} {tx.asset_symbol}",
            "[green]success[/green]" if tx.status == "success" else "[red]failed[/red]",
        )

    console.print(table)
    console.print()


def _output_json(data: dict[str, Any]) -> None:
    """Output a payload as JSON."""
    console.print(json.dumps(data, indent=2, ensure_ascii=False), markup=False, highlight=False, soft_wrap=True)


if __name__ == "__main__":
    app()
