"""Trading commands for paperfolio CLI.

Handles buy and sell orders and the plain holdings listing.
"""

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from paperfolio.cli.main import console, get_service, print_error
from paperfolio.models import format_quantity


def render_holdings(portfolio) -> None:
    """Print cash and the holdings table as stored (no price refresh)."""
    console.print(f"Cash: [bold]${portfolio.cash:,.2f}[/bold]")

    if not portfolio.holdings:
        console.print("\n[dim]No holdings.[/dim]")
        return

    table = Table(title="Holdings", show_header=True, header_style="bold")
    table.add_column("Ticker", style="bold")
    table.add_column("Qty", justify="right")
    table.add_column("Avg Price", justify="right")
    table.add_column("Last Price", justify="right")

    for pos in portfolio.holdings:
        table.add_row(
            pos.ticker,
            format_quantity(pos.quantity),
            f"${pos.avg_purchase_price:,.2f}",
            f"${pos.last_price:,.2f}",
        )

    console.print()
    console.print(table)


def _trade(ctx: click.Context, action: str, ticker: str, qty: str) -> None:
    service = get_service(ctx)
    outcome = service.submit_trade(action, ticker, qty)

    if outcome.success:
        console.print(Panel(
            f"[green]{escape(outcome.message)}[/green]",
            title="[bold green]Trade Complete[/bold green]",
            border_style="green",
        ))
    else:
        print_error(escape(outcome.message))

    if outcome.portfolio is not None:
        render_holdings(outcome.portfolio)

    if not outcome.success:
        raise SystemExit(1)


@click.command()
@click.argument("ticker")
@click.argument("qty")
@click.pass_context
def buy(ctx: click.Context, ticker: str, qty: str) -> None:
    """Buy shares at the latest closing price.

    TICKER is the ticker symbol (e.g., AAPL, MSFT).
    QTY is the number of shares to buy.

    \b
    Examples:
      paperfolio buy AAPL 10
      paperfolio --offline buy msft 2.5
    """
    _trade(ctx, "buy", ticker, qty)


@click.command()
@click.argument("ticker")
@click.argument("qty")
@click.pass_context
def sell(ctx: click.Context, ticker: str, qty: str) -> None:
    """Sell held shares at the latest closing price.

    TICKER is the ticker symbol. QTY is the number of shares to sell;
    selling the whole position closes it.

    \b
    Examples:
      paperfolio sell AAPL 5
    """
    _trade(ctx, "sell", ticker, qty)


@click.command()
@click.pass_context
def holdings(ctx: click.Context) -> None:
    """Show cash and holdings as last stored, without fetching prices."""
    from paperfolio.errors import PersistenceFailure

    try:
        portfolio = get_service(ctx, quotes=False).portfolio()
    except PersistenceFailure as e:
        print_error(escape(str(e)))
        raise SystemExit(1)

    render_holdings(portfolio)
