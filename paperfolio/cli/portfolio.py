"""Portfolio commands for paperfolio CLI.

Handles the valuation dashboard.
"""

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from paperfolio.cli.main import console, get_service, print_error
from paperfolio.models import format_quantity


def _signed(value: float, fmt: str = ",.2f", prefix: str = "$") -> str:
    color = "green" if value >= 0 else "red"
    sign = "+" if value >= 0 else "-"
    return f"[{color}]{sign}{prefix}{abs(value):{fmt}}[/{color}]"


@click.command()
@click.pass_context
def dashboard(ctx: click.Context) -> None:
    """Refresh prices and show portfolio valuation.

    Fetches the latest close for every held ticker in one request,
    stores the new last prices and shows market value and unrealized
    P&L per position.

    \b
    Examples:
      paperfolio dashboard
      paperfolio --offline dashboard
    """
    from paperfolio.errors import PersistenceFailure

    service = get_service(ctx)
    try:
        view = service.dashboard()
    except PersistenceFailure as e:
        print_error(escape(f"Error loading dashboard: {e}"))
        raise SystemExit(1)

    valuation = view.valuation

    console.print("[bold cyan]Portfolio Dashboard[/bold cyan]\n")

    summary_text = (
        f"Cash:               ${valuation.cash:,.2f}\n"
        f"Market Value:       ${valuation.total_market_value:,.2f}\n"
        f"{'─' * 35}\n"
        f"Total Equity:       [bold]${valuation.total_equity:,.2f}[/bold]\n"
        f"Unrealized P&L:     {_signed(valuation.total_pnl)}"
    )
    console.print(Panel(summary_text, title="[bold]Account[/bold]", border_style="cyan"))

    if view.warning:
        console.print(Panel(
            f"[yellow]{escape(view.warning)}[/yellow]",
            title="[bold yellow]Partial Data[/bold yellow]",
            border_style="yellow",
        ))

    if valuation.rows:
        console.print()
        table = Table(title="Holdings", show_header=True, header_style="bold")

        table.add_column("Ticker", style="bold")
        table.add_column("Qty", justify="right")
        table.add_column("Avg Price", justify="right")
        table.add_column("Last Price", justify="right")
        table.add_column("Market Value", justify="right")
        table.add_column("P&L", justify="right")
        table.add_column("P&L %", justify="right")

        for row in valuation.rows:
            stale = " [yellow]*[/yellow]" if row.ticker in view.unresolved_tickers else ""
            table.add_row(
                row.ticker,
                format_quantity(row.quantity),
                f"${row.avg_purchase_price:,.2f}",
                f"${row.last_price:,.2f}{stale}",
                f"${row.market_value:,.2f}",
                _signed(row.pnl),
                _signed(row.pnl_percent, ".2f", "") + "%",
            )

        console.print(table)
    else:
        console.print("\n[dim]No holdings.[/dim]")

    console.print(f"\n[dim]Completed {view.completed_at:%Y-%m-%d %H:%M:%S}[/dim]")
