"""Market overview command for paperfolio CLI."""

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from paperfolio.cli.main import console, get_service


@click.command()
@click.argument("tickers", nargs=-1)
@click.pass_context
def market(ctx: click.Context, tickers: tuple[str, ...]) -> None:
    """Show the latest daily move for a list of tickers.

    Without TICKERS, shows ten large US stocks.

    \b
    Examples:
      paperfolio market
      paperfolio market AAPL MSFT
    """
    service = get_service(ctx)
    view = service.market(list(tickers) or None)

    console.print(f"[bold cyan]Market[/bold cyan] [dim]({', '.join(view.tickers)})[/dim]\n")

    if view.error:
        console.print(Panel(
            f"[yellow]{escape(view.error)}[/yellow]",
            title="[bold yellow]Quote Source[/bold yellow]",
            border_style="yellow",
        ))

    if not view.rows:
        console.print("[dim]No market data available.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Ticker", style="bold")
    table.add_column("Open", justify="right")
    table.add_column("Close", justify="right")
    table.add_column("Change %", justify="right")
    table.add_column("Date")

    for row in view.rows:
        color = "green" if row.pct >= 0 else "red"
        sign = "+" if row.pct >= 0 else ""
        table.add_row(
            row.ticker,
            f"${row.open:,.2f}",
            f"${row.close:,.2f}",
            f"[{color}]{sign}{row.pct:.2f}%[/{color}]",
            row.date or "",
        )

    console.print(table)
    console.print(f"\n[dim]Completed {view.completed_at:%Y-%m-%d %H:%M:%S}[/dim]")
