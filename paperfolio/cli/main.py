"""Main CLI entry point for paperfolio.

This module provides the main click group and lazy loading
for heavy imports to improve startup time.
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    This improves CLI startup time by only importing
    command modules when they are actually invoked.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        attr = getattr(module, cmd_name, None)
        if not isinstance(attr, click.Command):
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(attr)
        return attr


LAZY_SUBCOMMANDS = {
    "buy": "paperfolio.cli.trade",
    "sell": "paperfolio.cli.trade",
    "holdings": "paperfolio.cli.trade",
    "dashboard": "paperfolio.cli.portfolio",
    "market": "paperfolio.cli.market",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def setup_logging(verbose: bool) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def get_store():
    """Open the portfolio store configured in config.toml."""
    from paperfolio import config as cfg
    from paperfolio.db.store import PortfolioStore

    config = cfg.load_config()
    return PortfolioStore(cfg.get_db_path(config), starting_cash=cfg.get_starting_cash(config))


def get_service(ctx: click.Context, quotes: bool = True):
    """Build the trading service from config and CLI flags.

    With ``quotes=False`` the service gets an empty offline source, for
    commands that only read stored state.
    """
    from paperfolio import config as cfg
    from paperfolio.errors import PersistenceFailure
    from paperfolio.quotes import MarketstackQuoteSource, StaticQuoteSource
    from paperfolio.service import TradingService

    config = cfg.load_config()
    try:
        store = get_store()
    except PersistenceFailure as e:
        print_error(escape(str(e)))
        raise SystemExit(1)

    if not quotes:
        quote_source = StaticQuoteSource()
    elif ctx.obj.get("offline"):
        quote_source = StaticQuoteSource(cfg.get_offline_prices(config))
    else:
        settings = cfg.get_marketstack_settings(config)
        if not settings["access_key"]:
            print_error(
                "Marketstack access key not configured.\n\n"
                "Set [cyan]MARKETSTACK_ACCESS_KEY[/cyan] or add it to "
                f"[cyan]{cfg.get_config_path()}[/cyan], or run with [cyan]--offline[/cyan]."
            )
            raise SystemExit(1)
        quote_source = MarketstackQuoteSource(**settings)

    return TradingService(store, quote_source)


def print_error(message: str) -> None:
    """Show an error panel."""
    console.print(Panel(
        f"[red]{message}[/red]",
        title="[bold red]Error[/bold red]",
        border_style="red",
    ))


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="paperfolio")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--offline", is_flag=True, help="Use prices from [offline.prices] in the config.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, offline: bool) -> None:
    """paperfolio - a simulated brokerage portfolio.

    Buy and sell equities against a virtual cash balance and value
    your holdings at the latest closing prices.

    \b
    Quick Start:
      paperfolio buy AAPL 10    # Buy 10 shares at the last close
      paperfolio dashboard      # Refresh prices and show P&L
      paperfolio market         # Daily moves of large caps
    """
    ctx.ensure_object(dict)
    ctx.obj["offline"] = offline
    setup_logging(verbose)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
