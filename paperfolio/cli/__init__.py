"""CLI commands for paperfolio.

This package provides the command-line interface for paperfolio,
covering trades, the valuation dashboard and the market overview.
"""

from paperfolio.cli.main import cli, main

__all__ = ["cli", "main"]
