"""Data models for paperfolio."""

from paperfolio.models.command import TradeCommand
from paperfolio.models.position import (
    Portfolio,
    Position,
    format_quantity,
    normalize_ticker,
)
from paperfolio.models.quote import Quote, QuoteBatch

__all__ = [
    "Portfolio",
    "Position",
    "Quote",
    "QuoteBatch",
    "TradeCommand",
    "format_quantity",
    "normalize_ticker",
]
