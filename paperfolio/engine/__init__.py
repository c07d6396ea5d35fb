"""Accounting engine: trade execution, price refresh and valuation."""

from paperfolio.engine.pricing import (
    RefreshResult,
    extract_close,
    is_valid_close,
    refresh_prices,
)
from paperfolio.engine.trade import execute_command, execute_trade, is_usable_price
from paperfolio.engine.valuation import (
    MarketRow,
    PortfolioValuation,
    PositionValuation,
    market_overview,
    value_portfolio,
    value_position,
)

__all__ = [
    "MarketRow",
    "PortfolioValuation",
    "PositionValuation",
    "RefreshResult",
    "execute_command",
    "execute_trade",
    "extract_close",
    "is_usable_price",
    "is_valid_close",
    "market_overview",
    "refresh_prices",
    "value_portfolio",
    "value_position",
]
