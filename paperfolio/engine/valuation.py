"""Valuation of positions and the portfolio as a whole."""

from collections.abc import Iterable
from typing import Optional

from pydantic import BaseModel, Field

from paperfolio.models import Portfolio, Position, Quote


class PositionValuation(BaseModel):
    """One row of the holdings table."""

    ticker: str
    quantity: float
    avg_purchase_price: float
    last_price: float
    market_value: float
    pnl: float
    pnl_percent: float

    model_config = {"frozen": True}


class PortfolioValuation(BaseModel):
    """Valuation rows plus portfolio totals."""

    cash: float
    rows: list[PositionValuation] = Field(default_factory=list)
    total_market_value: float = 0.0
    total_equity: float = 0.0

    model_config = {"frozen": True}

    @property
    def total_pnl(self) -> float:
        return sum(row.pnl for row in self.rows)


class MarketRow(BaseModel):
    """Daily move of one ticker on the market overview."""

    ticker: str
    open: float
    close: float
    pct: float
    date: Optional[str] = None

    model_config = {"frozen": True}


def value_position(position: Position) -> PositionValuation:
    """Compute market value and unrealized P&L for a position."""
    market_value = position.last_price * position.quantity
    pnl = (position.last_price - position.avg_purchase_price) * position.quantity
    if position.avg_purchase_price > 0:
        pnl_percent = (position.last_price - position.avg_purchase_price) / position.avg_purchase_price * 100
    else:
        pnl_percent = 0.0

    return PositionValuation(
        ticker=position.ticker,
        quantity=position.quantity,
        avg_purchase_price=position.avg_purchase_price,
        last_price=position.last_price,
        market_value=market_value,
        pnl=pnl,
        pnl_percent=pnl_percent,
    )


def value_portfolio(portfolio: Portfolio) -> PortfolioValuation:
    """Value every position and total the portfolio.

    Empty holdings give zero market value and equity equal to cash.
    """
    rows = [value_position(p) for p in portfolio.holdings]
    total_market_value = sum(row.market_value for row in rows)

    return PortfolioValuation(
        cash=portfolio.cash,
        rows=rows,
        total_market_value=total_market_value,
        total_equity=portfolio.cash + total_market_value,
    )


def market_overview(quotes: Iterable[Quote]) -> list[MarketRow]:
    """Turn quotes into open-to-close percentage moves.

    Quotes without an opening price, or with an opening price of zero,
    are skipped.
    """
    rows = []
    for quote in quotes:
        if quote.open is None or quote.open == 0:
            continue
        rows.append(MarketRow(
            ticker=quote.symbol,
            open=quote.open,
            close=quote.close,
            pct=(quote.close - quote.open) / quote.open * 100,
            date=quote.date,
        ))
    return rows
