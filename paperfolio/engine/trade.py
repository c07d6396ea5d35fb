"""Trade execution against a portfolio.

The engine is pure: it takes a portfolio and an already resolved price
and returns a new portfolio. The input portfolio is never modified, so a
rejected trade leaves the caller's state exactly as it was.
"""

import math
from typing import Any, Optional

from paperfolio.errors import (
    InsufficientFunds,
    InsufficientShares,
    PricingUnavailable,
    ValidationError,
)
from paperfolio.models import Portfolio, Position, TradeCommand


def is_usable_price(price: Any) -> bool:
    """Check whether a price can be traded or displayed.

    Args:
        price: Candidate price from a quote source.

    Returns:
        True for finite numbers strictly greater than zero.
    """
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return False
    return math.isfinite(price) and price > 0


def execute_trade(
    portfolio: Portfolio,
    action: str,
    ticker: str,
    quantity: float,
    current_price: Optional[float],
) -> Portfolio:
    """Apply a single buy or sell to a portfolio.

    Args:
        portfolio: Current portfolio state.
        action: "buy" or "sell".
        ticker: Ticker symbol to trade.
        quantity: Number of shares.
        current_price: Resolved market price, or None if none was available.

    Returns:
        The updated portfolio. ``version`` is carried over unchanged.

    Raises:
        ValidationError: If the ticker, action or quantity is invalid.
        PricingUnavailable: If the price is missing or the trade value is not finite.
        InsufficientFunds: If a buy costs more than the available cash.
        InsufficientShares: If a sell exceeds the held quantity.
    """
    command = TradeCommand.parse(action, ticker, quantity)
    return execute_command(portfolio, command, current_price)


def execute_command(
    portfolio: Portfolio,
    command: TradeCommand,
    current_price: Optional[float],
) -> Portfolio:
    """Apply a parsed TradeCommand. See execute_trade."""
    if not is_usable_price(current_price):
        raise PricingUnavailable(f"No price available for {command.ticker}.")

    value = current_price * command.quantity
    if not math.isfinite(value):
        raise PricingUnavailable(f"Could not value {command.ticker} trade.")

    if command.action == "buy":
        return _buy(portfolio, command.ticker, command.quantity, current_price, value)
    if command.action == "sell":
        return _sell(portfolio, command.ticker, command.quantity, current_price, value)
    raise ValidationError("Action must be 'buy' or 'sell'.")


def _buy(
    portfolio: Portfolio,
    ticker: str,
    quantity: float,
    price: float,
    cost: float,
) -> Portfolio:
    if portfolio.cash < cost:
        raise InsufficientFunds("Not enough cash for this buy.")

    existing = portfolio.get(ticker)
    if existing is None:
        position = Position(
            ticker=ticker,
            quantity=quantity,
            avg_purchase_price=price,
            last_price=price,
        )
        holdings = portfolio.holdings + (position,)
    else:
        # Weighted mean over the pre-update quantity and average.
        total_qty = existing.quantity + quantity
        new_avg = (existing.avg_purchase_price * existing.quantity + price * quantity) / total_qty
        position = existing.model_copy(
            update={
                "quantity": total_qty,
                "avg_purchase_price": new_avg,
                "last_price": price,
            }
        )
        holdings = _replace(portfolio.holdings, position)

    return portfolio.model_copy(
        update={"cash": portfolio.cash - cost, "holdings": holdings}
    )


def _sell(
    portfolio: Portfolio,
    ticker: str,
    quantity: float,
    price: float,
    proceeds: float,
) -> Portfolio:
    existing = portfolio.get(ticker)
    if existing is None or existing.quantity < quantity:
        raise InsufficientShares("Not enough shares to sell.")

    remaining = existing.quantity - quantity
    if remaining == 0:
        holdings = tuple(p for p in portfolio.holdings if p.ticker != ticker)
    else:
        # Average cost of the remaining shares is unchanged by a sell.
        position = existing.model_copy(update={"quantity": remaining, "last_price": price})
        holdings = _replace(portfolio.holdings, position)

    return portfolio.model_copy(
        update={"cash": portfolio.cash + proceeds, "holdings": holdings}
    )


def _replace(holdings: tuple[Position, ...], position: Position) -> tuple[Position, ...]:
    return tuple(position if p.ticker == position.ticker else p for p in holdings)
