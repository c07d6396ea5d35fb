"""Request-level operations on the portfolio.

Each call is one request: trades and refreshes run as serialized
read-modify-write cycles against the store, and every domain error is
turned into a user-facing message here.
"""

import logging
import threading
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from paperfolio.db.store import PortfolioStore
from paperfolio.engine import (
    MarketRow,
    PortfolioValuation,
    execute_command,
    market_overview,
    refresh_prices,
    value_portfolio,
)
from paperfolio.errors import (
    PersistenceFailure,
    PricingUnavailable,
    StaleVersionError,
    TradeRejected,
)
from paperfolio.models import Portfolio, TradeCommand, format_quantity
from paperfolio.quotes.base import BaseQuoteSource, unique_tickers

logger = logging.getLogger(__name__)

MARKET_TICKERS = ["AAPL", "MSFT", "NVDA", "AMZN", "GOOGL", "META", "TSLA", "JPM", "V", "UNH"]

# Reload-and-reapply attempts when a save loses a version race.
MAX_SAVE_ATTEMPTS = 3


class TradeOutcome(BaseModel):
    """Result of a trade request."""

    success: bool = Field(..., description="Whether the trade was applied")
    message: str = Field(..., description="Summary or ERROR: <reason>")
    portfolio: Optional[Portfolio] = Field(default=None, description="Current stored portfolio")
    price: Optional[float] = Field(default=None, description="Execution price")

    model_config = {"frozen": True}


class DashboardView(BaseModel):
    """Refreshed valuation for the dashboard."""

    valuation: PortfolioValuation
    unresolved_tickers: tuple[str, ...] = ()
    warning: str = ""
    completed_at: datetime

    model_config = {"frozen": True}


class MarketView(BaseModel):
    """Daily moves for a fixed list of tickers."""

    tickers: list[str]
    rows: list[MarketRow] = Field(default_factory=list)
    error: str = ""
    completed_at: datetime

    model_config = {"frozen": True}


class TradingService:
    """Runs trades and price refreshes against the stored portfolio."""

    def __init__(self, store: PortfolioStore, quote_source: BaseQuoteSource):
        """Initialize the service.

        Args:
            store: Persistence for the single portfolio.
            quote_source: Source of closing prices.
        """
        self._store = store
        self._quote_source = quote_source
        self._lock = threading.Lock()

    def portfolio(self) -> Portfolio:
        """Get the stored portfolio without refreshing prices."""
        return self._store.load_portfolio()

    def submit_trade(self, action, ticker, quantity) -> TradeOutcome:
        """Parse, price and apply one trade command.

        The quote is fetched before the portfolio is loaded, so no network
        call happens inside the read-modify-write.

        Args:
            action: "buy" or "sell".
            ticker: Ticker symbol.
            quantity: Number of shares, as a number or numeric string.

        Returns:
            TradeOutcome with the resulting portfolio and message. Rejections
            carry the unchanged stored portfolio.
        """
        try:
            command = TradeCommand.parse(action, ticker, quantity)
            price = self._quote_source.get_latest_close(command.ticker)
            if price is None:
                raise PricingUnavailable(f"No price available for {command.ticker}.")

            portfolio = self._apply(command, price)
        except TradeRejected as e:
            logger.info("Trade rejected: %s", e.reason)
            return TradeOutcome(
                success=False,
                message=f"ERROR: {e.reason}",
                portfolio=self._current_or_none(),
            )
        except PersistenceFailure as e:
            logger.error("Trade not saved: %s", e)
            return TradeOutcome(
                success=False,
                message=f"ERROR: {e}",
                portfolio=self._current_or_none(),
            )

        quantity = format_quantity(command.quantity)
        message = f"{command.action.upper()} {quantity} {command.ticker} @ ${price:.2f} complete."
        logger.info(message)
        return TradeOutcome(success=True, message=message, portfolio=portfolio, price=price)

    def _apply(self, command: TradeCommand, price: float) -> Portfolio:
        with self._lock:
            for attempt in range(1, MAX_SAVE_ATTEMPTS + 1):
                portfolio = self._store.load_portfolio()
                updated = execute_command(portfolio, command, price)
                try:
                    return self._store.save_portfolio(updated)
                except StaleVersionError:
                    logger.info(
                        "Portfolio changed during %s %s, reloading (attempt %d)",
                        command.action, command.ticker, attempt,
                    )
        raise PersistenceFailure("Portfolio kept changing; trade not applied.")

    def _current_or_none(self) -> Optional[Portfolio]:
        try:
            return self._store.load_portfolio()
        except PersistenceFailure:
            return None

    def dashboard(self) -> DashboardView:
        """Refresh last prices and value the portfolio.

        One batched quote call covers every held ticker. Tickers that
        could not be priced keep their previous last price and are
        reported in the warning.

        Raises:
            PersistenceFailure: If the portfolio cannot be loaded or saved.
        """
        portfolio = self._store.load_portfolio()
        unresolved: tuple[str, ...] = ()
        api_error = ""

        if portfolio.holdings:
            batch = self._quote_source.fetch_latest_close(portfolio.tickers)
            api_error = batch.error
            portfolio, unresolved = self._refresh(batch.quotes)

        warning_parts = []
        if api_error:
            warning_parts.append(api_error)
        if unresolved:
            warning_parts.append(f"Prices not updated for: {', '.join(unresolved)}.")

        return DashboardView(
            valuation=value_portfolio(portfolio),
            unresolved_tickers=unresolved,
            warning=" ".join(warning_parts),
            completed_at=datetime.now(),
        )

    def _refresh(self, quotes: dict) -> tuple[Portfolio, tuple[str, ...]]:
        with self._lock:
            for attempt in range(1, MAX_SAVE_ATTEMPTS + 1):
                result = refresh_prices(self._store.load_portfolio(), quotes)
                if not result.changed:
                    return result.portfolio, result.unresolved_tickers
                try:
                    saved = self._store.save_portfolio(result.portfolio)
                    return saved, result.unresolved_tickers
                except StaleVersionError:
                    logger.info("Portfolio changed during refresh, reloading (attempt %d)", attempt)
        raise PersistenceFailure("Portfolio kept changing; prices not saved.")

    def market(self, tickers: Optional[list[str]] = None) -> MarketView:
        """Get open-to-close moves for a list of tickers."""
        tickers = unique_tickers(tickers or MARKET_TICKERS)
        batch = self._quote_source.fetch_latest_close(tickers)
        quotes = [batch.quotes[t] for t in tickers if t in batch.quotes]

        return MarketView(
            tickers=tickers,
            rows=market_overview(quotes),
            error=batch.error,
            completed_at=datetime.now(),
        )
