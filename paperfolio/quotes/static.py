"""In-memory quote source for offline use."""

from collections.abc import Iterable, Mapping
from typing import Optional

from paperfolio.engine.pricing import is_valid_close
from paperfolio.models import Quote, QuoteBatch, normalize_ticker
from paperfolio.quotes.base import BaseQuoteSource, unique_tickers


class StaticQuoteSource(BaseQuoteSource):
    """Serves closing prices from a fixed table.

    Tickers missing from the table are left out of the batch, and the
    batch error names them, mirroring a partially failed remote call.
    """

    def __init__(self, prices: Optional[Mapping[str, float]] = None):
        self._prices = {
            normalize_ticker(ticker): price for ticker, price in (prices or {}).items()
        }

    def set_price(self, ticker: str, price: float) -> None:
        self._prices[normalize_ticker(ticker)] = price

    def fetch_latest_close(self, tickers: Iterable[str]) -> QuoteBatch:
        quotes = {}
        missing = []
        for ticker in unique_tickers(tickers):
            price = self._prices.get(ticker)
            if is_valid_close(price):
                quotes[ticker] = Quote(symbol=ticker, close=price, open=price)
            else:
                missing.append(ticker)

        error = f"No offline price for {', '.join(missing)}." if missing else ""
        return QuoteBatch(quotes=quotes, error=error)
