"""Base quote source interface for paperfolio."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Optional

from paperfolio.engine.pricing import extract_close
from paperfolio.models import QuoteBatch, normalize_ticker


class BaseQuoteSource(ABC):
    """Abstract base class for closing-price lookups.

    Implementations must never raise from fetch_latest_close: failures
    come back as an empty or partial batch with ``error`` set.
    """

    @abstractmethod
    def fetch_latest_close(self, tickers: Iterable[str]) -> QuoteBatch:
        """Get the latest closing price for a set of tickers in one call.

        Args:
            tickers: Ticker symbols to price.

        Returns:
            QuoteBatch keyed by ticker. Tickers that could not be priced
            are absent.
        """
        pass

    def get_latest_close(self, ticker: str) -> Optional[float]:
        """Get the latest closing price for a single ticker.

        Args:
            ticker: Ticker symbol.

        Returns:
            The closing price, or None if no usable price is available.
        """
        ticker = normalize_ticker(ticker)
        batch = self.fetch_latest_close([ticker])
        return extract_close(batch.quotes.get(ticker))


def unique_tickers(tickers: Iterable[str]) -> list[str]:
    """Normalize tickers, dropping blanks and duplicates but keeping order."""
    seen = []
    for ticker in tickers:
        ticker = normalize_ticker(ticker)
        if ticker and ticker not in seen:
            seen.append(ticker)
    return seen
