"""Marketstack end-of-day quote source."""

import logging
from collections.abc import Iterable
from typing import Optional

import requests
from pydantic import ValidationError

from paperfolio.engine.pricing import is_valid_close
from paperfolio.models import Quote, QuoteBatch
from paperfolio.quotes.base import BaseQuoteSource, unique_tickers

logger = logging.getLogger(__name__)


class MarketstackQuoteSource(BaseQuoteSource):
    """Latest closing prices from the Marketstack ``eod/latest`` endpoint.

    All tickers are requested in a single call. Any failure resolves to
    "no price" for the affected tickers; stale or default prices are
    never substituted.
    """

    DEFAULT_BASE_URL = "https://api.marketstack.com/v2"
    DEFAULT_TIMEOUT = 10.0

    HTTP_ERROR = "Marketstack HTTP error"
    API_ERROR = "Marketstack API error."

    def __init__(
        self,
        access_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the quote source.

        Args:
            access_key: Marketstack API access key.
            base_url: API root, without a trailing slash.
            timeout: Request timeout in seconds.
            session: Optional requests session to reuse.
        """
        self._access_key = access_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def fetch_latest_close(self, tickers: Iterable[str]) -> QuoteBatch:
        """Get the latest closing prices for tickers.

        Args:
            tickers: Ticker symbols to price.

        Returns:
            QuoteBatch with one Quote per priced symbol and ``error`` set
            when the request failed.
        """
        symbols = unique_tickers(tickers)
        if not symbols:
            return QuoteBatch()

        try:
            response = self._session.get(
                f"{self._base_url}/eod/latest",
                params={"access_key": self._access_key, "symbols": ",".join(symbols)},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning("Marketstack request failed: %s", e)
            return QuoteBatch(error=self.API_ERROR)

        if not response.ok:
            logger.warning("Marketstack returned HTTP %s", response.status_code)
            return QuoteBatch(error=self.HTTP_ERROR)

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning("Marketstack returned invalid JSON: %s", e)
            return QuoteBatch(error=self.API_ERROR)

        rows = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            logger.warning("Marketstack response has no data list")
            return QuoteBatch(error=self.API_ERROR)

        return QuoteBatch(quotes=parse_rows(rows))


def parse_rows(rows: list) -> dict[str, Quote]:
    """Convert Marketstack ``data`` rows into quotes keyed by symbol.

    Malformed rows are dropped.
    """
    quotes = {}
    for row in rows:
        if not isinstance(row, dict):
            continue
        symbol = str(row.get("symbol") or "").strip().upper()
        close = row.get("close")
        if not symbol or not is_valid_close(close):
            logger.debug("Skipping malformed quote row: %r", row)
            continue
        open_price = row.get("open")
        date = row.get("date")
        try:
            quotes[symbol] = Quote(
                symbol=symbol,
                close=close,
                open=open_price if is_valid_close(open_price) else None,
                date=str(date) if date is not None else None,
            )
        except ValidationError:
            logger.debug("Skipping malformed quote row: %r", row)
    return quotes
