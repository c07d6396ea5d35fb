"""Quote sources for paperfolio."""

from paperfolio.quotes.base import BaseQuoteSource
from paperfolio.quotes.marketstack import MarketstackQuoteSource
from paperfolio.quotes.static import StaticQuoteSource

__all__ = [
    "BaseQuoteSource",
    "MarketstackQuoteSource",
    "StaticQuoteSource",
]
