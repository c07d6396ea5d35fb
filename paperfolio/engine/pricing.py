"""Reconcile stored positions against a fresh batch of quotes."""

import logging
import math
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, Field

from paperfolio.errors import QuoteSourceDegraded
from paperfolio.models import Portfolio, Quote

logger = logging.getLogger(__name__)


class RefreshResult(BaseModel):
    """Outcome of a price refresh."""

    portfolio: Portfolio
    unresolved_tickers: tuple[str, ...] = Field(default=())
    changed: bool = Field(default=False, description="Whether any last_price moved")

    model_config = {"frozen": True}

    @property
    def degraded(self) -> bool:
        return bool(self.unresolved_tickers)

    def raise_if_degraded(self) -> None:
        """Raise QuoteSourceDegraded if any held ticker went unpriced."""
        if self.unresolved_tickers:
            raise QuoteSourceDegraded(self.unresolved_tickers)


def is_valid_close(close: Any) -> bool:
    """Check whether a quoted close is real market data.

    Unlike a trade price, a close of zero is accepted.
    """
    if isinstance(close, bool) or not isinstance(close, (int, float)):
        return False
    return math.isfinite(close) and close >= 0


def extract_close(quote: Any) -> Optional[float]:
    """Pull a closing price out of a batch entry.

    Accepts a Quote or a mapping with a "close" key. Anything else, or a
    close that is not a finite non-negative number, yields None.
    """
    if isinstance(quote, Quote):
        close = quote.close
    elif isinstance(quote, Mapping):
        close = quote.get("close")
    else:
        return None
    return float(close) if is_valid_close(close) else None


def refresh_prices(portfolio: Portfolio, quote_batch: Mapping[str, Any]) -> RefreshResult:
    """Update each position's last_price from a batch of quotes.

    Only ``last_price`` is touched; cash, quantity and average cost stay
    as they were. Applying the same batch twice gives the same result.

    Args:
        portfolio: Portfolio to revalue.
        quote_batch: Mapping of ticker to Quote or {"close": number}.

    Returns:
        RefreshResult with the updated portfolio and the tickers that
        were missing from the batch or had a malformed quote.
    """
    holdings = []
    unresolved = []
    changed = False

    for position in portfolio.holdings:
        close = extract_close(quote_batch.get(position.ticker))
        if close is None:
            unresolved.append(position.ticker)
            holdings.append(position)
            continue
        if close != position.last_price:
            changed = True
            position = position.model_copy(update={"last_price": close})
        holdings.append(position)

    if unresolved:
        logger.warning("No usable quote for %s", ", ".join(unresolved))

    return RefreshResult(
        portfolio=portfolio.model_copy(update={"holdings": tuple(holdings)}),
        unresolved_tickers=tuple(unresolved),
        changed=changed,
    )
