"""Error types for paperfolio.

Trade rejections carry a user-facing reason string and are raised
before any state change, so the caller's portfolio stays untouched.
"""


class TradeRejected(ValueError):
    """Base class for a refused trade."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ValidationError(TradeRejected):
    """Empty ticker, unknown action, or non-positive/non-finite quantity."""


class PricingUnavailable(TradeRejected):
    """No usable price for the traded ticker."""


class InsufficientFunds(TradeRejected):
    """Buy cost exceeds available cash."""


class InsufficientShares(TradeRejected):
    """Sell quantity exceeds the held quantity, or the ticker is not held."""


class QuoteSourceDegraded(RuntimeError):
    """A batch refresh could not price every held ticker."""

    def __init__(self, unresolved_tickers: tuple[str, ...], detail: str = ""):
        message = f"No price for: {', '.join(unresolved_tickers)}"
        if detail:
            message = f"{detail} {message}"
        super().__init__(message)
        self.unresolved_tickers = unresolved_tickers


class PersistenceFailure(RuntimeError):
    """Loading or saving the portfolio failed; the stored state is authoritative."""


class StaleVersionError(PersistenceFailure):
    """The stored portfolio changed since it was loaded."""

    def __init__(self, expected_version: int):
        super().__init__(
            f"Portfolio was modified concurrently (expected version {expected_version})."
        )
        self.expected_version = expected_version
