"""Position and Portfolio data models."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def normalize_ticker(value: str) -> str:
    """Strip surrounding whitespace and uppercase a ticker symbol."""
    return str(value).strip().upper()


def format_quantity(quantity: float) -> str:
    """Render a share count without rounding, dropping a trailing ".0"."""
    quantity = float(quantity)
    if quantity.is_integer():
        return str(int(quantity))
    return repr(quantity)


class Position(BaseModel):
    """One owned instrument."""

    ticker: str = Field(..., min_length=1, description="Ticker symbol")
    quantity: float = Field(..., gt=0, allow_inf_nan=False, description="Shares held")
    avg_purchase_price: float = Field(
        ..., ge=0, allow_inf_nan=False, description="Weighted average cost per share"
    )
    last_price: float = Field(
        ..., ge=0, allow_inf_nan=False, description="Last observed market price"
    )

    model_config = {"frozen": True}

    @field_validator("ticker", mode="before")
    @classmethod
    def _normalize_ticker(cls, value: str) -> str:
        return normalize_ticker(value)

    @model_validator(mode="before")
    @classmethod
    def _default_last_price(cls, data):
        # Defaults to the price at acquisition.
        if isinstance(data, dict) and data.get("last_price") is None:
            data = {**data, "last_price": data.get("avg_purchase_price")}
        return data


class Portfolio(BaseModel):
    """Cash plus the set of positions, keyed by ticker.

    Holdings keep the order in which tickers were first bought. ``version``
    is owned by the persistence layer and bumped on every successful save.
    """

    cash: float = Field(..., ge=0, allow_inf_nan=False, description="Available cash")
    holdings: tuple[Position, ...] = Field(default=(), description="Open positions")
    version: int = Field(default=0, ge=0, description="Optimistic concurrency counter")

    model_config = {"frozen": True}

    @field_validator("holdings")
    @classmethod
    def _unique_tickers(cls, holdings: tuple[Position, ...]) -> tuple[Position, ...]:
        seen = set()
        for position in holdings:
            if position.ticker in seen:
                raise ValueError(f"Duplicate position for {position.ticker}")
            seen.add(position.ticker)
        return holdings

    @property
    def tickers(self) -> list[str]:
        return [p.ticker for p in self.holdings]

    def get(self, ticker: str) -> Optional[Position]:
        """Return the position for a ticker, or None if not held."""
        ticker = normalize_ticker(ticker)
        return next((p for p in self.holdings if p.ticker == ticker), None)
