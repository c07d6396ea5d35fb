"""Quote data models."""

from typing import Optional

from pydantic import BaseModel, Field


class Quote(BaseModel):
    """Latest end-of-day prices for one symbol."""

    symbol: str = Field(..., min_length=1, description="Ticker symbol")
    close: float = Field(..., description="Closing price")
    open: Optional[float] = Field(default=None, description="Opening price")
    date: Optional[str] = Field(default=None, description="Trading date reported by the source")

    model_config = {"frozen": True}


class QuoteBatch(BaseModel):
    """Result of one batched quote lookup.

    ``quotes`` holds only the symbols that could be priced; ``error`` is
    empty when the lookup itself succeeded.
    """

    quotes: dict[str, Quote] = Field(default_factory=dict)
    error: str = Field(default="", description="Error indicator from the source")

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return not self.error
