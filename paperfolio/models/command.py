"""Trade command model."""

import math
from typing import Any, Literal

from pydantic import BaseModel, Field

from paperfolio.errors import ValidationError
from paperfolio.models.position import normalize_ticker


class TradeCommand(BaseModel):
    """A validated buy or sell instruction."""

    action: Literal["buy", "sell"] = Field(..., description="Trade side")
    ticker: str = Field(..., min_length=1, description="Normalized ticker symbol")
    quantity: float = Field(..., gt=0, allow_inf_nan=False, description="Shares to trade")

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, action: Any, ticker: Any, quantity: Any) -> "TradeCommand":
        """Build a command from raw, loosely typed input.

        Args:
            action: "buy" or "sell", any case.
            ticker: Ticker symbol; surrounding whitespace is ignored.
            quantity: Number of shares, as a number or numeric string.

        Returns:
            A validated TradeCommand.

        Raises:
            ValidationError: If any field is missing or invalid.
        """
        ticker = normalize_ticker(ticker) if ticker is not None else ""
        if not ticker:
            raise ValidationError("Ticker cannot be empty.")

        action = str(action or "").strip().lower()
        if action not in ("buy", "sell"):
            raise ValidationError("Action must be 'buy' or 'sell'.")

        return cls(action=action, ticker=ticker, quantity=parse_quantity(quantity))


def parse_quantity(value: Any) -> float:
    """Convert a raw quantity to a finite, strictly positive float.

    Raises:
        ValidationError: If the value is not a positive finite number.
    """
    if isinstance(value, bool):
        raise ValidationError("Quantity must be a positive number.")
    try:
        quantity = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a positive number.") from None
    if not math.isfinite(quantity) or quantity <= 0:
        raise ValidationError("Quantity must be a positive number.")
    return quantity
