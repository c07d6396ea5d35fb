"""Persistence for paperfolio."""

from paperfolio.db.store import PortfolioStore

__all__ = ["PortfolioStore"]
