"""SQLite portfolio store for paperfolio."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from paperfolio.errors import PersistenceFailure, StaleVersionError
from paperfolio.models import Portfolio, Position

logger = logging.getLogger(__name__)

DEFAULT_STARTING_CASH = 100000.0

# The single portfolio always lives in this row.
PORTFOLIO_ID = 1


class PortfolioStore:
    """SQLite-backed store for the single portfolio record.

    Saves are compare-and-swap on ``version``: a save only succeeds if the
    stored version still matches the one the portfolio was loaded with,
    so two racing read-modify-write cycles cannot silently overwrite
    each other.
    """

    REQUIRED_TABLES = [
        "portfolio",
        "holdings",
    ]

    def __init__(self, db_path: Path, starting_cash: float = DEFAULT_STARTING_CASH):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
            starting_cash: Cash balance of a newly created portfolio.
        """
        self.db_path = Path(db_path)
        self.starting_cash = starting_cash
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Could not open database: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS portfolio (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    cash REAL NOT NULL CHECK (cash >= 0),
                    version INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS holdings (
                    ticker TEXT PRIMARY KEY,
                    slot INTEGER NOT NULL,
                    quantity REAL NOT NULL CHECK (quantity > 0),
                    avg_purchase_price REAL NOT NULL CHECK (avg_purchase_price >= 0),
                    last_price REAL NOT NULL CHECK (last_price >= 0)
                )
            """)

            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Could not initialize database: {e}") from e
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    def load_portfolio(self) -> Portfolio:
        """Load the portfolio, creating a default-funded one if none exists.

        Returns:
            The stored portfolio, including its current version.

        Raises:
            PersistenceFailure: If the database cannot be read.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT cash, version FROM portfolio WHERE id = ?", (PORTFOLIO_ID,)
            )
            row = cursor.fetchone()
            if row is None:
                cursor.execute(
                    """
                    INSERT OR IGNORE INTO portfolio (id, cash, version, updated_at)
                    VALUES (?, ?, 0, ?)
                    """,
                    (PORTFOLIO_ID, self.starting_cash, datetime.now().isoformat()),
                )
                conn.commit()
                logger.info("Created portfolio with starting cash %.2f", self.starting_cash)
                cursor.execute(
                    "SELECT cash, version FROM portfolio WHERE id = ?", (PORTFOLIO_ID,)
                )
                row = cursor.fetchone()

            cursor.execute(
                """
                SELECT ticker, quantity, avg_purchase_price, last_price
                FROM holdings
                ORDER BY slot
                """
            )
            holdings = tuple(
                Position(
                    ticker=h["ticker"],
                    quantity=h["quantity"],
                    avg_purchase_price=h["avg_purchase_price"],
                    last_price=h["last_price"],
                )
                for h in cursor.fetchall()
            )
            return Portfolio(cash=row["cash"], holdings=holdings, version=row["version"])
        except sqlite3.Error as e:
            logger.error("Failed to load portfolio: %s", e)
            raise PersistenceFailure(f"Could not load portfolio: {e}") from e
        finally:
            conn.close()

    def save_portfolio(self, portfolio: Portfolio) -> Portfolio:
        """Write cash and holdings in one transaction.

        Args:
            portfolio: Portfolio to store. Its ``version`` must match the
                stored version.

        Returns:
            The saved portfolio with its version bumped.

        Raises:
            StaleVersionError: If the stored portfolio changed since load.
            PersistenceFailure: If the write fails. Nothing is written.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            cursor.execute(
                """
                UPDATE portfolio
                SET cash = ?, version = version + 1, updated_at = ?
                WHERE id = ? AND version = ?
                """,
                (
                    portfolio.cash,
                    datetime.now().isoformat(),
                    PORTFOLIO_ID,
                    portfolio.version,
                ),
            )
            if cursor.rowcount != 1:
                conn.rollback()
                raise StaleVersionError(portfolio.version)

            cursor.execute("DELETE FROM holdings")
            cursor.executemany(
                """
                INSERT INTO holdings
                (ticker, slot, quantity, avg_purchase_price, last_price)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (p.ticker, slot, p.quantity, p.avg_purchase_price, p.last_price)
                    for slot, p in enumerate(portfolio.holdings)
                ],
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to save portfolio: %s", e)
            raise PersistenceFailure(f"Could not save portfolio: {e}") from e
        finally:
            conn.close()

        return portfolio.model_copy(update={"version": portfolio.version + 1})
