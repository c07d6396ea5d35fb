"""Tests for the trading service request boundary.

**Feature: paperfolio trade requests**
"""

import tempfile
import threading
from pathlib import Path

import pytest

from paperfolio.db.store import PortfolioStore
from paperfolio.errors import PersistenceFailure, StaleVersionError
from paperfolio.models import QuoteBatch
from paperfolio.quotes import StaticQuoteSource
from paperfolio.quotes.base import BaseQuoteSource
from paperfolio.service import MARKET_TICKERS, MAX_SAVE_ATTEMPTS, TradingService


@pytest.fixture
def store():
    """Create a store on a temporary database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield PortfolioStore(Path(tmpdir) / "test.db")


@pytest.fixture
def quotes():
    return StaticQuoteSource({"AAPL": 150.0, "MSFT": 300.0})


@pytest.fixture
def service(store, quotes):
    return TradingService(store, quotes)


class FailingQuoteSource(BaseQuoteSource):
    """Every lookup fails."""

    def __init__(self):
        self.calls = 0

    def fetch_latest_close(self, tickers):
        self.calls += 1
        return QuoteBatch(error="Marketstack API error.")


class RacingStore(PortfolioStore):
    """Loses the version race a fixed number of times."""

    def __init__(self, db_path: Path, losses: int):
        super().__init__(db_path)
        self.losses = losses
        self.saves = 0

    def save_portfolio(self, portfolio):
        self.saves += 1
        if self.losses > 0:
            self.losses -= 1
            # Another writer lands first.
            super().save_portfolio(self.load_portfolio())
        return super().save_portfolio(portfolio)


class TestSubmitTrade:
    """Trades are priced, applied and persisted, or rejected with a message."""

    def test_buy_persists(self, service: TradingService, store: PortfolioStore):
        outcome = service.submit_trade("buy", "aapl", "10")

        assert outcome.success
        assert outcome.message == "BUY 10 AAPL @ $150.00 complete."
        assert outcome.price == 150.0
        assert outcome.portfolio.cash == 98500

        stored = store.load_portfolio()
        assert stored == outcome.portfolio
        assert stored.get("AAPL").quantity == 10

    def test_sell_message(self, service: TradingService):
        service.submit_trade("buy", "AAPL", 10)
        outcome = service.submit_trade("SELL", "AAPL", 2.5)

        assert outcome.success
        assert outcome.message == "SELL 2.5 AAPL @ $150.00 complete."

    @pytest.mark.parametrize(
        "price, quantity, message",
        [
            (0.05, 1234567, "BUY 1234567 PENNY @ $0.05 complete."),
            (1.0, "1234.5678", "BUY 1234.5678 PENNY @ $1.00 complete."),
            (2.0, "0.000125", "BUY 0.000125 PENNY @ $2.00 complete."),
        ],
    )
    def test_message_shows_exact_quantity(self, service: TradingService, quotes: StaticQuoteSource, price, quantity, message):
        quotes.set_price("PENNY", price)

        outcome = service.submit_trade("buy", "PENNY", quantity)

        assert outcome.success
        assert outcome.message == message

    def test_zero_price_rejects(self, service: TradingService, store: PortfolioStore, quotes: StaticQuoteSource):
        quotes.set_price("DELISTED", 0.0)

        outcome = service.submit_trade("buy", "DELISTED", 1)

        assert not outcome.success
        assert outcome.message == "ERROR: No price available for DELISTED."
        assert store.load_portfolio().cash == 100000

    def test_price_moves_between_trades(self, service: TradingService, quotes: StaticQuoteSource):
        service.submit_trade("buy", "AAPL", 10)
        quotes.set_price("AAPL", 180.0)
        outcome = service.submit_trade("buy", "AAPL", 5)

        position = outcome.portfolio.get("AAPL")
        assert position.avg_purchase_price == pytest.approx(160)
        assert position.last_price == 180
        assert outcome.portfolio.cash == pytest.approx(97600)

    @pytest.mark.parametrize(
        "action, ticker, quantity, reason",
        [
            ("buy", "  ", 1, "ERROR: Ticker cannot be empty."),
            ("buy", "AAPL", "-3", "ERROR: Quantity must be a positive number."),
            ("buy", "AAPL", "ten", "ERROR: Quantity must be a positive number."),
            ("short", "AAPL", 1, "ERROR: Action must be 'buy' or 'sell'."),
            ("buy", "NVDA", 1, "ERROR: No price available for NVDA."),
            ("buy", "AAPL", 1000, "ERROR: Not enough cash for this buy."),
            ("sell", "MSFT", 1, "ERROR: Not enough shares to sell."),
        ],
    )
    def test_rejections(self, service: TradingService, store: PortfolioStore, action, ticker, quantity, reason):
        service.submit_trade("buy", "AAPL", 1)
        before = store.load_portfolio()

        outcome = service.submit_trade(action, ticker, quantity)

        assert not outcome.success
        assert outcome.message == reason
        assert outcome.portfolio == before
        assert store.load_portfolio() == before

    def test_quote_failure_rejects(self, store: PortfolioStore):
        service = TradingService(store, FailingQuoteSource())

        outcome = service.submit_trade("buy", "AAPL", 1)

        assert not outcome.success
        assert outcome.message == "ERROR: No price available for AAPL."
        assert store.load_portfolio().cash == 100000

    def test_validation_happens_before_quote_lookup(self, store: PortfolioStore):
        source = FailingQuoteSource()
        service = TradingService(store, source)

        service.submit_trade("buy", "", 1)

        assert source.calls == 0


class TestPortfolio:

    def test_default_portfolio(self, service: TradingService):
        portfolio = service.portfolio()

        assert portfolio.cash == 100000
        assert portfolio.holdings == ()

    def test_returns_stored_state_without_quotes(self, service: TradingService, store: PortfolioStore):
        service.submit_trade("buy", "AAPL", 10)
        service._quote_source = FailingQuoteSource()

        portfolio = service.portfolio()

        assert portfolio == store.load_portfolio()
        assert portfolio.get("AAPL").quantity == 10
        assert service._quote_source.calls == 0


class TestConcurrency:
    """Read-modify-write cycles never lose updates."""

    def test_stale_save_reloads_and_reapplies(self, quotes: StaticQuoteSource):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = RacingStore(Path(tmpdir) / "test.db", losses=1)
            service = TradingService(store, quotes)

            outcome = service.submit_trade("buy", "AAPL", 1)

            assert outcome.success
            assert store.saves == 2
            assert store.load_portfolio().get("AAPL").quantity == 1

    def test_gives_up_after_max_attempts(self, quotes: StaticQuoteSource):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = RacingStore(Path(tmpdir) / "test.db", losses=MAX_SAVE_ATTEMPTS)
            service = TradingService(store, quotes)

            outcome = service.submit_trade("buy", "AAPL", 1)

            assert not outcome.success
            assert outcome.message.startswith("ERROR: Portfolio kept changing")
            assert store.load_portfolio().holdings == ()

    def test_parallel_buys(self, quotes: StaticQuoteSource):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "test.db"
            services = [TradingService(PortfolioStore(db_path), quotes) for _ in range(2)]
            results = []

            def worker(service: TradingService):
                for _ in range(5):
                    results.append(service.submit_trade("buy", "AAPL", 1))

            threads = [threading.Thread(target=worker, args=(s,)) for s in services]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            stored = PortfolioStore(db_path).load_portfolio()
            succeeded = sum(1 for r in results if r.success)
            assert stored.get("AAPL").quantity == succeeded
            assert stored.cash == pytest.approx(100000 - 150 * succeeded)


class TestPersistenceFailures:

    def test_save_failure_reported(self, service: TradingService, store: PortfolioStore, monkeypatch):
        def broken_save(portfolio):
            raise PersistenceFailure("Could not save portfolio: disk I/O error")

        monkeypatch.setattr(store, "save_portfolio", broken_save)

        outcome = service.submit_trade("buy", "AAPL", 1)

        assert not outcome.success
        assert outcome.message == "ERROR: Could not save portfolio: disk I/O error"
        assert outcome.portfolio.holdings == ()

    def test_load_failure_reported(self, service: TradingService, store: PortfolioStore, monkeypatch):
        def broken_load():
            raise PersistenceFailure("Could not load portfolio: locked")

        monkeypatch.setattr(store, "load_portfolio", broken_load)

        outcome = service.submit_trade("buy", "AAPL", 1)

        assert not outcome.success
        assert outcome.portfolio is None

    def test_stale_version_is_not_retried_forever(self, service: TradingService, store: PortfolioStore, monkeypatch):
        calls = []

        def always_stale(portfolio):
            calls.append(portfolio.version)
            raise StaleVersionError(portfolio.version)

        monkeypatch.setattr(store, "save_portfolio", always_stale)

        outcome = service.submit_trade("buy", "AAPL", 1)

        assert not outcome.success
        assert len(calls) == MAX_SAVE_ATTEMPTS


class TestDashboard:
    """Refresh then value; partial data is reported, not fatal."""

    def test_empty_portfolio_skips_quotes(self, store: PortfolioStore):
        source = FailingQuoteSource()
        view = TradingService(store, source).dashboard()

        assert source.calls == 0
        assert view.valuation.total_equity == 100000
        assert view.warning == ""

    def test_refresh_persists_new_prices(self, service: TradingService, store: PortfolioStore, quotes):
        service.submit_trade("buy", "AAPL", 10)
        quotes.set_price("AAPL", 170.0)

        view = service.dashboard()

        row = view.valuation.rows[0]
        assert row.last_price == 170.0
        assert row.pnl == pytest.approx(200)
        assert view.valuation.total_equity == pytest.approx(98500 + 1700)
        assert view.unresolved_tickers == ()
        assert store.load_portfolio().get("AAPL").last_price == 170.0

    def test_unchanged_prices_do_not_write(self, service: TradingService, store: PortfolioStore):
        service.submit_trade("buy", "AAPL", 10)
        version = store.load_portfolio().version

        service.dashboard()

        assert store.load_portfolio().version == version

    def test_partial_quotes(self, store: PortfolioStore, quotes: StaticQuoteSource):
        service = TradingService(store, quotes)
        service.submit_trade("buy", "AAPL", 1)
        service.submit_trade("buy", "MSFT", 1)

        service._quote_source = StaticQuoteSource({"AAPL": 155.0})
        view = service.dashboard()

        assert view.unresolved_tickers == ("MSFT",)
        assert "MSFT" in view.warning
        stored = store.load_portfolio()
        assert stored.get("AAPL").last_price == 155.0
        assert stored.get("MSFT").last_price == 300.0

    def test_zero_close_is_applied(self, service: TradingService, store: PortfolioStore, quotes: StaticQuoteSource):
        service.submit_trade("buy", "AAPL", 10)
        quotes.set_price("AAPL", 0.0)

        view = service.dashboard()

        assert view.unresolved_tickers == ()
        assert view.warning == ""
        assert view.valuation.rows[0].last_price == 0.0
        assert view.valuation.total_market_value == 0.0
        assert store.load_portfolio().get("AAPL").last_price == 0.0

    def test_quote_outage(self, service: TradingService, store: PortfolioStore):
        service.submit_trade("buy", "AAPL", 1)
        service._quote_source = FailingQuoteSource()

        view = service.dashboard()

        assert view.unresolved_tickers == ("AAPL",)
        assert view.warning.startswith("Marketstack API error.")
        assert view.valuation.rows[0].last_price == 150.0

    def test_load_failure_propagates(self, service: TradingService, store: PortfolioStore, monkeypatch):
        def broken_load():
            raise PersistenceFailure("Could not load portfolio: locked")

        monkeypatch.setattr(store, "load_portfolio", broken_load)

        with pytest.raises(PersistenceFailure):
            service.dashboard()


class TestMarket:

    def test_default_tickers(self, store: PortfolioStore):
        source = StaticQuoteSource({"AAPL": 100.0})
        view = TradingService(store, source).market()

        assert view.tickers == MARKET_TICKERS
        assert [r.ticker for r in view.rows] == ["AAPL"]
        assert "MSFT" in view.error

    def test_custom_tickers(self, service: TradingService):
        view = service.market(["msft", "aapl"])

        assert view.tickers == ["MSFT", "AAPL"]
        assert [r.ticker for r in view.rows] == ["MSFT", "AAPL"]
        assert view.error == ""
