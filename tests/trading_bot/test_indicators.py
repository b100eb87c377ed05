"""
Indicator Store Tests.

============================================================
PURPOSE
============================================================
Tests for cached exchange state.

TEST CATEGORIES:
- Record tests: success/failure bookkeeping
- Refresh tests: single and concurrent refresh
- Derived tests: price and midmarket price
- Live feed tests: order book read from the feed

============================================================
"""

import asyncio
import logging
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import START_TIME, StaticFeed, make_book
from core.exceptions import FeedError
from exchange_client.errors import ExchangeException, create_network_error
from exchange_client.types import OrderBook, Ticker
from trading_bot.indicators import NO_DATA, Indicator, IndicatorStore


def network_error(operation: str = "get_product_ticker") -> ExchangeException:
    return ExchangeException(create_network_error("mock", "connection reset", operation))


@pytest.fixture
def store(mock_client, clock):
    return IndicatorStore(mock_client, "BTC-USD", clock=clock)


# ============================================================
# RECORD TESTS
# ============================================================

class TestIndicator:
    """Tests for the Indicator record."""

    def test_starts_empty(self):
        """Test a new indicator has no data and no errors."""
        indicator = Indicator("ticker")

        assert indicator.updated is None
        assert indicator.data is None
        assert indicator.errors == ()
        assert indicator.has_data is False

    def test_failure_only_appends(self):
        """Test a failure leaves data and updated untouched."""
        indicator = Indicator("ticker")
        indicator.record_success({"price": 1}, START_TIME)

        error = ValueError("boom")
        indicator.record_failure(error, START_TIME + timedelta(seconds=1))

        assert indicator.data == {"price": 1}
        assert indicator.updated == START_TIME
        assert len(indicator.errors) == 1
        assert indicator.errors[0].error is error
        assert indicator.last_error.timestamp == START_TIME + timedelta(seconds=1)

    def test_errors_are_read_only(self):
        """Test callers get a copy of the error log."""
        indicator = Indicator("ticker")
        indicator.record_failure(ValueError("x"), START_TIME)

        errors = indicator.errors
        assert isinstance(errors, tuple)
        assert len(indicator.errors) == 1

    def test_to_dict(self):
        """Test status serialization."""
        indicator = Indicator("ticker")
        indicator.record_failure(ValueError("bad"), START_TIME)

        data = indicator.to_dict()

        assert data["updated"] is None
        assert data["error_count"] == 1
        assert data["last_error"]["type"] == "ValueError"
        assert data["last_error"]["message"] == "bad"
        assert data["last_error"]["retryable"] is False

    @pytest.mark.parametrize("error,retryable", [
        (network_error(), True),
        (ConnectionError("reset"), True),
        (FeedError("order book not synchronized"), True),
        (ValueError("bad"), False),
    ])
    def test_retryable(self, error, retryable):
        """Test failures are flagged by whether a retry may help."""
        indicator = Indicator("ticker")
        indicator.record_failure(error, START_TIME)

        assert indicator.last_error.retryable is retryable


# ============================================================
# REFRESH TESTS
# ============================================================

class TestRefresh:
    """Tests for IndicatorStore.refresh / refresh_all."""

    @pytest.mark.asyncio
    async def test_refresh_success(self, store, clock):
        """Test a successful refresh stores data and timestamp."""
        ok = await store.refresh("ticker")

        assert ok is True
        assert isinstance(store.ticker.data, Ticker)
        assert store.ticker.data.ask == Decimal("403.05")
        assert store.ticker.updated == clock.now()
        assert store.ticker.errors == ()

    @pytest.mark.asyncio
    async def test_refresh_failure_recorded(self, store, mock_client, clock):
        """Test a failed refresh appends one error and returns False."""
        error = network_error()
        mock_client.inject_error("get_product_ticker", error)

        ok = await store.refresh("ticker")

        assert ok is False
        assert store.ticker.data is None
        assert store.ticker.updated is None
        assert len(store.ticker.errors) == 1
        assert store.ticker.errors[0].error is error
        assert store.ticker.errors[0].timestamp == clock.now()

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_data(self, store, mock_client, clock):
        """Test a failure after a success keeps the old data and timestamp."""
        await store.refresh("ticker")
        first_data = store.ticker.data
        first_updated = store.ticker.updated

        clock.advance(5)
        mock_client.inject_error("get_product_ticker", network_error())
        await store.refresh("ticker")

        assert store.ticker.data is first_data
        assert store.ticker.updated == first_updated
        assert len(store.ticker.errors) == 1

    @pytest.mark.asyncio
    async def test_success_after_failures_keeps_errors(self, store, mock_client, clock):
        """Test a success never truncates the error log."""
        mock_client.inject_error("get_orders", network_error("get_orders"))
        for _ in range(3):
            await store.refresh("open_orders")

        mock_client.clear_error()
        clock.advance(1)
        ok = await store.refresh("open_orders")

        assert ok is True
        assert len(store.open_orders.errors) == 3
        assert len(store.open_orders.data) == 3
        assert store.open_orders.updated == clock.now()

    @pytest.mark.asyncio
    async def test_unknown_name_raises(self, store):
        """Test refreshing an untracked indicator is a programming error."""
        with pytest.raises(KeyError):
            await store.refresh("volume")

    @pytest.mark.asyncio
    async def test_failure_logged_as_warning(self, store, mock_client, caplog):
        """Test fetch failures log a warning."""
        mock_client.inject_error("get_product_ticker", network_error())

        with caplog.at_level(logging.WARNING):
            await store.refresh("ticker")

        assert "Failed to refresh ticker" in caplog.text

    @pytest.mark.asyncio
    async def test_refresh_all(self, store):
        """Test refresh_all updates every indicator."""
        results = await store.refresh_all()

        assert results == {"ticker": True, "order_book": True, "open_orders": True}
        assert isinstance(store.order_book.data, OrderBook)
        assert store.order_book.data.best_bid == Decimal("402.05")
        assert len(store.open_orders.data) == 3

    @pytest.mark.asyncio
    async def test_refresh_all_isolates_failures(self, store, mock_client):
        """Test one failing fetch does not affect the others."""
        mock_client.inject_error("get_product_order_book", network_error("get_product_order_book"))

        results = await store.refresh_all()

        assert results == {"ticker": True, "order_book": False, "open_orders": True}
        assert store.ticker.data is not None
        assert store.order_book.data is None
        assert len(store.order_book.errors) == 1

    @pytest.mark.asyncio
    async def test_refresh_all_runs_concurrently(self, clock):
        """Test fetches overlap instead of running one after another."""
        orders_started = asyncio.Event()

        async def slow_ticker(product_id):
            await orders_started.wait()
            return Ticker(price=Decimal("1"))

        async def orders(product_id=None):
            orders_started.set()
            return []

        client = MagicMock()
        client.get_product_ticker = AsyncMock(side_effect=slow_ticker)
        client.get_product_order_book = AsyncMock(return_value=OrderBook())
        client.get_orders = AsyncMock(side_effect=orders)
        store = IndicatorStore(client, "BTC-USD", clock=clock)

        results = await asyncio.wait_for(store.refresh_all(), timeout=1.0)

        assert all(results.values())

    @pytest.mark.asyncio
    async def test_snapshot(self, store, clock):
        """Test status snapshot covers all indicators with their age."""
        await store.refresh("ticker")
        clock.advance(2)

        snapshot = store.snapshot()

        assert set(snapshot) == {"ticker", "order_book", "open_orders"}
        assert snapshot["ticker"]["has_data"] is True
        assert snapshot["ticker"]["age_seconds"] == 2.0
        assert snapshot["order_book"]["age_seconds"] is None


# ============================================================
# DERIVED TESTS
# ============================================================

class TestDerived:
    """Tests for price and midmarket_price."""

    def test_no_data_before_refresh(self, store):
        """Test derived values are NO_DATA without a ticker."""
        assert store.midmarket_price is NO_DATA
        assert store.price is NO_DATA
        assert NO_DATA.updated is None
        assert NO_DATA.data is None
        assert NO_DATA.errors == ()

    @pytest.mark.asyncio
    async def test_midmarket_price(self, store):
        """Test midmarket is the mean of bid 402.05 and ask 403.05."""
        await store.refresh("ticker")

        midmarket = store.midmarket_price

        assert midmarket.data == Decimal("402.55")
        assert isinstance(midmarket.data, Decimal)
        assert midmarket.updated == store.ticker.updated

    @pytest.mark.asyncio
    async def test_price(self, store):
        """Test price comes from the ticker."""
        await store.refresh("ticker")

        assert store.price.data == Decimal("402.50")
        assert store.price.updated == store.ticker.updated

    @pytest.mark.asyncio
    async def test_derived_propagates_errors(self, store, mock_client):
        """Test derived views carry the ticker error log."""
        await store.refresh("ticker")
        mock_client.inject_error("get_product_ticker", network_error())
        await store.refresh("ticker")

        assert len(store.midmarket_price.errors) == 1
        assert len(store.price.errors) == 1
        assert store.midmarket_price.data == Decimal("402.55")

    @pytest.mark.asyncio
    async def test_missing_side_is_no_data(self, store, mock_client):
        """Test a ticker without a bid gives NO_DATA."""
        mock_client.set_ticker(bid=None)
        await store.refresh("ticker")

        assert store.midmarket_price is NO_DATA

    @pytest.mark.asyncio
    async def test_recomputed_on_read(self, store, mock_client):
        """Test derived values follow the latest ticker."""
        await store.refresh("ticker")
        mock_client.set_ticker(bid="100", ask="200")
        await store.refresh("ticker")

        assert store.midmarket_price.data == Decimal("150")


# ============================================================
# LIVE FEED TESTS
# ============================================================

class TestLiveFeedSource:
    """Tests for a store wired to a live feed."""

    @pytest.mark.asyncio
    async def test_order_book_read_from_feed(self, mock_client, clock):
        """Test order_book refresh reads the feed, not the REST client."""
        book = make_book([("100", "1")], [("102", "1")])
        feed = StaticFeed(book=book, updated=clock.now())
        store = IndicatorStore(mock_client, "BTC-USD", feed=feed, clock=clock)

        ok = await store.refresh("order_book")

        assert ok is True
        assert store.order_book.data is book
        assert "get_product_order_book" not in mock_client.calls

    @pytest.mark.asyncio
    async def test_unsynced_feed_recorded_as_error(self, mock_client, clock):
        """Test a feed without a snapshot records a FeedError."""
        store = IndicatorStore(mock_client, "BTC-USD", feed=StaticFeed(), clock=clock)

        ok = await store.refresh("order_book")

        assert ok is False
        assert isinstance(store.order_book.errors[0].error, FeedError)

    @pytest.mark.asyncio
    async def test_midmarket_prefers_feed_book(self, mock_client, clock):
        """Test midmarket uses the live book when it has both sides."""
        feed = StaticFeed(book=make_book([("100", "1")], [("102", "1")]), updated=clock.now())
        store = IndicatorStore(mock_client, "BTC-USD", feed=feed, clock=clock)
        await store.refresh("ticker")

        assert store.midmarket_price.data == Decimal("101")
        assert store.midmarket_price.updated == feed.updated

    @pytest.mark.asyncio
    async def test_midmarket_falls_back_to_ticker(self, mock_client, clock):
        """Test a one-sided live book falls back to the ticker."""
        feed = StaticFeed(book=make_book([("100", "1")], []))
        store = IndicatorStore(mock_client, "BTC-USD", feed=feed, clock=clock)
        await store.refresh("ticker")

        assert store.midmarket_price.data == Decimal("402.55")
