"""
Coinbase Feed Tests.

============================================================
PURPOSE
============================================================
Tests for CoinbaseFeed message handling and the reconnect
supervisor of WebSocketBase.

TEST CATEGORIES:
- Message tests: snapshot, l2update, match, error
- Callback tests: sync and async match callbacks
- Supervisor tests: backoff and reconnect

============================================================
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from market_feed.base import TradeMatch
from market_feed.coinbase import CoinbaseFeed
from market_feed.websocket_base import ConnectionState, WebSocketConfig


SNAPSHOT = {
    "type": "snapshot",
    "product_id": "BTC-USD",
    "bids": [["402.05", "1"], ["402.00", "2"]],
    "asks": [["403.05", "1"], ["404.00", "2"]],
}

MATCH = {
    "type": "match",
    "trade_id": 10,
    "product_id": "BTC-USD",
    "size": "0.01",
    "price": "1.2345",
    "side": "sell",
    "time": "2015-11-14T20:46:03.511254Z",
}


@pytest.fixture
def feed(clock):
    return CoinbaseFeed(product_id="BTC-USD", url="wss://example.test", clock=clock)


# ============================================================
# MESSAGE TESTS
# ============================================================

class TestMessages:
    """Tests for _on_message routing."""

    @pytest.mark.asyncio
    async def test_snapshot_syncs_book(self, feed, clock):
        """Test a snapshot makes the book available."""
        assert feed.order_book_state() is None

        await feed._on_message(SNAPSHOT)

        state = feed.order_book_state()
        assert state.best_bid == Decimal("402.05")
        assert state.best_ask == Decimal("403.05")
        assert feed.updated == clock.now()

    @pytest.mark.asyncio
    async def test_l2update(self, feed):
        """Test l2update changes apply to the book."""
        await feed._on_message(SNAPSHOT)

        await feed._on_message({
            "type": "l2update",
            "product_id": "BTC-USD",
            "changes": [["buy", "402.05", "0"], ["sell", "403.00", "1"]],
        })

        assert feed.best_bid == Decimal("402.00")
        assert feed.best_ask == Decimal("403.00")

    @pytest.mark.asyncio
    async def test_match_sets_last_price(self, feed):
        """Test a match message sets last_price."""
        await feed._on_message(MATCH)

        assert feed.last_price == Decimal("1.2345")

    @pytest.mark.asyncio
    async def test_other_product_ignored(self, feed):
        """Test messages for other products are dropped."""
        await feed._on_message(dict(MATCH, product_id="ETH-USD"))

        assert feed.last_price is None

    @pytest.mark.asyncio
    async def test_error_message(self, feed):
        """Test error messages are recorded."""
        await feed._on_message({"type": "error", "message": "Failed to subscribe"})

        assert feed.last_error == "Failed to subscribe"

    @pytest.mark.asyncio
    async def test_disconnect_clears_book(self, feed):
        """Test the book is dropped on disconnect."""
        await feed._on_message(SNAPSHOT)

        await feed._on_disconnect()

        assert feed.order_book_state() is None

    @pytest.mark.asyncio
    async def test_explicit_disconnect_clears_book(self, feed):
        """Test disconnect() drops the book and its timestamp."""
        await feed._on_message(SNAPSHOT)

        await feed.disconnect()

        assert feed.order_book_state() is None
        assert feed.updated is None

    @pytest.mark.asyncio
    async def test_invalid_json_ignored(self, feed):
        """Test non-JSON frames are skipped."""
        await feed._handle_message("not json")

        assert feed.last_price is None

    @pytest.mark.asyncio
    async def test_subscribe_message(self, feed):
        """Test the subscription covers book, matches and heartbeat."""
        feed.send = AsyncMock()

        await feed._send_subscribe()

        feed.send.assert_awaited_once_with({
            "type": "subscribe",
            "product_ids": ["BTC-USD"],
            "channels": ["level2_batch", "matches", "heartbeat"],
        })


# ============================================================
# CALLBACK TESTS
# ============================================================

class TestCallbacks:
    """Tests for match callbacks."""

    @pytest.mark.asyncio
    async def test_sync_and_async_callbacks(self, feed):
        """Test both callback kinds receive the match."""
        sync_callback = MagicMock()
        async_callback = AsyncMock()
        feed.on_match(sync_callback)
        feed.on_match(async_callback)

        await feed._on_message(MATCH)

        match = sync_callback.call_args.args[0]
        assert isinstance(match, TradeMatch)
        assert match.side == "sell"
        async_callback.assert_awaited_once_with(match)

    @pytest.mark.asyncio
    async def test_failing_callback_isolated(self, feed):
        """Test one failing callback does not block the others."""
        later = MagicMock()
        feed.on_match(MagicMock(side_effect=RuntimeError("bad")))
        feed.on_match(later)

        await feed._on_message(MATCH)

        later.assert_called_once()
        assert feed.last_price == Decimal("1.2345")

    @pytest.mark.asyncio
    async def test_remove_callback(self, feed):
        """Test removed callbacks stop receiving matches."""
        callback = MagicMock()
        feed.on_match(callback)
        feed.remove_match_callback(callback)

        await feed._on_message(MATCH)

        callback.assert_not_called()


# ============================================================
# SUPERVISOR TESTS
# ============================================================

class TestSupervisor:
    """Tests for the reconnect loop."""

    def test_fixed_backoff(self):
        """Test the default backoff is a fixed second."""
        config = WebSocketConfig(url="wss://example.test")

        assert config.reconnect_delay_seconds(1) == 1.0
        assert config.reconnect_delay_seconds(5) == 1.0

    def test_growing_backoff_capped(self):
        """Test a multiplier grows the delay up to the cap."""
        config = WebSocketConfig(
            url="wss://example.test",
            reconnect_interval_ms=1000,
            backoff_multiplier=2.0,
            max_reconnect_interval_ms=5000,
        )

        assert config.reconnect_delay_seconds(2) == 2.0
        assert config.reconnect_delay_seconds(10) == 5.0

    @pytest.mark.asyncio
    async def test_reconnects_after_failure(self, clock):
        """Test failed connections are retried after the backoff."""
        config = WebSocketConfig(url="wss://example.test", reconnect_interval_ms=1)
        feed = CoinbaseFeed(product_id="BTC-USD", config=config, clock=clock)
        feed._connect_once = AsyncMock(side_effect=ConnectionError("refused"))

        await feed.connect()
        await asyncio.sleep(0.05)
        await feed.disconnect()

        assert feed._connect_once.await_count >= 2
        assert feed.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, clock):
        """Test max_reconnect_attempts bounds the retries."""
        config = WebSocketConfig(
            url="wss://example.test",
            reconnect_interval_ms=1,
            max_reconnect_attempts=2,
        )
        feed = CoinbaseFeed(product_id="BTC-USD", config=config, clock=clock)
        feed._connect_once = AsyncMock(side_effect=ConnectionError("refused"))

        await feed.connect()
        await asyncio.wait_for(feed._supervisor_task, timeout=1.0)

        assert feed._connect_once.await_count == 3
        await feed.disconnect()

    @pytest.mark.asyncio
    async def test_resubscribes_after_reconnect(self, clock):
        """Test a dropped connection reconnects and clears the book."""
        config = WebSocketConfig(url="wss://example.test", reconnect_interval_ms=1)
        feed = CoinbaseFeed(product_id="BTC-USD", config=config, clock=clock)
        await feed._on_message(SNAPSHOT)

        feed._connect_once = AsyncMock()
        feed._receive_loop = AsyncMock()

        await feed.connect()
        await asyncio.sleep(0.03)
        await feed.disconnect()

        assert feed._connect_once.await_count >= 2
        assert feed.order_book_state() is None
