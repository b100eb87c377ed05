"""
Shared test fixtures.

============================================================
PURPOSE
============================================================
- StaticFeed: in-memory LiveFeed with a settable book
- mock_client / clock / bot fixtures

============================================================
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from core.clock import MockClock
from exchange_client.mock import MockExchangeClient
from exchange_client.types import BookLevel, OrderBook
from market_feed.base import LiveFeed, TradeMatch
from trading_bot.bot import TradingBot


START_TIME = datetime(2015, 11, 14, 20, 46, 3, tzinfo=timezone.utc)


class StaticFeed(LiveFeed):
    """LiveFeed whose book and matches are driven by the test."""

    def __init__(self, book: Optional[OrderBook] = None, updated: Optional[datetime] = None):
        super().__init__()
        self.book = book
        self._updated = updated
        self.connected = False

    def order_book_state(self) -> Optional[OrderBook]:
        return self.book

    @property
    def updated(self) -> Optional[datetime]:
        return self._updated

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def push_match(self, price: str, side: str = "buy", size: str = "0.01") -> None:
        await self._emit_match(TradeMatch(price=Decimal(price), size=Decimal(size), side=side))


def make_book(bids, asks) -> OrderBook:
    """Build an OrderBook from `(price, size)` string pairs."""
    return OrderBook(
        bids=[BookLevel(Decimal(p), Decimal(s), 0) for p, s in bids],
        asks=[BookLevel(Decimal(p), Decimal(s), 0) for p, s in asks],
    )


@pytest.fixture
def clock():
    return MockClock(START_TIME)


@pytest.fixture
def mock_client():
    return MockExchangeClient()


@pytest.fixture
def static_feed():
    return StaticFeed()


@pytest.fixture
def bot(mock_client, clock):
    return TradingBot(client=mock_client, clock=clock)
