"""
Market Feed - Base Interface.

============================================================
PURPOSE
============================================================
Push-based market data consumed by the bot:

- current synchronized order-book snapshot
- last trade price
- trade-match event subscription

============================================================
"""

import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, List, Optional, Union

from exchange_client.types import OrderBook


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeMatch:
    """One trade reported by the feed."""

    price: Decimal
    size: Optional[Decimal] = None
    side: Optional[str] = None
    product_id: Optional[str] = None
    trade_id: Optional[int] = None
    time: Optional[str] = None


MatchCallback = Callable[[TradeMatch], Union[None, Awaitable[None]]]


class LiveFeed(ABC):
    """
    Abstract live market-data feed.

    Implementations:
    - CoinbaseFeed: Coinbase Exchange websocket feed
    """

    def __init__(self) -> None:
        self._match_callbacks: List[MatchCallback] = []
        self._last_price: Optional[Decimal] = None

    # --------------------------------------------------------
    # STATE
    # --------------------------------------------------------

    @abstractmethod
    def order_book_state(self) -> Optional[OrderBook]:
        """Current order book, or None before the first snapshot."""
        pass

    @property
    @abstractmethod
    def updated(self) -> Optional[datetime]:
        """When the book last changed."""
        pass

    @property
    def last_price(self) -> Optional[Decimal]:
        """Price of the most recent match, or None."""
        return self._last_price

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def connect(self) -> None:
        """Start receiving data."""
        pass

    async def disconnect(self) -> None:
        """Stop receiving data."""
        pass

    # --------------------------------------------------------
    # MATCH EVENTS
    # --------------------------------------------------------

    def on_match(self, callback: MatchCallback) -> None:
        """Register a callback fired for every trade match."""
        self._match_callbacks.append(callback)

    def remove_match_callback(self, callback: MatchCallback) -> None:
        if callback in self._match_callbacks:
            self._match_callbacks.remove(callback)

    async def _emit_match(self, match: TradeMatch) -> None:
        """Record the trade price and notify callbacks."""
        self._last_price = match.price

        for callback in list(self._match_callbacks):
            try:
                result: Any = callback(match)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Match callback error: {e}", exc_info=True)
