"""
Market Feed - Coinbase Exchange WebSocket Feed.

============================================================
PURPOSE
============================================================
Live feed for one product on the Coinbase Exchange websocket.

Channels:
- level2_batch: order book snapshot + l2update changes
- matches: trades (match / last_match)
- heartbeat: keeps idle connections alive

============================================================
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from core.clock import ClockFactory, ClockProtocol
from core.constants import COINBASE_WEBSOCKET_URL, DEFAULT_PRODUCT
from exchange_client.types import OrderBook, to_decimal
from .base import LiveFeed, TradeMatch
from .order_book import L2OrderBook
from .websocket_base import WebSocketBase, WebSocketConfig


logger = logging.getLogger(__name__)


class CoinbaseFeed(WebSocketBase, LiveFeed):
    """
    Coinbase Exchange live feed.

    The local book is cleared on disconnect and rebuilt from the
    snapshot sent after each resubscribe.
    """

    DEFAULT_CHANNELS = ["level2_batch", "matches", "heartbeat"]

    def __init__(
        self,
        product_id: str = DEFAULT_PRODUCT,
        url: str = COINBASE_WEBSOCKET_URL,
        config: Optional[WebSocketConfig] = None,
        channels: Optional[List[str]] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        WebSocketBase.__init__(self, config or WebSocketConfig(url=url))
        LiveFeed.__init__(self)

        self.product_id = product_id
        self._channels = channels or list(self.DEFAULT_CHANNELS)
        self._book = L2OrderBook(product_id)
        self._clock = clock or ClockFactory.get_clock()
        self._last_error: Optional[str] = None

    # --------------------------------------------------------
    # LiveFeed
    # --------------------------------------------------------

    def order_book_state(self) -> Optional[OrderBook]:
        return self._book.state()

    @property
    def updated(self) -> Optional[datetime]:
        return self._book.updated

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    async def connect(self) -> None:
        logger.info(f"Attempting to obtain websocket feed from {self.url}")
        await self.start()

    async def disconnect(self) -> None:
        await self.stop()

    # --------------------------------------------------------
    # WebSocketBase hooks
    # --------------------------------------------------------

    async def _send_subscribe(self) -> None:
        await self.send({
            "type": "subscribe",
            "product_ids": [self.product_id],
            "channels": self._channels,
        })

    async def _on_disconnect(self) -> None:
        self._book.clear()

    async def _on_message(self, data: Dict[str, Any]) -> None:
        msg_type = data.get("type")
        if data.get("product_id") not in (None, self.product_id):
            return

        if msg_type == "snapshot":
            self._book.apply_snapshot(data.get("bids", []), data.get("asks", []), at=self._clock.now())

        elif msg_type == "l2update":
            self._book.apply_changes(data.get("changes", []), at=self._clock.now())

        elif msg_type in ("match", "last_match"):
            price = to_decimal(data.get("price"))
            if price is None:
                return
            await self._emit_match(TradeMatch(
                price=price,
                size=to_decimal(data.get("size")),
                side=data.get("side"),
                product_id=data.get("product_id"),
                trade_id=data.get("trade_id"),
                time=data.get("time"),
            ))

        elif msg_type == "error":
            self._last_error = data.get("message")
            logger.error(f"Feed error message: {data.get('message')} {data.get('reason', '')}")

    # --------------------------------------------------------
    # HELPERS
    # --------------------------------------------------------

    @property
    def best_bid(self) -> Optional[Decimal]:
        return self._book.best_bid

    @property
    def best_ask(self) -> Optional[Decimal]:
        return self._book.best_ask
