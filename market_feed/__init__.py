"""
Market Feed Package.

============================================================
PURPOSE
============================================================
Live, push-based market data.

- LiveFeed: interface consumed by the bot
- L2OrderBook: locally synchronized level-2 book
- WebSocketBase: reconnecting websocket supervisor
- CoinbaseFeed: Coinbase Exchange implementation

============================================================
"""

from .base import LiveFeed, MatchCallback, TradeMatch
from .order_book import L2OrderBook
from .websocket_base import ConnectionState, WebSocketBase, WebSocketConfig
from .coinbase import CoinbaseFeed


__all__ = [
    "LiveFeed",
    "MatchCallback",
    "TradeMatch",
    "L2OrderBook",
    "ConnectionState",
    "WebSocketBase",
    "WebSocketConfig",
    "CoinbaseFeed",
]
