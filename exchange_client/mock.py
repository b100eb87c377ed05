"""
Exchange Client - Mock Client.

============================================================
PURPOSE
============================================================
In-memory exchange client for tests and dry runs.

FEATURES:
- Fixed ticker and level-2 book
- Three open orders that can be cancelled
- Per-operation error injection
- Optional simulated latency
- Call log

============================================================
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.constants import DEFAULT_PRODUCT, ORDER_BOOK_LEVEL
from .base import ExchangeClient
from .types import Order, OrderBook, Ticker


logger = logging.getLogger(__name__)


DEFAULT_TICKER: Dict[str, Any] = {
    "trade_id": 0,
    "price": "402.50",
    "size": "0.5",
    "bid": "402.05",
    "ask": "403.05",
    "volume": "5957.11914015",
    "time": "2015-11-14T20:46:03.511254Z",
}

DEFAULT_ORDER_BOOK: Dict[str, Any] = {
    "sequence": "3",
    "bids": [
        ["402.05", "1", 2],
        ["402.00", "2", 1],
        ["401.00", "1", 2],
        ["400.00", "5", 3],
        ["398.00", "1", 1],
    ],
    "asks": [
        ["403.05", "1", 1],
        ["404.00", "2", 2],
        ["406.00", "3", 3],
        ["406.00", "3", 6],
        ["410.00", "5", 5],
    ],
}

DEFAULT_ORDERS: List[Dict[str, Any]] = [
    {
        "id": "d50ec984-77a8-460a-b958-66f114b0de9b",
        "size": "0.5",
        "price": "400.00",
        "product_id": DEFAULT_PRODUCT,
        "status": "open",
        "filled_size": "0.00",
        "fill_fees": "0.001",
        "settled": False,
        "side": "buy",
        "created_at": "2014-11-14T06:39:55.000000Z",
    },
    {
        "id": "d50ec984-77a8-460a-b958-66f114b0de9c",
        "size": "0.8",
        "price": "401.00",
        "product_id": DEFAULT_PRODUCT,
        "status": "open",
        "filled_size": "0.00",
        "fill_fees": "0.001",
        "settled": False,
        "side": "buy",
        "created_at": "2014-11-14T06:39:56.000000Z",
    },
    {
        "id": "d50ec984-77a8-460a-b958-66f114b0de9d",
        "size": "1",
        "price": "410.00",
        "product_id": DEFAULT_PRODUCT,
        "status": "open",
        "filled_size": "0.00",
        "fill_fees": "0.001",
        "settled": False,
        "side": "sell",
        "created_at": "2014-11-14T06:39:57.000000Z",
    },
]


# ============================================================
# MOCK CONFIGURATION
# ============================================================

@dataclass
class MockConfig:
    """Configuration for the mock client."""

    latency_seconds: float = 0.0
    """Simulated latency for every call."""

    ticker: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_TICKER))
    order_book: Dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_ORDER_BOOK))
    orders: List[Dict[str, Any]] = field(default_factory=lambda: copy.deepcopy(DEFAULT_ORDERS))


# ============================================================
# MOCK EXCHANGE CLIENT
# ============================================================

class MockExchangeClient(ExchangeClient):
    """
    Mock exchange client for testing.

    Errors set with `inject_error` are raised on every call of
    that operation until cleared.
    """

    def __init__(self, config: Optional[MockConfig] = None):
        self._config = config or MockConfig()
        self._orders: List[Dict[str, Any]] = copy.deepcopy(self._config.orders)
        self._errors: Dict[str, BaseException] = {}
        self.calls: List[str] = []
        self.connected = False

    @property
    def exchange_id(self) -> str:
        return "mock"

    @property
    def orders(self) -> List[Order]:
        """Orders currently open on the mock exchange."""
        return [Order.from_dict(item) for item in self._orders]

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def get_product_ticker(self, product_id: str) -> Ticker:
        await self._enter("get_product_ticker")
        return Ticker.from_dict(self._config.ticker)

    async def get_product_order_book(
        self,
        product_id: str,
        level: int = ORDER_BOOK_LEVEL,
    ) -> OrderBook:
        await self._enter("get_product_order_book")
        return OrderBook.from_dict(self._config.order_book)

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    async def get_orders(self, product_id: Optional[str] = None) -> List[Order]:
        await self._enter("get_orders")
        return [
            Order.from_dict(item)
            for item in self._orders
            if product_id is None or item.get("product_id") == product_id
        ]

    async def cancel_order(self, order_id: str) -> Optional[str]:
        await self._enter("cancel_order")
        for index, item in enumerate(self._orders):
            if item["id"] == order_id:
                del self._orders[index]
                return order_id
        return None

    async def cancel_all_orders(self, product_id: Optional[str] = None) -> List[str]:
        await self._enter("cancel_all_orders")
        cancelled = [
            item["id"]
            for item in self._orders
            if product_id is None or item.get("product_id") == product_id
        ]
        self._orders = [item for item in self._orders if item["id"] not in cancelled]
        return cancelled

    # --------------------------------------------------------
    # TEST HELPERS
    # --------------------------------------------------------

    def inject_error(self, operation: str, error: BaseException) -> None:
        """Make every call of `operation` raise `error`."""
        self._errors[operation] = error

    def clear_error(self, operation: Optional[str] = None) -> None:
        """Clear injected errors (all of them if no operation given)."""
        if operation is None:
            self._errors.clear()
        else:
            self._errors.pop(operation, None)

    def set_ticker(self, **fields: Any) -> None:
        """Override ticker fields, e.g. set_ticker(bid="1", ask="2")."""
        self._config.ticker.update(fields)

    def add_order(self, order_id: str, side: str = "buy", price: str = "400.00", size: str = "1") -> None:
        self._orders.append({
            "id": order_id,
            "product_id": DEFAULT_PRODUCT,
            "side": side,
            "price": price,
            "size": size,
            "status": "open",
        })

    # --------------------------------------------------------
    # INTERNAL
    # --------------------------------------------------------

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if self._config.latency_seconds:
            await asyncio.sleep(self._config.latency_seconds)
        else:
            await asyncio.sleep(0)
        error = self._errors.get(operation)
        if error is not None:
            raise error
