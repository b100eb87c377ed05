"""
Exchange Client - Base Interface.

============================================================
PURPOSE
============================================================
Abstract capability set the bot consumes from an exchange:

- fetch ticker
- fetch level-2 order book
- fetch open orders
- cancel one order / cancel all orders

Every operation is a coroutine that returns a value or
raises ExchangeException.

============================================================
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from core.constants import ORDER_BOOK_LEVEL
from .types import Order, OrderBook, Ticker


class ExchangeClient(ABC):
    """
    Abstract interface for exchange clients.

    Implementations:
    - CoinbaseExchangeClient: Coinbase Exchange REST API
    - MockExchangeClient: In-memory, for testing
    """

    @property
    @abstractmethod
    def exchange_id(self) -> str:
        """Get exchange identifier."""
        pass

    # --------------------------------------------------------
    # CONNECTION
    # --------------------------------------------------------

    async def connect(self) -> None:
        """Open transport resources. Optional for stateless clients."""
        pass

    async def close(self) -> None:
        """Release transport resources."""
        pass

    async def __aenter__(self) -> "ExchangeClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    @abstractmethod
    async def get_product_ticker(self, product_id: str) -> Ticker:
        """
        Get the latest ticker for a product.

        Raises:
            ExchangeException: If the request fails
        """
        pass

    @abstractmethod
    async def get_product_order_book(
        self,
        product_id: str,
        level: int = ORDER_BOOK_LEVEL,
    ) -> OrderBook:
        """
        Get the aggregated order book for a product.

        Raises:
            ExchangeException: If the request fails
        """
        pass

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    @abstractmethod
    async def get_orders(self, product_id: Optional[str] = None) -> List[Order]:
        """
        Get all open orders of the authenticated account.

        Args:
            product_id: Restrict to one product (all products if None)
        """
        pass

    @abstractmethod
    async def cancel_order(self, order_id: str) -> Optional[str]:
        """
        Cancel a single order.

        Returns:
            The cancelled order id, or None if the id is unknown

        Raises:
            ExchangeException: If the request fails
        """
        pass

    @abstractmethod
    async def cancel_all_orders(self, product_id: Optional[str] = None) -> List[str]:
        """
        Cancel every open order.

        Returns:
            Ids of cancelled orders
        """
        pass
