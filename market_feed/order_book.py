"""
Market Feed - Level-2 Order Book.

============================================================
PURPOSE
============================================================
Local level-2 book kept in sync from websocket messages.

- `snapshot` replaces the book
- `l2update` changes set a level's size (0 removes it)

============================================================
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Sequence

from exchange_client.types import BookLevel, OrderBook


class L2OrderBook:
    """Price-level book for one product."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        self._bids: Dict[Decimal, Decimal] = {}
        self._asks: Dict[Decimal, Decimal] = {}
        self._synced = False
        self.updated: Optional[datetime] = None

    @property
    def is_synced(self) -> bool:
        """True once a snapshot has been applied."""
        return self._synced

    def apply_snapshot(
        self,
        bids: Iterable[Sequence[Any]],
        asks: Iterable[Sequence[Any]],
        at: Optional[datetime] = None,
    ) -> None:
        self._bids = {Decimal(str(p)): Decimal(str(s)) for p, s, *_ in bids}
        self._asks = {Decimal(str(p)): Decimal(str(s)) for p, s, *_ in asks}
        self._synced = True
        self.updated = at

    def apply_changes(
        self,
        changes: Iterable[Sequence[Any]],
        at: Optional[datetime] = None,
    ) -> None:
        """Apply `[side, price, size]` changes. Ignored before a snapshot."""
        if not self._synced:
            return

        for side, price, size in changes:
            book = self._bids if side == "buy" else self._asks
            price = Decimal(str(price))
            size = Decimal(str(size))
            if size == 0:
                book.pop(price, None)
            else:
                book[price] = size
        self.updated = at

    @property
    def best_bid(self) -> Optional[Decimal]:
        return max(self._bids) if self._bids else None

    @property
    def best_ask(self) -> Optional[Decimal]:
        return min(self._asks) if self._asks else None

    def state(self) -> Optional[OrderBook]:
        """Copy of the book, bids descending and asks ascending."""
        if not self._synced:
            return None
        # level2 channel does not report per-level order counts
        return OrderBook(
            bids=[BookLevel(p, self._bids[p], 0) for p in sorted(self._bids, reverse=True)],
            asks=[BookLevel(p, self._asks[p], 0) for p in sorted(self._asks)],
        )

    def clear(self) -> None:
        self._bids.clear()
        self._asks.clear()
        self._synced = False
        self.updated = None
