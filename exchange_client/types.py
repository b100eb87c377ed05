"""
Exchange Client - Payload Types.

============================================================
PURPOSE
============================================================
Typed records returned by exchange clients and live feeds.

- Ticker: last trade and top of book
- OrderBook: aggregated level-2 book
- Order: one open order of the authenticated account

All prices and sizes are Decimal.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from core.clock import from_iso8601


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert an exchange numeric string to Decimal (None stays None)."""
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# ============================================================
# TICKER
# ============================================================

@dataclass
class Ticker:
    """Snapshot of the last trade and best bid/ask."""

    price: Optional[Decimal] = None
    """Last trade price."""

    bid: Optional[Decimal] = None
    """Best bid."""

    ask: Optional[Decimal] = None
    """Best ask."""

    size: Optional[Decimal] = None
    """Last trade size."""

    volume: Optional[Decimal] = None
    """24h volume."""

    time: Optional[str] = None
    """Exchange timestamp of the last trade."""

    trade_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ticker":
        return cls(
            price=to_decimal(data.get("price")),
            bid=to_decimal(data.get("bid")),
            ask=to_decimal(data.get("ask")),
            size=to_decimal(data.get("size")),
            volume=to_decimal(data.get("volume")),
            time=data.get("time"),
            trade_id=data.get("trade_id"),
        )


# ============================================================
# ORDER BOOK
# ============================================================

@dataclass(frozen=True)
class BookLevel:
    """One aggregated price level."""

    price: Decimal
    size: Decimal
    order_count: int = 1

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "BookLevel":
        """Build from an exchange row `[price, size, num_orders]`."""
        order_count = int(row[2]) if len(row) > 2 else 1
        return cls(price=Decimal(str(row[0])), size=Decimal(str(row[1])), order_count=order_count)


@dataclass
class OrderBook:
    """Aggregated level-2 order book. Bids descending, asks ascending."""

    bids: List[BookLevel] = field(default_factory=list)
    asks: List[BookLevel] = field(default_factory=list)
    sequence: Optional[int] = None

    @property
    def best_bid(self) -> Optional[Decimal]:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Optional[Decimal]:
        return self.asks[0].price if self.asks else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderBook":
        sequence = data.get("sequence")
        return cls(
            bids=[BookLevel.from_row(row) for row in data.get("bids", [])],
            asks=[BookLevel.from_row(row) for row in data.get("asks", [])],
            sequence=int(sequence) if sequence is not None else None,
        )


# ============================================================
# ORDER
# ============================================================

@dataclass
class Order:
    """An order on the authenticated account."""

    id: str
    product_id: str
    side: str
    price: Optional[Decimal] = None
    size: Optional[Decimal] = None
    status: str = "open"
    filled_size: Decimal = Decimal("0")
    fill_fees: Decimal = Decimal("0")
    settled: bool = False
    created_at: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        created = data.get("created_at")
        return cls(
            id=data["id"],
            product_id=data.get("product_id", ""),
            side=data.get("side", ""),
            price=to_decimal(data.get("price")),
            size=to_decimal(data.get("size")),
            status=data.get("status", "open"),
            filled_size=to_decimal(data.get("filled_size")) or Decimal("0"),
            fill_fees=to_decimal(data.get("fill_fees")) or Decimal("0"),
            settled=bool(data.get("settled", False)),
            created_at=from_iso8601(created) if created else None,
            raw=dict(data),
        )
