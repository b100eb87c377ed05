"""
Trading Bot - Indicator Store.

============================================================
RESPONSIBILITY
============================================================
Cached exchange state with freshness and error history.

- ticker, order_book, open_orders
- each with `updated`, `data` and an append-only `errors` log
- derived `price` and `midmarket_price` views

============================================================
INVARIANTS
============================================================
- `data`/`updated` change only on a successful refresh
- a failed refresh appends exactly one error and nothing else
- the error log is never truncated, not even by a success
- refresh never raises for fetch failures

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from core.clock import ClockFactory, ClockProtocol, to_iso8601
from core.constants import (
    INDICATOR_OPEN_ORDERS,
    INDICATOR_ORDER_BOOK,
    INDICATOR_TICKER,
    ORDER_BOOK_LEVEL,
    TRACKED_INDICATORS,
)
from core.exceptions import ErrorClassification, FeedError, classify_exception
from exchange_client.base import ExchangeClient
from exchange_client.errors import ExchangeException
from exchange_client.types import OrderBook
from market_feed.base import LiveFeed


logger = logging.getLogger(__name__)


Fetcher = Callable[[], Awaitable[Any]]


# ============================================================
# RECORDS
# ============================================================

@dataclass(frozen=True)
class IndicatorError:
    """One failed refresh attempt."""

    timestamp: datetime
    error: BaseException

    @property
    def retryable(self) -> bool:
        """Whether a later refresh may succeed."""
        if isinstance(self.error, ExchangeException):
            return self.error.error.is_retryable()
        return classify_exception(self.error) == ErrorClassification.TRANSIENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_iso8601(self.timestamp),
            "type": type(self.error).__name__,
            "message": str(self.error),
            "retryable": self.retryable,
        }


@dataclass(frozen=True)
class IndicatorView:
    """Read-only snapshot of an indicator or a derived value."""

    updated: Optional[datetime] = None
    data: Any = None
    errors: Tuple[IndicatorError, ...] = ()

    @property
    def has_data(self) -> bool:
        return self.data is not None


NO_DATA = IndicatorView()
"""Returned for derived values that cannot be computed yet."""


class Indicator:
    """Mutable record for one tracked quantity."""

    def __init__(self, name: str):
        self.name = name
        self.updated: Optional[datetime] = None
        self.data: Any = None
        self._errors: List[IndicatorError] = []

    @property
    def errors(self) -> Tuple[IndicatorError, ...]:
        return tuple(self._errors)

    @property
    def has_data(self) -> bool:
        return self.updated is not None

    @property
    def last_error(self) -> Optional[IndicatorError]:
        return self._errors[-1] if self._errors else None

    def record_success(self, data: Any, at: datetime) -> None:
        self.updated = at
        self.data = data

    def record_failure(self, error: BaseException, at: datetime) -> None:
        self._errors.append(IndicatorError(timestamp=at, error=error))

    def view(self) -> IndicatorView:
        return IndicatorView(updated=self.updated, data=self.data, errors=self.errors)

    def to_dict(self) -> Dict[str, Any]:
        last = self.last_error
        return {
            "updated": to_iso8601(self.updated),
            "has_data": self.has_data,
            "error_count": len(self._errors),
            "last_error": last.to_dict() if last else None,
        }

    def __repr__(self) -> str:
        return f"Indicator({self.name!r}, updated={self.updated}, errors={len(self._errors)})"


# ============================================================
# INDICATOR STORE
# ============================================================

class IndicatorStore:
    """
    Holds the tracked indicators of one bot.

    Refreshes go through the exchange client, except the order
    book, which is read from the live feed when one is wired.
    """

    def __init__(
        self,
        client: ExchangeClient,
        product: str,
        feed: Optional[LiveFeed] = None,
        clock: Optional[ClockProtocol] = None,
        log: Optional[logging.Logger] = None,
    ):
        self._client = client
        self._product = product
        self._feed = feed
        self._clock = clock or ClockFactory.get_clock()
        self._log = log or logger

        self._indicators: Dict[str, Indicator] = {
            name: Indicator(name) for name in TRACKED_INDICATORS
        }
        self._fetchers: Dict[str, Fetcher] = {
            INDICATOR_TICKER: self._fetch_ticker,
            INDICATOR_ORDER_BOOK: self._fetch_order_book,
            INDICATOR_OPEN_ORDERS: self._fetch_open_orders,
        }

    # --------------------------------------------------------
    # Fetchers
    # --------------------------------------------------------

    async def _fetch_ticker(self) -> Any:
        return await self._client.get_product_ticker(self._product)

    async def _fetch_order_book(self) -> OrderBook:
        if self._feed is not None:
            book = self._feed.order_book_state()
            if book is None:
                raise FeedError("Live order book is not synchronized yet")
            return book
        return await self._client.get_product_order_book(self._product, level=ORDER_BOOK_LEVEL)

    async def _fetch_open_orders(self) -> Any:
        return await self._client.get_orders()

    # --------------------------------------------------------
    # Refresh
    # --------------------------------------------------------

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._indicators)

    def get(self, name: str) -> Indicator:
        """Raises KeyError for an untracked name."""
        return self._indicators[name]

    async def refresh(self, name: str) -> bool:
        """
        Refresh one indicator.

        Returns:
            True on success, False if the failure was recorded

        Raises:
            KeyError: If `name` is not a tracked indicator
        """
        indicator = self._indicators[name]
        fetch = self._fetchers[name]

        try:
            data = await fetch()
        except Exception as e:
            indicator.record_failure(e, self._clock.now())
            self._log.warning(
                f"Failed to refresh {name}: {type(e).__name__}: {e} "
                f"(retryable={indicator.last_error.retryable})"
            )
            return False

        indicator.record_success(data, self._clock.now())
        self._log.debug(f"Refreshed {name}")
        return True

    async def refresh_all(self) -> Dict[str, bool]:
        """
        Refresh every indicator concurrently.

        Completes once all refreshes resolved. Each record is
        visible as soon as its own refresh resolves.
        """
        names = self.names
        results = await asyncio.gather(*(self.refresh(name) for name in names))
        return dict(zip(names, results))

    # --------------------------------------------------------
    # Accessors
    # --------------------------------------------------------

    @property
    def ticker(self) -> Indicator:
        return self._indicators[INDICATOR_TICKER]

    @property
    def order_book(self) -> Indicator:
        return self._indicators[INDICATOR_ORDER_BOOK]

    @property
    def open_orders(self) -> Indicator:
        return self._indicators[INDICATOR_OPEN_ORDERS]

    @property
    def price(self) -> IndicatorView:
        """Last trade price from the cached ticker."""
        ticker = self.ticker
        if ticker.data is None or ticker.data.price is None:
            return NO_DATA
        return IndicatorView(updated=ticker.updated, data=ticker.data.price, errors=ticker.errors)

    @property
    def midmarket_price(self) -> IndicatorView:
        """
        Mean of best bid and best ask.

        Uses the live book when it has both sides, the cached
        ticker otherwise.
        """
        if self._feed is not None:
            book = self._feed.order_book_state()
            if book is not None and book.best_bid is not None and book.best_ask is not None:
                return IndicatorView(
                    updated=self._feed.updated,
                    data=_midpoint(book.best_bid, book.best_ask),
                    errors=self.order_book.errors,
                )

        ticker = self.ticker
        info = ticker.data
        if info is None or info.bid is None or info.ask is None:
            return NO_DATA
        return IndicatorView(
            updated=ticker.updated,
            data=_midpoint(info.bid, info.ask),
            errors=ticker.errors,
        )

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        result = {}
        for name, indicator in self._indicators.items():
            entry = indicator.to_dict()
            entry["age_seconds"] = self._clock.age_seconds(indicator.updated)
            result[name] = entry
        return result


def _midpoint(bid: Decimal, ask: Decimal) -> Decimal:
    return (bid + ask) / 2
