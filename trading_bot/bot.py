"""
Trading Bot - Facade.

============================================================
PURPOSE
============================================================
Wires an exchange client, an optional live feed, the indicator
store and the execution scheduler into one object handed to
the strategy on every tick.

============================================================
USAGE
============================================================
```python
async def strategy(bot):
    await bot.refresh_indicators()
    if bot.midmarket_price.data and bot.my_orders.data:
        ...

async with TradingBot(strategy=strategy, credentials=creds) as bot:
    await bot.start_trading(interval_seconds=5)
    ...
    await bot.stop_trading(cancel=True)
```

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from core.clock import ClockFactory, ClockProtocol, to_iso8601
from core.constants import DEFAULT_PRODUCT
from core.exceptions import CancellationError
from exchange_client.base import ExchangeClient
from exchange_client.config import CoinbaseCredentials, TimeoutConfig
from exchange_client.errors import ExchangeException
from exchange_client.factory import create_client
from market_feed.base import LiveFeed, TradeMatch
from market_feed.coinbase import CoinbaseFeed
from .config import ScheduleConfig
from .indicators import IndicatorStore, IndicatorView, NO_DATA
from .scheduler import ExecutionScheduler, SchedulerState
from .strategy import NoopStrategy


logger = logging.getLogger(__name__)


class TradingBot:
    """
    Strategy-facing API of the bot.

    All indicator accessors return read-only IndicatorView
    snapshots and never raise for missing data.
    """

    def __init__(
        self,
        strategy: Optional[Any] = None,
        client: Optional[ExchangeClient] = None,
        credentials: Optional[CoinbaseCredentials] = None,
        product: str = DEFAULT_PRODUCT,
        log: Optional[logging.Logger] = None,
        feed: Optional[LiveFeed] = None,
        websocket_url: Optional[str] = None,
        clock: Optional[ClockProtocol] = None,
        timeout_config: Optional[TimeoutConfig] = None,
    ):
        """
        Raises:
            MissingConfigError: If neither client nor credentials is given
            InvalidConfigError: If the credentials are incomplete
        """
        self._client = create_client(client, credentials, timeout_config)
        self._product = product
        self._log = log or logger
        self._clock = clock or ClockFactory.get_clock()
        self._strategy = strategy or NoopStrategy()

        if feed is None and websocket_url:
            feed = CoinbaseFeed(product_id=product, url=websocket_url, clock=self._clock)
        self._feed = feed

        self._last_match: Optional[TradeMatch] = None
        if self._feed is not None:
            self._feed.on_match(self._on_match)

        self._store = IndicatorStore(
            self._client,
            product,
            feed=self._feed,
            clock=self._clock,
            log=self._log,
        )
        self._scheduler = ExecutionScheduler(self._run_strategy, log=self._log, clock=self._clock)

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def product(self) -> str:
        return self._product

    @property
    def client(self) -> ExchangeClient:
        return self._client

    @property
    def feed(self) -> Optional[LiveFeed]:
        return self._feed

    @property
    def indicators(self) -> IndicatorStore:
        return self._store

    @property
    def scheduler(self) -> ExecutionScheduler:
        return self._scheduler

    @property
    def is_trading(self) -> bool:
        return self._scheduler.is_trading

    @property
    def is_busy(self) -> bool:
        return self._scheduler.is_busy

    @property
    def state(self) -> SchedulerState:
        return self._scheduler.state

    # --------------------------------------------------------
    # INDICATORS
    # --------------------------------------------------------

    @property
    def ticker(self) -> IndicatorView:
        return self._store.ticker.view()

    @property
    def order_book(self) -> IndicatorView:
        """Live book when the feed is synchronized, cached book otherwise."""
        if self._feed is not None:
            book = self._feed.order_book_state()
            if book is not None:
                return IndicatorView(
                    updated=self._feed.updated,
                    data=book,
                    errors=self._store.order_book.errors,
                )
        return self._store.order_book.view()

    @property
    def my_orders(self) -> IndicatorView:
        return self._store.open_orders.view()

    open_orders = my_orders

    @property
    def price(self) -> IndicatorView:
        return self._store.price

    @property
    def midmarket_price(self) -> IndicatorView:
        return self._store.midmarket_price

    @property
    def last_price(self) -> Optional[Decimal]:
        """Price of the last trade seen on the live feed."""
        if self._last_match is None:
            return None
        return self._last_match.price

    async def refresh_indicators(self) -> Dict[str, bool]:
        return await self._store.refresh_all()

    async def refresh(self, name: str) -> bool:
        return await self._store.refresh(name)

    def _on_match(self, match: TradeMatch) -> None:
        self._last_match = match
        self._log.debug(f"Trade {match.side} {match.size} @ {match.price}")

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    async def cancel_order(self, order_id: str) -> Optional[str]:
        """
        Cancel one order.

        Returns:
            The cancelled id, or None if the exchange does not know it

        Raises:
            CancellationError: If the exchange request fails
        """
        try:
            cancelled = await self._client.cancel_order(order_id)
        except ExchangeException as e:
            raise CancellationError(
                f"Failed to cancel order {order_id}: {e}",
                order_id=order_id,
                cause=e,
            ) from e

        if cancelled is None:
            self._log.info(f"Order {order_id} not found, nothing to cancel")
        else:
            self._log.info(f"Cancelled order {order_id}")
        return cancelled

    async def cancel_all_orders(self) -> List[str]:
        """
        Cancel every open order.

        Raises:
            CancellationError: If the exchange request fails
        """
        try:
            cancelled = await self._client.cancel_all_orders()
        except ExchangeException as e:
            raise CancellationError(f"Failed to cancel all orders: {e}", cause=e) from e

        self._log.info(f"Cancelled {len(cancelled)} orders")
        return cancelled

    # --------------------------------------------------------
    # TRADING
    # --------------------------------------------------------

    async def start_trading(self, config: Optional[ScheduleConfig] = None, **kwargs: Any) -> bool:
        """
        Start running the strategy on a timer.

        Args:
            config: Schedule; built from `kwargs` when omitted
                (interval_seconds, min_interval_seconds,
                max_interval_seconds, max_runs)

        Returns:
            False if already trading

        Raises:
            TypeError: If both `config` and `kwargs` are given
        """
        if config is not None and kwargs:
            raise TypeError("Pass either a ScheduleConfig or schedule keywords, not both")
        if config is None:
            config = ScheduleConfig(**kwargs)
        return await self._scheduler.start(config)

    async def stop_trading(self, cancel: bool = False) -> bool:
        """
        Stop the timer, optionally cancelling all orders first.

        The timer stops even when the cancel request fails; the
        CancellationError is raised afterwards.
        """
        return await self._scheduler.stop(cancel=cancel, cancel_orders=self.cancel_all_orders)

    def _run_strategy(self) -> Any:
        return self._strategy(self)

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def connect(self) -> None:
        """Open the client session and start the live feed."""
        await self._client.connect()
        if self._feed is not None:
            await self._feed.connect()

    async def close(self) -> None:
        """Stop trading without cancelling, then release connections."""
        await self.stop_trading()
        await self._scheduler.wait_idle()
        if self._feed is not None:
            await self._feed.disconnect()
        await self._client.close()

    async def __aenter__(self) -> "TradingBot":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --------------------------------------------------------
    # STATUS
    # --------------------------------------------------------

    def get_status(self) -> Dict[str, Any]:
        midmarket = self.midmarket_price
        status = {
            "product": self._product,
            "exchange": self._client.exchange_id,
            "scheduler": self._scheduler.get_status(),
            "indicators": self._store.snapshot(),
            "midmarket_price": str(midmarket.data) if midmarket is not NO_DATA else None,
            "last_price": str(self.last_price) if self.last_price is not None else None,
            "feed": None,
        }
        if self._feed is not None:
            status["feed"] = {
                "synced": self._feed.order_book_state() is not None,
                "updated": to_iso8601(self._feed.updated),
            }
        return status
