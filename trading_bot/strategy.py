"""
Trading Bot - Strategies.

============================================================
PURPOSE
============================================================
The user-supplied decision logic run on every tick.

A strategy is any callable taking the bot; awaitable results
are awaited. `Strategy` is the class-based form.

============================================================
USAGE
============================================================
```python
class Spread(Strategy):
    async def execute(self, bot):
        await bot.refresh_indicators()
        ...

bot = TradingBot(strategy=Spread(), client=client)
```

============================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .bot import TradingBot


logger = logging.getLogger(__name__)


class Strategy(ABC):
    """Base class for class-based strategies."""

    name: str = "strategy"

    async def __call__(self, bot: "TradingBot") -> Any:
        return await self.execute(bot)

    @abstractmethod
    async def execute(self, bot: "TradingBot") -> Any:
        """Run one round of decision logic."""
        pass


class NoopStrategy(Strategy):
    """Does nothing. Used when the bot has no strategy."""

    name = "noop"

    async def execute(self, bot: "TradingBot") -> None:
        return None


class LoggingStrategy(Strategy):
    """Refreshes the indicators and logs the market. Places no orders."""

    name = "logging"

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    async def execute(self, bot: "TradingBot") -> None:
        await bot.refresh_indicators()

        midmarket = bot.midmarket_price.data
        orders = bot.my_orders.data
        self._log.info(
            f"{bot.product} price={bot.price.data} midmarket={midmarket} "
            f"last_trade={bot.last_price} open_orders={len(orders) if orders is not None else '-'}"
        )
