"""
Trading Bot Package.

============================================================
PURPOSE
============================================================
Reusable core for automated trading bots.

- IndicatorStore: cached exchange state with error history
- ExecutionScheduler: timed, single-flight strategy runs
- TradingBot: the facade handed to strategies

============================================================
"""

from .config import BotConfig, ScheduleConfig
from .indicators import Indicator, IndicatorError, IndicatorStore, IndicatorView, NO_DATA
from .scheduler import ExecutionScheduler, SchedulerState, SchedulerStats
from .strategy import LoggingStrategy, NoopStrategy, Strategy
from .bot import TradingBot


__all__ = [
    "BotConfig",
    "ScheduleConfig",
    "Indicator",
    "IndicatorError",
    "IndicatorStore",
    "IndicatorView",
    "NO_DATA",
    "ExecutionScheduler",
    "SchedulerState",
    "SchedulerStats",
    "LoggingStrategy",
    "NoopStrategy",
    "Strategy",
    "TradingBot",
]
