"""
Core Module Package.

Infrastructure shared by every other package.

Components:
- clock: Unified time abstraction
- exceptions: Custom exception hierarchy
- constants: Shared defaults
"""

from .clock import ClockFactory, ClockProtocol, MockClock, SystemClock, now_utc
from .exceptions import (
    TradingException,
    ConfigurationError,
    MissingConfigError,
    InvalidConfigError,
    FeedError,
    StrategyError,
    CancellationError,
)

__all__ = [
    "ClockFactory",
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "now_utc",
    "TradingException",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "FeedError",
    "StrategyError",
    "CancellationError",
]
