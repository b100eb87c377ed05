"""
Exchange Client Package.

============================================================
PURPOSE
============================================================
Capability set the bot consumes from an exchange.

AVAILABLE CLIENTS:
- CoinbaseExchangeClient: Coinbase Exchange REST API
- MockExchangeClient: For testing

ERROR HANDLING:
- ExchangeException wraps a unified ExchangeError
- map_coinbase_error translates HTTP failures

============================================================
"""

from .types import BookLevel, Order, OrderBook, Ticker, to_decimal
from .base import ExchangeClient
from .config import CoinbaseCredentials, TimeoutConfig, mask_headers, mask_value
from .errors import (
    ErrorCategory,
    RetryEligibility,
    ExchangeError,
    ExchangeException,
    map_coinbase_error,
    create_network_error,
    create_timeout_error,
)
from .coinbase import CoinbaseExchangeClient
from .mock import MockConfig, MockExchangeClient
from .factory import create_client, create_client_by_id


__all__ = [
    # Types
    "BookLevel",
    "Order",
    "OrderBook",
    "Ticker",
    "to_decimal",
    # Base
    "ExchangeClient",
    # Config
    "CoinbaseCredentials",
    "TimeoutConfig",
    "mask_headers",
    "mask_value",
    # Errors
    "ErrorCategory",
    "RetryEligibility",
    "ExchangeError",
    "ExchangeException",
    "map_coinbase_error",
    "create_network_error",
    "create_timeout_error",
    # Clients
    "CoinbaseExchangeClient",
    "MockConfig",
    "MockExchangeClient",
    # Factory
    "create_client",
    "create_client_by_id",
]
