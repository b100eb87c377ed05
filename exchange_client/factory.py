"""
Exchange Client Factory.

============================================================
PURPOSE
============================================================
Resolve the exchange client a bot will use:

- a pre-built client instance wins
- otherwise credentials build a CoinbaseExchangeClient
- neither is a fatal configuration error

============================================================
"""

import logging
from typing import Dict, Optional, Type

from core.exceptions import InvalidConfigError, MissingConfigError
from .base import ExchangeClient
from .coinbase import CoinbaseExchangeClient
from .config import CoinbaseCredentials, TimeoutConfig
from .mock import MockExchangeClient


logger = logging.getLogger(__name__)


CLIENT_REGISTRY: Dict[str, Type[ExchangeClient]] = {
    "coinbase": CoinbaseExchangeClient,
    "mock": MockExchangeClient,
}


def create_client(
    client: Optional[ExchangeClient] = None,
    credentials: Optional[CoinbaseCredentials] = None,
    timeout_config: Optional[TimeoutConfig] = None,
) -> ExchangeClient:
    """
    Build or pass through an exchange client.

    Args:
        client: Pre-built client instance
        credentials: Credentials for a Coinbase client

    Raises:
        MissingConfigError: If neither client nor credentials is given
        InvalidConfigError: If the credentials are incomplete
    """
    if client is not None:
        return client

    if credentials is None:
        raise MissingConfigError(
            "client",
            "Either an exchange client or credentials must be provided",
        )

    errors = credentials.validate()
    if errors:
        raise InvalidConfigError("credentials", credentials.masked(), ", ".join(errors))

    logger.info(f"Creating Coinbase client ({credentials.masked()})")
    return CoinbaseExchangeClient(credentials, timeout_config=timeout_config)


def create_client_by_id(exchange_id: str, **kwargs) -> ExchangeClient:
    """
    Create a client by registry id ("coinbase" or "mock").

    Raises:
        ValueError: If the exchange is not supported
    """
    exchange_id = exchange_id.lower()
    if exchange_id not in CLIENT_REGISTRY:
        raise ValueError(
            f"Unsupported exchange: {exchange_id}. "
            f"Supported: {sorted(CLIENT_REGISTRY)}"
        )
    if exchange_id == "coinbase":
        return create_client(**kwargs)
    return CLIENT_REGISTRY[exchange_id](**kwargs)
