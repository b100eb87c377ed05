"""
Exchange Client - Coinbase Exchange REST Client.

============================================================
PURPOSE
============================================================
Authenticated client for the Coinbase Exchange REST API.

FEATURES:
- Request signing (CB-ACCESS-* headers)
- Error mapping to ExchangeException
- Open-order pagination
- Unknown-order cancel treated as a no-op

============================================================
"""

import asyncio
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

import aiohttp

from core.constants import ORDER_BOOK_LEVEL
from .base import ExchangeClient
from .config import CoinbaseCredentials, TimeoutConfig, mask_headers
from .errors import (
    ExchangeException,
    create_network_error,
    create_timeout_error,
    map_coinbase_error,
)
from .types import Order, OrderBook, Ticker


logger = logging.getLogger(__name__)


# ============================================================
# COINBASE EXCHANGE CLIENT
# ============================================================

class CoinbaseExchangeClient(ExchangeClient):
    """
    Coinbase Exchange (formerly GDAX) REST client.

    Implements the ExchangeClient capability set on top of a
    shared aiohttp session.
    """

    PAGE_LIMIT = 100

    def __init__(
        self,
        credentials: CoinbaseCredentials,
        timeout_config: Optional[TimeoutConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize Coinbase client.

        Args:
            credentials: API credentials
            timeout_config: HTTP timeouts
            session: Pre-built session (owned by the caller)
        """
        self._credentials = credentials
        self._timeout_config = timeout_config or TimeoutConfig()
        self._rest_url = credentials.api_url.rstrip("/")

        self._session = session
        self._owns_session = session is None

    @property
    def exchange_id(self) -> str:
        return "coinbase"

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    # --------------------------------------------------------
    # CONNECTION
    # --------------------------------------------------------

    async def connect(self) -> None:
        """Open the HTTP session."""
        if self.is_connected:
            return

        timeout = aiohttp.ClientTimeout(
            connect=self._timeout_config.connection_timeout_seconds,
            total=self._timeout_config.read_timeout_seconds,
        )
        self._session = aiohttp.ClientSession(timeout=timeout)
        self._owns_session = True
        logger.info(f"Coinbase client session opened ({self._credentials.masked()})")

    async def close(self) -> None:
        """Close the HTTP session if this client owns it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            logger.info("Coinbase client session closed")
        self._session = None

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def get_product_ticker(self, product_id: str) -> Ticker:
        data, _ = await self._request(
            "GET",
            f"/products/{product_id}/ticker",
            operation="get_product_ticker",
            product_id=product_id,
        )
        return Ticker.from_dict(data)

    async def get_product_order_book(
        self,
        product_id: str,
        level: int = ORDER_BOOK_LEVEL,
    ) -> OrderBook:
        data, _ = await self._request(
            "GET",
            f"/products/{product_id}/book",
            params={"level": level},
            operation="get_product_order_book",
            product_id=product_id,
        )
        return OrderBook.from_dict(data)

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    async def get_orders(self, product_id: Optional[str] = None) -> List[Order]:
        """Get all open orders, following `cb-after` pagination."""
        orders: List[Order] = []
        params: Dict[str, Any] = {"status": "open", "limit": self.PAGE_LIMIT}
        if product_id:
            params["product_id"] = product_id

        while True:
            page, headers = await self._request(
                "GET",
                "/orders",
                params=params,
                operation="get_orders",
                product_id=product_id,
            )
            orders.extend(Order.from_dict(item) for item in page)

            cursor = headers.get("cb-after")
            if not cursor or len(page) < self.PAGE_LIMIT:
                break
            params = dict(params, after=cursor)

        return orders

    async def cancel_order(self, order_id: str) -> Optional[str]:
        data, _ = await self._request(
            "DELETE",
            f"/orders/{order_id}",
            operation="cancel_order",
            allow_not_found=True,
        )
        if data is None:
            logger.info(f"Cancel ignored, order not found: {order_id}")
            return None
        return str(data)

    async def cancel_all_orders(self, product_id: Optional[str] = None) -> List[str]:
        params = {"product_id": product_id} if product_id else None
        data, _ = await self._request(
            "DELETE",
            "/orders",
            params=params,
            operation="cancel_all_orders",
            product_id=product_id,
        )
        return [str(order_id) for order_id in (data or [])]

    # --------------------------------------------------------
    # TRANSPORT
    # --------------------------------------------------------

    def _sign(
        self,
        timestamp: str,
        method: str,
        request_path: str,
        body: str = "",
    ) -> str:
        """Compute the base64 HMAC-SHA256 request signature."""
        message = f"{timestamp}{method.upper()}{request_path}{body}"
        secret = base64.b64decode(self._credentials.secret)
        digest = hmac.new(secret, message.encode(), hashlib.sha256).digest()
        return base64.b64encode(digest).decode()

    def _auth_headers(self, method: str, request_path: str, body: str = "") -> Dict[str, str]:
        timestamp = str(time.time())
        return {
            "CB-ACCESS-KEY": self._credentials.key,
            "CB-ACCESS-SIGN": self._sign(timestamp, method, request_path, body),
            "CB-ACCESS-TIMESTAMP": timestamp,
            "CB-ACCESS-PASSPHRASE": self._credentials.passphrase,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None,
        product_id: Optional[str] = None,
        allow_not_found: bool = False,
    ) -> Tuple[Any, Mapping[str, str]]:
        """
        Make a signed API request.

        Returns:
            (decoded JSON body, response headers); body is None for a
            404 when `allow_not_found` is set

        Raises:
            ExchangeException: On transport failure or non-2xx status
        """
        if not self.is_connected:
            await self.connect()

        request_path = path
        if params:
            request_path = f"{path}?{urlencode(params)}"
        payload = json.dumps(body) if body else ""
        headers = self._auth_headers(method, request_path, payload)
        logger.debug(f"Coinbase {method} {request_path} headers={mask_headers(headers)}")

        try:
            async with self._session.request(
                method,
                f"{self._rest_url}{request_path}",
                data=payload or None,
                headers=headers,
            ) as response:
                text = await response.text()
                try:
                    data = json.loads(text) if text else None
                except ValueError:
                    data = None

                if response.status == 404 and allow_not_found:
                    return None, response.headers

                if response.status >= 400:
                    message = data.get("message", text) if isinstance(data, dict) else text
                    error = map_coinbase_error(
                        response.status,
                        message,
                        operation=operation,
                        product_id=product_id,
                    )
                    logger.warning(f"Coinbase {method} {path} failed: {error}")
                    raise ExchangeException(error)

                return data, response.headers

        except aiohttp.ClientError as e:
            raise ExchangeException(
                create_network_error(self.exchange_id, f"Network error: {e}", operation)
            ) from e
        except asyncio.TimeoutError as e:
            raise ExchangeException(
                create_timeout_error(
                    self.exchange_id,
                    self._timeout_config.read_timeout_seconds,
                    operation,
                )
            ) from e
