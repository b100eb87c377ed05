"""
Market Feed - WebSocket Base.

============================================================
PURPOSE
============================================================
Base class for exchange websocket feeds.

FEATURES:
- Supervisor task owning the connection
- Reconnect after a fixed backoff (optionally growing)
- Resubscribe on every reconnect
- JSON message routing to `_on_message`

============================================================
USAGE
============================================================
```python
class MyFeed(WebSocketBase):
    async def _send_subscribe(self) -> None:
        await self.send({"type": "subscribe", ...})

    async def _on_message(self, data: Dict):
        ...

feed = MyFeed(WebSocketConfig(url="wss://..."))
await feed.start()
...
await feed.stop()
```

============================================================
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp

from core.constants import FEED_RECONNECT_INTERVAL_MS


logger = logging.getLogger(__name__)


# ============================================================
# CONNECTION STATE
# ============================================================

class ConnectionState(Enum):
    """WebSocket connection states."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"
    CLOSING = "CLOSING"


@dataclass
class WebSocketConfig:
    """WebSocket configuration."""

    url: str

    reconnect: bool = True
    max_reconnect_attempts: int = 0
    """Consecutive failed attempts before giving up (0 = never give up)."""

    reconnect_interval_ms: int = FEED_RECONNECT_INTERVAL_MS
    backoff_multiplier: float = 1.0
    """1.0 keeps the backoff fixed."""

    max_reconnect_interval_ms: int = 30000

    heartbeat_seconds: float = 20.0

    def reconnect_delay_seconds(self, attempt: int) -> float:
        """Delay before reconnect attempt number `attempt` (1-based)."""
        delay_ms = self.reconnect_interval_ms * (self.backoff_multiplier ** max(attempt - 1, 0))
        return min(delay_ms, self.max_reconnect_interval_ms) / 1000


# ============================================================
# WEBSOCKET BASE
# ============================================================

class WebSocketBase(ABC):
    """
    Abstract base class for websocket feeds.

    A single supervisor task connects, subscribes and reads
    until the socket closes, then waits the configured backoff
    and starts over.
    """

    def __init__(self, config: WebSocketConfig):
        self._config = config

        self._state = ConnectionState.DISCONNECTED
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None

        self._supervisor_task: Optional[asyncio.Task] = None
        self._stopping = False

        self._reconnect_count = 0
        self._connect_count = 0
        self._last_message_time = 0.0

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED and self._ws is not None

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def connect_count(self) -> int:
        """Number of successful connections so far."""
        return self._connect_count

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def start(self) -> None:
        """Start the supervisor task. No-op if already running."""
        if self._supervisor_task and not self._supervisor_task.done():
            return

        self._stopping = False
        self._supervisor_task = asyncio.create_task(self._supervise())

    async def stop(self) -> None:
        """Stop the supervisor and close the connection."""
        self._stopping = True
        self._state = ConnectionState.CLOSING

        if self._supervisor_task:
            self._supervisor_task.cancel()
            try:
                await self._supervisor_task
            except asyncio.CancelledError:
                pass
            self._supervisor_task = None

        await self._close_socket()

        if self._session:
            await self._session.close()
            self._session = None

        await self._on_disconnect()
        self._state = ConnectionState.DISCONNECTED
        logger.info(f"WebSocket stopped: {self.url}")

    # --------------------------------------------------------
    # SUPERVISOR
    # --------------------------------------------------------

    async def _supervise(self) -> None:
        """Connect, read until close, back off, repeat."""
        while not self._stopping:
            try:
                await self._connect_once()
                self._reconnect_count = 0
                await self._receive_loop()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"WebSocket error on {self.url}: {e}")
            finally:
                await self._close_socket()
                if not self._stopping:
                    self._state = ConnectionState.DISCONNECTED
                    await self._on_disconnect()

            if self._stopping or not self._config.reconnect:
                break

            self._reconnect_count += 1
            max_attempts = self._config.max_reconnect_attempts
            if max_attempts and self._reconnect_count > max_attempts:
                logger.error(f"Max reconnection attempts reached for {self.url}")
                break

            delay = self._config.reconnect_delay_seconds(self._reconnect_count)
            self._state = ConnectionState.RECONNECTING
            logger.info(f"Reconnecting in {delay:.1f}s (attempt {self._reconnect_count})")
            await asyncio.sleep(delay)

    async def _connect_once(self) -> None:
        self._state = ConnectionState.CONNECTING

        if self._session is None:
            self._session = aiohttp.ClientSession()

        self._ws = await self._session.ws_connect(
            self.url,
            heartbeat=self._config.heartbeat_seconds,
        )
        self._state = ConnectionState.CONNECTED
        self._connect_count += 1
        self._last_message_time = time.time()
        logger.info(f"WebSocket connected: {self.url}")

        await self._send_subscribe()
        await self._on_connect()

    async def _close_socket(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None

    # --------------------------------------------------------
    # MESSAGE HANDLING
    # --------------------------------------------------------

    async def _receive_loop(self) -> None:
        """Read messages until the socket closes or errors."""
        async for msg in self._ws:
            self._last_message_time = time.time()

            if msg.type == aiohttp.WSMsgType.TEXT:
                await self._handle_message(msg.data)

            elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED):
                logger.warning(f"WebSocket closed: {msg.data}")
                break

            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error(f"WebSocket error: {self._ws.exception()}")
                break

    async def _handle_message(self, data: str) -> None:
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Non-JSON message: {data[:100]}")
            return

        try:
            await self._on_message(parsed)
        except Exception as e:
            logger.error(f"Error handling message: {e}", exc_info=True)

    # --------------------------------------------------------
    # SENDING
    # --------------------------------------------------------

    async def send(self, message: Dict[str, Any]) -> None:
        """Send a JSON message."""
        if not self.is_connected:
            raise ConnectionError("Not connected")
        await self._ws.send_json(message)

    # --------------------------------------------------------
    # HOOKS (OVERRIDE)
    # --------------------------------------------------------

    @abstractmethod
    async def _send_subscribe(self) -> None:
        """Send the subscription message (exchange-specific)."""
        pass

    @abstractmethod
    async def _on_message(self, data: Dict[str, Any]) -> None:
        """Handle a parsed message."""
        pass

    async def _on_connect(self) -> None:
        pass

    async def _on_disconnect(self) -> None:
        pass
