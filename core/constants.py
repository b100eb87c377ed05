"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Single source of truth for defaults shared across packages.

============================================================
"""

# ============================================================
# PRODUCT
# ============================================================

DEFAULT_PRODUCT = "BTC-USD"

# ============================================================
# EXCHANGE ENDPOINTS
# ============================================================

COINBASE_REST_URL = "https://api.exchange.coinbase.com"
COINBASE_SANDBOX_REST_URL = "https://api-public.sandbox.exchange.coinbase.com"
COINBASE_WEBSOCKET_URL = "wss://ws-feed.exchange.coinbase.com"
COINBASE_SANDBOX_WEBSOCKET_URL = "wss://ws-feed-public.sandbox.exchange.coinbase.com"

ORDER_BOOK_LEVEL = 2

# ============================================================
# SCHEDULING
# ============================================================

DEFAULT_TICK_INTERVAL_SECONDS = 1.0

# ============================================================
# INDICATORS
# ============================================================

INDICATOR_TICKER = "ticker"
INDICATOR_ORDER_BOOK = "order_book"
INDICATOR_OPEN_ORDERS = "open_orders"

TRACKED_INDICATORS = (
    INDICATOR_TICKER,
    INDICATOR_ORDER_BOOK,
    INDICATOR_OPEN_ORDERS,
)

# ============================================================
# LIVE FEED
# ============================================================

FEED_RECONNECT_INTERVAL_MS = 1000
