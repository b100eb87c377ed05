"""
Exchange Client - Error Handling and Mapping.

============================================================
PURPOSE
============================================================
Unified error representation for exchange clients:
- Error taxonomy independent of the exchange
- Coinbase HTTP status / message mapping
- Retry eligibility classification

Fetch failures raised as ExchangeException are captured into
the indicator error log; cancel failures reach the caller.

============================================================
ERROR CATEGORIES
============================================================
1. NETWORK         - Connection issues
2. TIMEOUT         - Request timed out
3. RATE_LIMIT      - Too many requests
4. AUTHENTICATION  - Invalid credentials
5. INVALID_REQUEST - Rejected parameters
6. NOT_FOUND       - Unknown order or product
7. EXCHANGE_ERROR  - Exchange internal errors
8. UNKNOWN         - Unclassified errors

============================================================
"""

import logging
from enum import Enum
from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass


logger = logging.getLogger(__name__)


# ============================================================
# ERROR TAXONOMY
# ============================================================

class ErrorCategory(Enum):
    """Standardized error categories."""

    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT"
    AUTHENTICATION = "AUTHENTICATION"
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    EXCHANGE_ERROR = "EXCHANGE_ERROR"
    UNKNOWN = "UNKNOWN"


class RetryEligibility(Enum):
    """Whether error is eligible for retry."""

    RETRY = "RETRY"
    NO_RETRY = "NO_RETRY"
    BACKOFF = "BACKOFF"


# ============================================================
# EXCHANGE ERROR
# ============================================================

@dataclass
class ExchangeError:
    """Standardized exchange error."""

    category: ErrorCategory
    code: str
    message: str

    retry_eligible: RetryEligibility
    retry_after_ms: Optional[int] = None

    exchange_message: Optional[str] = None
    http_status: Optional[int] = None

    exchange_id: Optional[str] = None
    operation: Optional[str] = None
    product_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "code": self.code,
            "message": self.message,
            "retry_eligible": self.retry_eligible.value,
            "retry_after_ms": self.retry_after_ms,
            "exchange_message": self.exchange_message,
            "http_status": self.http_status,
            "exchange_id": self.exchange_id,
            "operation": self.operation,
            "product_id": self.product_id,
        }

    def is_retryable(self) -> bool:
        return self.retry_eligible in (RetryEligibility.RETRY, RetryEligibility.BACKOFF)

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.code}: {self.message}"


class ExchangeException(Exception):
    """Exception wrapper for ExchangeError."""

    def __init__(self, error: ExchangeError):
        self.error = error
        super().__init__(str(error))

    @property
    def category(self) -> ErrorCategory:
        return self.error.category


# ============================================================
# COINBASE ERROR MAPPING
# ============================================================

# HTTP status to unified category
COINBASE_STATUS_MAP: Dict[int, Tuple[ErrorCategory, RetryEligibility]] = {
    400: (ErrorCategory.INVALID_REQUEST, RetryEligibility.NO_RETRY),
    401: (ErrorCategory.AUTHENTICATION, RetryEligibility.NO_RETRY),
    403: (ErrorCategory.AUTHENTICATION, RetryEligibility.NO_RETRY),
    404: (ErrorCategory.NOT_FOUND, RetryEligibility.NO_RETRY),
    429: (ErrorCategory.RATE_LIMIT, RetryEligibility.BACKOFF),
    500: (ErrorCategory.EXCHANGE_ERROR, RetryEligibility.RETRY),
    502: (ErrorCategory.EXCHANGE_ERROR, RetryEligibility.RETRY),
    503: (ErrorCategory.EXCHANGE_ERROR, RetryEligibility.RETRY),
    504: (ErrorCategory.TIMEOUT, RetryEligibility.RETRY),
}

# Message fragments that refine a 400
COINBASE_MESSAGE_MAP: Dict[str, ErrorCategory] = {
    "insufficient funds": ErrorCategory.INSUFFICIENT_FUNDS,
    "order not found": ErrorCategory.NOT_FOUND,
    "notfound": ErrorCategory.NOT_FOUND,
    "invalid api key": ErrorCategory.AUTHENTICATION,
    "invalid signature": ErrorCategory.AUTHENTICATION,
    "invalid passphrase": ErrorCategory.AUTHENTICATION,
}


def map_coinbase_error(
    http_status: int,
    message: str,
    operation: Optional[str] = None,
    product_id: Optional[str] = None,
) -> ExchangeError:
    """
    Map a Coinbase Exchange error response to unified format.

    Args:
        http_status: HTTP status code
        message: The `message` field of the error body
        operation: Client operation name
        product_id: Product involved, if any

    Returns:
        Unified ExchangeError
    """
    if http_status in COINBASE_STATUS_MAP:
        category, retry = COINBASE_STATUS_MAP[http_status]
    elif http_status >= 500:
        category, retry = ErrorCategory.EXCHANGE_ERROR, RetryEligibility.RETRY
    else:
        category, retry = ErrorCategory.UNKNOWN, RetryEligibility.NO_RETRY

    lowered = (message or "").lower()
    for fragment, refined in COINBASE_MESSAGE_MAP.items():
        if fragment in lowered:
            category = refined
            break

    return ExchangeError(
        category=category,
        code=f"COINBASE_{http_status}",
        message=message or f"HTTP {http_status}",
        retry_eligible=retry,
        exchange_message=message,
        http_status=http_status,
        exchange_id="coinbase",
        operation=operation,
        product_id=product_id,
    )


# ============================================================
# NETWORK ERROR HELPERS
# ============================================================

def create_network_error(
    exchange_id: str,
    message: str,
    operation: str = None,
) -> ExchangeError:
    """Create network error."""
    return ExchangeError(
        category=ErrorCategory.NETWORK,
        code=f"{exchange_id.upper()}_NETWORK_ERROR",
        message=message,
        retry_eligible=RetryEligibility.RETRY,
        exchange_id=exchange_id,
        operation=operation,
    )


def create_timeout_error(
    exchange_id: str,
    timeout_seconds: float,
    operation: str = None,
) -> ExchangeError:
    """Create timeout error."""
    return ExchangeError(
        category=ErrorCategory.TIMEOUT,
        code=f"{exchange_id.upper()}_TIMEOUT",
        message=f"Request timed out after {timeout_seconds}s",
        retry_eligible=RetryEligibility.RETRY,
        exchange_id=exchange_id,
        operation=operation,
    )
