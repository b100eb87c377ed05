"""
Exchange Client - Configuration.

============================================================
PURPOSE
============================================================
Credentials and transport settings for exchange clients.

Credentials are either passed explicitly or read from the
environment. They are never logged unmasked.

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.constants import COINBASE_REST_URL, COINBASE_SANDBOX_REST_URL


def mask_value(value: Optional[str], show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


SENSITIVE_HEADERS = {
    "cb-access-key",
    "cb-access-sign",
    "cb-access-passphrase",
}


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Mask the authentication headers of a request."""
    if not headers:
        return {}

    masked = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = mask_value(str(value))
        else:
            masked[key] = value
    return masked


# ============================================================
# CREDENTIALS
# ============================================================

@dataclass
class CoinbaseCredentials:
    """API credentials for an authenticated Coinbase Exchange client."""

    key: str
    secret: str = field(repr=False)
    """Base64-encoded API secret."""

    passphrase: str = field(repr=False)
    api_url: str = COINBASE_REST_URL

    @classmethod
    def from_env(cls, sandbox: bool = False) -> Optional["CoinbaseCredentials"]:
        """
        Load credentials from COINBASE_API_KEY / _SECRET / _PASSPHRASE.

        Returns None when the key is not set.
        """
        key = os.getenv("COINBASE_API_KEY")
        if not key:
            return None
        default_url = COINBASE_SANDBOX_REST_URL if sandbox else COINBASE_REST_URL
        return cls(
            key=key,
            secret=os.getenv("COINBASE_API_SECRET", ""),
            passphrase=os.getenv("COINBASE_API_PASSPHRASE", ""),
            api_url=os.getenv("COINBASE_API_URL", default_url),
        )

    def validate(self) -> List[str]:
        """Validate credentials, return list of errors."""
        errors = []
        if not self.key:
            errors.append("key is required")
        if not self.secret:
            errors.append("secret is required")
        if not self.passphrase:
            errors.append("passphrase is required")
        if not self.api_url.startswith("http"):
            errors.append("api_url must be an http(s) URL")
        return errors

    def masked(self) -> str:
        return f"key={mask_value(self.key)} api_url={self.api_url}"


# ============================================================
# TIMEOUT CONFIGURATION
# ============================================================

@dataclass
class TimeoutConfig:
    """HTTP timeouts for exchange requests."""

    connection_timeout_seconds: float = 5.0
    """Connection timeout."""

    read_timeout_seconds: float = 30.0
    """Total timeout for one request."""
