"""
Trading Bot - Configuration.

============================================================
PURPOSE
============================================================
Configuration accepted by the bot.

- ScheduleConfig: tick cadence and run limit (given at start)
- BotConfig: product, feed and logging (given at construction)

Both load from environment variables and validate to a list
of error strings.

============================================================
"""

import os
import random
from dataclasses import dataclass, field
from typing import List, Optional

from core.constants import (
    COINBASE_SANDBOX_WEBSOCKET_URL,
    COINBASE_WEBSOCKET_URL,
    DEFAULT_PRODUCT,
    DEFAULT_TICK_INTERVAL_SECONDS,
)
from core.exceptions import InvalidConfigError


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


# ============================================================
# SCHEDULE CONFIGURATION
# ============================================================

@dataclass
class ScheduleConfig:
    """
    Tick cadence for the execution scheduler.

    A fixed `interval_seconds`, or a random interval drawn
    before every tick when both bounds are set.
    """

    interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS
    """Fixed interval between ticks."""

    min_interval_seconds: Optional[float] = None
    """Lower bound of a randomized interval."""

    max_interval_seconds: Optional[float] = None
    """Upper bound of a randomized interval."""

    max_runs: Optional[int] = None
    """Stop by itself after this many strategy invocations."""

    @property
    def is_randomized(self) -> bool:
        return self.min_interval_seconds is not None or self.max_interval_seconds is not None

    def next_interval(self, rng: Optional[random.Random] = None) -> float:
        """Seconds until the next tick."""
        if not self.is_randomized:
            return self.interval_seconds
        rng = rng or random
        return rng.uniform(self.min_interval_seconds, self.max_interval_seconds)

    @classmethod
    def from_env(cls) -> "ScheduleConfig":
        """Load from TICK_INTERVAL_SECONDS, TICK_MIN/MAX_INTERVAL_SECONDS, MAX_RUNS."""
        return cls(
            interval_seconds=float(os.getenv("TICK_INTERVAL_SECONDS", str(DEFAULT_TICK_INTERVAL_SECONDS))),
            min_interval_seconds=_optional_float("TICK_MIN_INTERVAL_SECONDS"),
            max_interval_seconds=_optional_float("TICK_MAX_INTERVAL_SECONDS"),
            max_runs=_optional_int("MAX_RUNS"),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.is_randomized:
            if self.min_interval_seconds is None or self.max_interval_seconds is None:
                errors.append("min_interval_seconds and max_interval_seconds must be set together")
            elif self.min_interval_seconds <= 0:
                errors.append("min_interval_seconds must be positive")
            elif self.max_interval_seconds < self.min_interval_seconds:
                errors.append("max_interval_seconds must be >= min_interval_seconds")
        elif self.interval_seconds <= 0:
            errors.append("interval_seconds must be positive")

        if self.max_runs is not None and self.max_runs < 1:
            errors.append("max_runs must be at least 1")

        return errors

    def raise_if_invalid(self) -> None:
        errors = self.validate()
        if errors:
            raise InvalidConfigError("schedule", self, "; ".join(errors))


# ============================================================
# BOT CONFIGURATION
# ============================================================

@dataclass
class BotConfig:
    """Construction-time configuration for a runnable bot."""

    product: str = DEFAULT_PRODUCT
    """Product / market identifier."""

    websocket_url: Optional[str] = None
    """Live feed endpoint; no feed when unset."""

    sandbox: bool = False

    cancel_on_stop: bool = False
    """Cancel all open orders when the bot stops."""

    log_level: str = "INFO"
    log_format: str = "text"

    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)

    @classmethod
    def from_env(cls) -> "BotConfig":
        sandbox = os.getenv("COINBASE_SANDBOX", "false").lower() == "true"
        websocket_url = os.getenv("COINBASE_WEBSOCKET_URL")
        if websocket_url is None and os.getenv("USE_LIVE_FEED", "false").lower() == "true":
            websocket_url = COINBASE_SANDBOX_WEBSOCKET_URL if sandbox else COINBASE_WEBSOCKET_URL
        return cls(
            product=os.getenv("PRODUCT", DEFAULT_PRODUCT),
            websocket_url=websocket_url,
            sandbox=sandbox,
            cancel_on_stop=os.getenv("CANCEL_ON_STOP", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
            schedule=ScheduleConfig.from_env(),
        )

    def validate(self) -> List[str]:
        errors = []
        if not self.product:
            errors.append("product is required")
        if self.websocket_url and not self.websocket_url.startswith(("ws://", "wss://")):
            errors.append("websocket_url must be a ws:// or wss:// URL")
        if self.log_format not in ("json", "text"):
            errors.append("log_format must be 'json' or 'text'")
        errors.extend(f"schedule: {e}" for e in self.schedule.validate())
        return errors
