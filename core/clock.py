"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Single source of wall-clock time for the bot.

- Indicator refresh timestamps
- Error log timestamps
- Strategy run start/finish bookkeeping

============================================================
DESIGN PRINCIPLES
============================================================
- UTC only
- Swappable in tests (MockClock)
- Thread-safe

============================================================
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Generator, Optional
import threading
import time


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for the bot clock."""

    @abstractmethod
    def now(self) -> datetime:
        """Get current UTC datetime."""
        pass

    @abstractmethod
    def timestamp(self) -> float:
        """Get current Unix timestamp."""
        pass

    def age_seconds(self, since: Optional[datetime]) -> Optional[float]:
        """Seconds elapsed since `since`, or None if never set."""
        if since is None:
            return None
        return (self.now() - since).total_seconds()


# ============================================================
# SYSTEM CLOCK
# ============================================================

class SystemClock(ClockProtocol):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def timestamp(self) -> float:
        return time.time()


# ============================================================
# MOCK CLOCK
# ============================================================

class MockClock(ClockProtocol):
    """
    Manually driven clock for tests.

    Time only moves when `advance` or `set_time` is called.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        self._time = initial_time or datetime(2015, 11, 14, 20, 46, 3, tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._time

    def timestamp(self) -> float:
        with self._lock:
            return self._time.timestamp()

    def set_time(self, new_time: datetime) -> None:
        """Jump to a specific time."""
        with self._lock:
            if new_time.tzinfo is None:
                new_time = new_time.replace(tzinfo=timezone.utc)
            self._time = new_time

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Move time forward.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (minutes, hours, ...)
        """
        with self._lock:
            self._time = self._time + timedelta(seconds=seconds, **kwargs)


# ============================================================
# CLOCK FACTORY
# ============================================================

class ClockFactory:
    """Holds the process-wide default clock."""

    _instance: Optional[ClockProtocol] = None
    _lock = threading.Lock()

    @classmethod
    def get_clock(cls) -> ClockProtocol:
        with cls._lock:
            if cls._instance is None:
                cls._instance = SystemClock()
            return cls._instance

    @classmethod
    def set_clock(cls, clock: ClockProtocol) -> None:
        with cls._lock:
            cls._instance = clock

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = SystemClock()

    @classmethod
    @contextmanager
    def use_mock(
        cls,
        initial_time: Optional[datetime] = None,
    ) -> Generator[MockClock, None, None]:
        """Temporarily install a MockClock as the default."""
        original = cls._instance
        mock = MockClock(initial_time)
        cls.set_clock(mock)
        try:
            yield mock
        finally:
            cls._instance = original


# ============================================================
# TIMESTAMP UTILITIES
# ============================================================

def to_iso8601(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO 8601 string (None passes through)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def from_iso8601(iso_string: str) -> datetime:
    """Parse an ISO 8601 string, accepting a trailing 'Z'."""
    if iso_string.endswith("Z"):
        iso_string = iso_string[:-1] + "+00:00"
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def now_utc() -> datetime:
    """Current UTC time from the default clock."""
    return ClockFactory.get_clock().now()


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ClockFactory",
    "to_iso8601",
    "from_iso8601",
    "now_utc",
]
