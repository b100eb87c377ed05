"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Exception hierarchy for the trading bot core.

- Clear split between fatal configuration errors and
  recoverable runtime errors
- Context dictionary for structured logging

============================================================
EXCEPTION HIERARCHY
============================================================
TradingException (base)
├── ConfigurationError
│   ├── MissingConfigError
│   └── InvalidConfigError
├── DataError
│   └── FeedError
└── ExecutionError
    ├── StrategyError
    └── CancellationError

Exchange transport/API failures are raised as
exchange_client.errors.ExchangeException.

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorClassification(Enum):
    """Classification of error recoverability."""

    RECOVERABLE = "recoverable"
    """Error can be recovered from automatically."""

    TRANSIENT = "transient"
    """Temporary error, retry may succeed."""

    NON_RECOVERABLE = "non_recoverable"
    """Permanent error, requires intervention."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class TradingException(Exception):
    """
    Base exception for all bot errors.

    Carries severity, classification and a context dict so
    callers can log a structured record.
    """

    default_severity: Severity = Severity.MEDIUM
    default_classification: ErrorClassification = ErrorClassification.RECOVERABLE

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        classification: Optional[ErrorClassification] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.classification = classification or self.default_classification
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    @property
    def is_recoverable(self) -> bool:
        return self.classification in (
            ErrorClassification.RECOVERABLE,
            ErrorClassification.TRANSIENT,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "classification": self.classification.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(TradingException):
    """Error in configuration. Raised at construction, never deferred."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.NON_RECOVERABLE

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if config_key:
            context["config_key"] = config_key
        if actual_value is not None:
            context["actual_value"] = str(actual_value)[:100]

        super().__init__(message, context=context, **kwargs)


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"Missing required configuration: {key}",
            config_key=key,
        )


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for {key}: {reason}",
            config_key=key,
            actual_value=value,
            context={"reason": reason},
        )


# ============================================================
# DATA ERRORS
# ============================================================

class DataError(TradingException):
    """Base class for market data errors."""

    default_classification = ErrorClassification.TRANSIENT


class FeedError(DataError):
    """Live market-data feed is unavailable or not synchronized."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if url:
            context["url"] = url
        super().__init__(message, context=context, **kwargs)


# ============================================================
# EXECUTION ERRORS
# ============================================================

class ExecutionError(TradingException):
    """Base class for strategy execution and order management errors."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.TRANSIENT


class StrategyError(ExecutionError):
    """A strategy invocation failed. Contained by the scheduler."""

    default_severity = Severity.MEDIUM

    def __init__(self, message: str, run_number: Optional[int] = None, **kwargs):
        context = kwargs.pop("context", {})
        if run_number is not None:
            context["run_number"] = run_number
        super().__init__(message, context=context, **kwargs)


class CancellationError(ExecutionError):
    """Cancel request failed."""

    def __init__(self, message: str, order_id: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        context["order_id"] = order_id or "ALL"
        super().__init__(message, context=context, **kwargs)


# ============================================================
# EXCEPTION UTILITIES
# ============================================================

def classify_exception(exc: BaseException) -> ErrorClassification:
    """Classify an exception for error handling."""
    if isinstance(exc, TradingException):
        return exc.classification

    if isinstance(exc, (ConnectionError, TimeoutError, OSError)):
        return ErrorClassification.TRANSIENT

    if isinstance(exc, (SystemExit, KeyboardInterrupt, MemoryError)):
        return ErrorClassification.NON_RECOVERABLE

    return ErrorClassification.RECOVERABLE


def wrap_exception(
    exc: BaseException,
    wrapper_class: type = TradingException,
    message: Optional[str] = None,
    **kwargs,
) -> TradingException:
    """Wrap a foreign exception in a TradingException."""
    if isinstance(exc, wrapper_class):
        return exc
    msg = message or f"{type(exc).__name__}: {exc}"
    return wrapper_class(msg, cause=exc, **kwargs)


__all__ = [
    "Severity",
    "ErrorClassification",
    "TradingException",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "DataError",
    "FeedError",
    "ExecutionError",
    "StrategyError",
    "CancellationError",
    "classify_exception",
    "wrap_exception",
]
