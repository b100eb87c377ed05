"""
Core Module Tests.

============================================================
PURPOSE
============================================================
Tests for the clock and the exception hierarchy.

============================================================
"""

from datetime import datetime, timezone

import pytest

from core.clock import ClockFactory, MockClock, SystemClock, from_iso8601, now_utc, to_iso8601
from core.exceptions import (
    CancellationError,
    ErrorClassification,
    MissingConfigError,
    Severity,
    StrategyError,
    TradingException,
    classify_exception,
    wrap_exception,
)


# ============================================================
# CLOCK TESTS
# ============================================================

class TestClock:
    """Tests for the clock abstraction."""

    def test_mock_clock_advance(self):
        """Test MockClock only moves when told to."""
        clock = MockClock(datetime(2020, 1, 1, tzinfo=timezone.utc))

        clock.advance(90)
        clock.advance(minutes=1)

        assert clock.now() == datetime(2020, 1, 1, 0, 2, 30, tzinfo=timezone.utc)

    def test_age_seconds(self):
        """Test age is measured against the clock."""
        clock = MockClock()
        start = clock.now()
        clock.advance(3)

        assert clock.age_seconds(start) == 3.0
        assert clock.age_seconds(None) is None

    def test_use_mock_restores_default(self):
        """Test use_mock installs and then removes a mock clock."""
        with ClockFactory.use_mock(datetime(2021, 5, 1, tzinfo=timezone.utc)) as clock:
            assert ClockFactory.get_clock() is clock
            assert now_utc() == datetime(2021, 5, 1, tzinfo=timezone.utc)

        assert not isinstance(ClockFactory.get_clock(), MockClock)

    def test_system_clock_is_utc(self):
        """Test the system clock is timezone-aware UTC."""
        assert SystemClock().now().tzinfo == timezone.utc

    def test_iso8601(self):
        """Test parsing exchange timestamps with a Z suffix."""
        parsed = from_iso8601("2015-11-14T20:46:03.511254Z")

        assert parsed.tzinfo == timezone.utc
        assert parsed.microsecond == 511254
        assert to_iso8601(parsed) == "2015-11-14T20:46:03.511254+00:00"
        assert to_iso8601(None) is None


# ============================================================
# EXCEPTION TESTS
# ============================================================

class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_missing_config(self):
        """Test MissingConfigError is a non-recoverable config error."""
        error = MissingConfigError("client")

        assert error.context["config_key"] == "client"
        assert error.is_recoverable is False
        assert error.severity == Severity.HIGH

    def test_to_dict(self):
        """Test structured serialization."""
        error = CancellationError("cancel failed", order_id="abc", cause=ValueError("x"))

        data = error.to_dict()

        assert data["type"] == "CancellationError"
        assert data["context"]["order_id"] == "abc"
        assert data["context"]["cause_type"] == "ValueError"
        assert data["cause"] == "x"

    def test_wrap_exception(self):
        """Test wrapping foreign exceptions."""
        cause = RuntimeError("boom")

        wrapped = wrap_exception(cause, StrategyError, run_number=4)

        assert isinstance(wrapped, StrategyError)
        assert wrapped.cause is cause
        assert wrapped.context["run_number"] == 4
        assert wrap_exception(wrapped, StrategyError) is wrapped

    @pytest.mark.parametrize("exc,expected", [
        (ConnectionError(), ErrorClassification.TRANSIENT),
        (KeyboardInterrupt(), ErrorClassification.NON_RECOVERABLE),
        (ValueError(), ErrorClassification.RECOVERABLE),
        (TradingException("x", classification=ErrorClassification.NON_RECOVERABLE),
         ErrorClassification.NON_RECOVERABLE),
    ])
    def test_classify_exception(self, exc, expected):
        """Test exception classification."""
        assert classify_exception(exc) == expected
