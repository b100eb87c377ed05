"""
Trading Bot - Execution Scheduler.

============================================================
PURPOSE
============================================================
Runs the user strategy on a timer, never more than one at once.

STATE MACHINE:
    STOPPED -> STARTING -> TRADING -> STOPPING -> STOPPED

- start/stop are serialized by a single asyncio.Lock
- a tick while a run is in flight is skipped, never queued
- strategy failures are logged and counted, never propagated
- stop(cancel=True) always halts the timer, even when the
  cancel-all request fails

============================================================
"""

import asyncio
import inspect
import logging
import random
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from core.clock import ClockFactory, ClockProtocol, to_iso8601
from core.exceptions import StrategyError, TradingException, wrap_exception
from .config import ScheduleConfig


logger = logging.getLogger(__name__)


StrategyCallable = Callable[[], Any]
CancelAllCallable = Callable[[], Awaitable[Any]]


# ============================================================
# STATE
# ============================================================

class SchedulerState(Enum):
    """Lifecycle states of the scheduler."""

    STOPPED = "STOPPED"
    STARTING = "STARTING"
    TRADING = "TRADING"
    STOPPING = "STOPPING"


@dataclass
class SchedulerStats:
    """Counters for status reporting. Not reset between sessions."""

    ticks: int = 0
    runs: int = 0
    skipped: int = 0
    failures: int = 0
    last_run_started: Optional[datetime] = None
    last_run_finished: Optional[datetime] = None
    last_error: Optional[TradingException] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticks": self.ticks,
            "runs": self.runs,
            "skipped": self.skipped,
            "failures": self.failures,
            "last_run_started": to_iso8601(self.last_run_started),
            "last_run_finished": to_iso8601(self.last_run_finished),
            "last_error": str(self.last_error) if self.last_error else None,
            "last_error_recoverable": self.last_error.is_recoverable if self.last_error else None,
        }


# ============================================================
# EXECUTION SCHEDULER
# ============================================================

class ExecutionScheduler:
    """
    Periodic, single-flight strategy runner.

    The strategy is a zero-argument callable; its result is
    awaited when it is awaitable.
    """

    def __init__(
        self,
        strategy: StrategyCallable,
        log: Optional[logging.Logger] = None,
        clock: Optional[ClockProtocol] = None,
        rng: Optional[random.Random] = None,
    ):
        self._strategy = strategy
        self._log = log or logger
        self._clock = clock or ClockFactory.get_clock()
        self._rng = rng or random.Random()

        self._lock = asyncio.Lock()
        self._state = SchedulerState.STOPPED
        self._config: Optional[ScheduleConfig] = None

        self._timer_task: Optional[asyncio.Task] = None
        self._run_task: Optional[asyncio.Task] = None
        self._busy = False

        self._session_runs = 0
        self._stats = SchedulerStats()

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_trading(self) -> bool:
        """True while the timer is owned, including while stopping."""
        return self._timer_task is not None

    @property
    def is_busy(self) -> bool:
        """True while a strategy invocation is in flight."""
        return self._busy

    @property
    def stats(self) -> SchedulerStats:
        return self._stats

    @property
    def config(self) -> Optional[ScheduleConfig]:
        return self._config

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def start(self, config: Optional[ScheduleConfig] = None) -> bool:
        """
        Start the timer.

        Returns:
            True if a new session started, False if already trading

        Raises:
            InvalidConfigError: If the schedule is invalid
        """
        config = config or ScheduleConfig()

        async with self._lock:
            if self.is_trading:
                self._log.debug("Already trading, ignoring start")
                return False

            config.raise_if_invalid()

            self._state = SchedulerState.STARTING
            self._config = config
            self._session_runs = 0
            self._timer_task = asyncio.create_task(self._run_timer(config))
            self._state = SchedulerState.TRADING

        self._log.info(f"Started trading ({_describe(config)})")
        return True

    async def stop(
        self,
        cancel: bool = False,
        cancel_orders: Optional[CancelAllCallable] = None,
    ) -> bool:
        """
        Stop the timer.

        With `cancel`, `cancel_orders` is awaited first. The timer
        is torn down whether or not it succeeds; its error is then
        re-raised. An in-flight strategy run is left to finish.

        Returns:
            True if a session was stopped, False if not trading
        """
        if cancel and cancel_orders is None:
            raise ValueError("cancel_orders is required when cancel=True")

        async with self._lock:
            if not self.is_trading:
                self._log.debug("Not trading, ignoring stop")
                return False

            self._state = SchedulerState.STOPPING
            try:
                if cancel:
                    self._log.info("Cancelling all open orders before stopping")
                    await cancel_orders()
            finally:
                await self._teardown_timer()
                self._state = SchedulerState.STOPPED
                self._log.info("Stopped trading")

        return True

    async def wait_idle(self) -> None:
        """
        Wait for the in-flight strategy run, if any.

        Returns at once when called from inside that run.
        """
        task = self._run_task
        if task is asyncio.current_task():
            return
        if task is not None and not task.done():
            await asyncio.wait([task])

    async def _teardown_timer(self) -> None:
        task = self._timer_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._timer_task = None

    # --------------------------------------------------------
    # TIMER
    # --------------------------------------------------------

    async def _run_timer(self, config: ScheduleConfig) -> None:
        while True:
            await asyncio.sleep(config.next_interval(self._rng))
            self.tick()

            if config.max_runs is not None and self._session_runs >= config.max_runs:
                self._log.info(f"Reached {config.max_runs} runs, stopping")
                break

        if self._timer_task is asyncio.current_task():
            self._timer_task = None
            self._state = SchedulerState.STOPPED

    def tick(self) -> bool:
        """
        Dispatch the strategy unless a run is still in flight.

        Returns:
            True if a run was dispatched, False if skipped
        """
        self._stats.ticks += 1

        if self._busy:
            self._stats.skipped += 1
            self._log.info("The last trade execution is still busy. Skipping this round")
            return False

        self._busy = True
        self._session_runs += 1
        self._stats.runs += 1
        self._run_task = asyncio.create_task(self._execute(self._stats.runs))
        return True

    async def _execute(self, run_number: int) -> None:
        self._stats.last_run_started = self._clock.now()
        try:
            result = self._strategy()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._stats.failures += 1
            self._stats.last_error = wrap_exception(e, StrategyError, run_number=run_number)
            self._log.error(f"Strategy run {run_number} failed: {e}", exc_info=True)
        finally:
            self._stats.last_run_finished = self._clock.now()
            self._busy = False

    # --------------------------------------------------------
    # STATUS
    # --------------------------------------------------------

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "is_trading": self.is_trading,
            "busy": self._busy,
            "config": asdict(self._config) if self._config else None,
            "stats": self._stats.to_dict(),
        }


def _describe(config: ScheduleConfig) -> str:
    if config.is_randomized:
        cadence = f"every {config.min_interval_seconds}-{config.max_interval_seconds}s"
    else:
        cadence = f"every {config.interval_seconds}s"
    if config.max_runs is not None:
        cadence += f", max {config.max_runs} runs"
    return cadence
