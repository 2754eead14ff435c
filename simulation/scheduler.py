"""Trading-cycle scheduler: the periodic, non-overlapping trading loop.

Lifecycle:
    1. ``start()`` refuses an idle ledger, otherwise fires one cycle at once
       and arms a timer task that ticks every ``interval_seconds``.
    2. Each tick runs one cycle unless another is still in flight, in which
       case the tick is dropped (not queued):
        a. Pick a symbol uniformly from the watchlist.
        b. Query the oracle (may suspend), optionally override the price.
        c. Settle the signal on the ledger.
        d. Record an activity line.
    3. ``stop()`` cancels the timer only; an in-flight cycle finishes.

The busy flag is checked and set before the first ``await`` of a cycle, so
it is the single mutual-exclusion primitive on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from enum import Enum

from models.config import SchedulerConfig
from models.outcome import CycleReport, CycleStatus, SettlementOutcome, SettlementStatus
from models.signal import Signal
from oracle.base import PriceSource, SignalOracle
from simulation.errors import OracleFailure
from simulation.ledger import Ledger
from simulation.sim_logging import ActivityLog

logger = logging.getLogger(__name__)

_WARNING_STATUSES = {
    SettlementStatus.INVALID_PRICE,
    SettlementStatus.INSUFFICIENT_FUNDS,
}


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    CYCLE_IN_FLIGHT = "cycle_in_flight"


class TradingCycleScheduler:
    """Drives trading cycles against one ledger on the running event loop."""

    def __init__(
        self,
        ledger: Ledger,
        oracle: SignalOracle,
        config: SchedulerConfig | None = None,
        activity_log: ActivityLog | None = None,
        price_source: PriceSource | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._ledger = ledger
        self._oracle = oracle
        self._config = config or SchedulerConfig()
        if activity_log is None:
            activity_log = ActivityLog(self._config.activity_log_size)
        self._activity = activity_log
        self._price_source = price_source
        self._rng = rng or random.Random()

        self._running = False
        self._busy = False
        self._timer_task: asyncio.Task | None = None
        self._cycle_tasks: set[asyncio.Task] = set()
        self._next_cycle_idx = 0

        self.cycles_run = 0
        self.cycles_failed = 0
        self.cycles_skipped = 0
        self.last_report: CycleReport | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        if not self._running:
            return SchedulerState.STOPPED
        if self._busy:
            return SchedulerState.CYCLE_IN_FLIGHT
        return SchedulerState.RUNNING

    @property
    def running(self) -> bool:
        return self._running

    @property
    def busy(self) -> bool:
        """True while a cycle is in flight, even after ``stop()``."""
        return self._busy

    # ------------------------------------------------------------------
    # Start / stop
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Start trading. Must be called from within a running event loop.

        Returns ``False`` (and stays stopped) when the ledger has no cash, no
        open positions and has never been funded.
        """
        if self._running:
            return True

        if self._ledger.is_idle():
            self._activity.record(
                "Insufficient funds: deposit cash before starting the bot.",
                logging.WARNING,
            )
            self._activity.set_status("Insufficient funds.")
            return False

        self._running = True
        self._activity.record("Bot started. AI trading algorithm active.")
        self.tick()
        self._timer_task = asyncio.create_task(self._timer_loop(), name="trading-cycle-timer")
        return True

    def stop(self) -> None:
        """Cancel future ticks. An in-flight cycle is left to finish."""
        if not self._running:
            return
        self._running = False
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        self._activity.record("Bot paused.")
        self._activity.set_status("Bot paused.")

    async def aclose(self, cancel_in_flight: bool = False) -> None:
        """Stop, then wait for (or cancel) cycles still in flight."""
        self.stop()
        pending = list(self._cycle_tasks)
        if cancel_in_flight:
            for task in pending:
                task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Ticks and cycles
    # ------------------------------------------------------------------

    def tick(self) -> asyncio.Task | None:
        """Launch one cycle as a task, or drop the tick if one is in flight."""
        if self._busy:
            self.cycles_skipped += 1
            logger.debug("Cycle in flight; tick dropped.")
            return None
        task = asyncio.create_task(self.run_cycle())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)
        return task

    async def _timer_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._config.interval_seconds)
            if self._running:
                self.tick()

    async def run_cycle(self) -> CycleReport | None:
        """Run a single trading cycle.

        Returns ``None`` when another cycle is already in flight. Any error
        inside the cycle is caught here, logged and reported; it never stops
        the scheduler.
        """
        if self._busy:
            self.cycles_skipped += 1
            logger.debug("Cycle in flight; run_cycle skipped.")
            return None
        self._busy = True

        cycle_idx = self._next_cycle_idx
        self._next_cycle_idx += 1
        started_at = datetime.now(timezone.utc)
        t0 = time.monotonic()
        symbol = self._rng.choice(self._config.watchlist)
        signal: Signal | None = None

        try:
            self._activity.set_status(f"Analysing market: {symbol}...")
            signal = await self._query_oracle(symbol)
            signal = await self._apply_price_override(signal)

            self._activity.set_status(
                f"Decision for {symbol}: {signal.recommendation.value} "
                f"({signal.risk_level.value})"
            )
            outcome = self._ledger.settle_signal(signal)
            self._record_outcome(outcome)

            self.cycles_run += 1
            report = CycleReport(
                cycle_idx=cycle_idx,
                symbol=symbol,
                status=CycleStatus.SETTLED,
                signal=signal,
                outcome=outcome,
                started_at=started_at,
                elapsed_seconds=time.monotonic() - t0,
            )
        except Exception as exc:
            self.cycles_failed += 1
            msg = f"Error in bot cycle {cycle_idx} for {symbol}: {exc}"
            logger.exception(msg)
            self._activity.record(msg, logging.ERROR)
            report = CycleReport(
                cycle_idx=cycle_idx,
                symbol=symbol,
                status=CycleStatus.ORACLE_FAILURE,
                signal=signal,
                error=str(exc),
                started_at=started_at,
                elapsed_seconds=time.monotonic() - t0,
            )
        finally:
            self._busy = False
            if self._running:
                self._activity.set_status("Scanning for the next opportunity...")

        self.last_report = report
        logger.info(
            "Cycle %d (%s): %s in %.1fs.",
            cycle_idx,
            symbol,
            report.outcome.status.value if report.outcome else report.status.value,
            report.elapsed_seconds,
        )
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _query_oracle(self, symbol: str) -> Signal:
        timeout = self._config.oracle_timeout_seconds
        if timeout is None:
            return await self._oracle.get_signal(symbol)
        try:
            return await asyncio.wait_for(self._oracle.get_signal(symbol), timeout)
        except asyncio.TimeoutError as exc:
            raise OracleFailure(f"Oracle timed out after {timeout}s for {symbol}.") from exc

    async def _apply_price_override(self, signal: Signal) -> Signal:
        """Replace the signal price with the price source's, when it has one."""
        if self._price_source is None:
            return signal
        try:
            price = await self._price_source.get_price(signal.symbol)
        except Exception as exc:
            logger.warning("Price lookup failed for %s: %s", signal.symbol, exc)
            return signal
        if price is None or price <= 0:
            return signal
        return signal.model_copy(update={"current_price": price})

    def _record_outcome(self, outcome: SettlementOutcome) -> None:
        level = logging.WARNING if outcome.status in _WARNING_STATUSES else logging.INFO
        prefix = "ORDER EXECUTED: " if outcome.executed else ""
        self._activity.record(f"{prefix}{outcome.message}", level)
