"""Trading session: the explicit context object owning one ledger.

A session bundles the ledger, the activity log, the oracle, the optional
price source and the scheduler for the lifetime of one user session, and
tears them down together. Use it as an async context manager::

    async with TradingSession(SessionConfig()) as session:
        session.start()
        ...
        print(session.report())
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from models.config import SessionConfig
from models.ledger import LedgerSnapshot
from models.outcome import CashMovementResult
from models.report import ReportSnapshot
from oracle.base import PriceSource, SignalOracle
from oracle.price import BinancePriceSource
from oracle.registry import create_oracle
from simulation.accounting import build_report
from simulation.errors import TradingError
from simulation.ledger import Ledger
from simulation.scheduler import SchedulerState, TradingCycleScheduler
from simulation.sim_logging import ActivityLog

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TradingSession:
    """Owns the ledger and everything that reads or mutates it.

    *oracle* and *price_source* default to what ``config.oracle`` describes;
    pass them explicitly to inject fakes. Deposits and withdrawals are not
    gated by an in-flight trading cycle.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        oracle: SignalOracle | None = None,
        price_source: PriceSource | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or SessionConfig()
        oracle_config = self._config.oracle

        if price_source is None and oracle_config.use_exchange_prices:
            price_source = BinancePriceSource(
                base_url=oracle_config.exchange_base_url,
                timeout=oracle_config.request_timeout_seconds,
            )

        self.ledger = Ledger(self._config.ledger, clock=clock)
        self.activity_log = ActivityLog(self._config.scheduler.activity_log_size, clock=clock)
        self.oracle = oracle or create_oracle(oracle_config)
        self.price_source = price_source
        self.scheduler = TradingCycleScheduler(
            self.ledger,
            self.oracle,
            self._config.scheduler,
            activity_log=self.activity_log,
            price_source=price_source,
            rng=rng,
        )
        self._opened = False
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TradingSession:
        self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def open(self) -> None:
        """Apply the configured initial deposit, once."""
        if self._opened:
            return
        self._opened = True
        if self._config.initial_deposit is not None:
            self.deposit(self._config.initial_deposit)
        logger.info(
            "Session opened: cash %s, sizing %s, fraction %s.",
            self.ledger.cash,
            self.ledger.sizing_mode.value,
            self.ledger.fixed_fraction,
        )

    async def close(self, cancel_in_flight: bool = False) -> None:
        """Stop the scheduler, drain cycles and release oracle resources."""
        if self._closed:
            return
        self._closed = True
        await self.scheduler.aclose(cancel_in_flight=cancel_in_flight)
        await self.oracle.aclose()
        if self.price_source is not None:
            await self.price_source.aclose()
        logger.info("Session closed after %d cycle(s).", self.scheduler.cycles_run)

    # ------------------------------------------------------------------
    # Scheduler control
    # ------------------------------------------------------------------

    def start(self) -> bool:
        return self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    @property
    def state(self) -> SchedulerState:
        return self.scheduler.state

    @property
    def status(self) -> str:
        """Current human-readable action line."""
        return self.activity_log.status

    # ------------------------------------------------------------------
    # User cash actions
    # ------------------------------------------------------------------

    def deposit(self, amount: Decimal | float | int | str) -> CashMovementResult:
        """Deposit *amount*; rejected with a reason instead of raising."""
        try:
            transaction = self.ledger.deposit(amount)
        except TradingError as exc:
            self.activity_log.record(f"Deposit rejected: {exc}", logging.WARNING)
            return CashMovementResult(status="rejected", message=str(exc))

        message = f"Deposited {transaction.total:.2f} {transaction.symbol}."
        self.activity_log.record(message)
        return CashMovementResult(status="accepted", transaction=transaction, message=message)

    def withdraw(
        self,
        amount: Decimal | float | int | str,
        destination_ref: str | None = None,
    ) -> CashMovementResult:
        """Withdraw *amount* to *destination_ref*; rejected with a reason instead of raising."""
        try:
            transaction = self.ledger.withdraw(amount, destination_ref)
        except TradingError as exc:
            self.activity_log.record(f"Withdrawal rejected: {exc}", logging.WARNING)
            return CashMovementResult(status="rejected", message=str(exc))

        message = f"Withdrew {transaction.total:.2f} {transaction.symbol}."
        if destination_ref:
            message = f"Withdrew {transaction.total:.2f} {transaction.symbol} to {destination_ref}."
        self.activity_log.record(message)
        return CashMovementResult(status="accepted", transaction=transaction, message=message)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        return self.ledger.snapshot()

    def report(self) -> ReportSnapshot:
        return build_report(self.ledger.snapshot())
