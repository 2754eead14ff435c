"""Data models for the paper-trading simulation engine.

The ledger, scheduler, accounting and oracle adapters all import from models.
"""

from models.config import (
    DEFAULT_WATCHLIST,
    LedgerConfig,
    OracleConfig,
    SchedulerConfig,
    SessionConfig,
    SizingMode,
)
from models.ledger import CASH_DIRECTION, LedgerSnapshot, Transaction, TransactionKind
from models.outcome import (
    CashMovementResult,
    CycleReport,
    CycleStatus,
    SettlementOutcome,
    SettlementStatus,
)
from models.report import ReportSnapshot
from models.signal import Recommendation, RiskLevel, Signal, SignalResponse

__all__ = [
    # config
    "DEFAULT_WATCHLIST",
    "LedgerConfig",
    "OracleConfig",
    "SchedulerConfig",
    "SessionConfig",
    "SizingMode",
    # ledger
    "CASH_DIRECTION",
    "LedgerSnapshot",
    "Transaction",
    "TransactionKind",
    # outcome
    "CashMovementResult",
    "CycleReport",
    "CycleStatus",
    "SettlementOutcome",
    "SettlementStatus",
    # report
    "ReportSnapshot",
    # signal
    "Recommendation",
    "RiskLevel",
    "Signal",
    "SignalResponse",
]
