"""Result models: SettlementOutcome, CashMovementResult, CycleReport."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel

from models.ledger import Transaction
from models.signal import Signal


class SettlementStatus(str, Enum):
    """Which branch of signal settlement executed."""

    BOUGHT = "bought"
    SOLD = "sold"
    HOLD = "hold"
    INVALID_PRICE = "invalid_price"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NO_QUANTITY = "no_quantity"  # Integral sizing rounded down to zero units
    NO_POSITION = "no_position"  # Informational: sell signal, nothing held


class SettlementOutcome(BaseModel):
    """Ledger response to ``settle_signal``.

    ``transaction`` is set only for BOUGHT and SOLD; every other status leaves
    the ledger untouched.
    """

    status: SettlementStatus
    symbol: str
    transaction: Transaction | None = None
    message: str = ""

    @property
    def executed(self) -> bool:
        return self.transaction is not None


class CashMovementResult(BaseModel):
    """Session response to a user deposit or withdrawal.

    When rejected, ``message`` names the specific reason.
    """

    status: Literal["accepted", "rejected"]
    transaction: Transaction | None = None  # Set only when accepted
    message: str = ""


class CycleStatus(str, Enum):
    SETTLED = "settled"
    ORACLE_FAILURE = "oracle_failure"


class CycleReport(BaseModel):
    """Audit record for one completed trading cycle."""

    cycle_idx: int
    symbol: str
    status: CycleStatus
    signal: Signal | None = None
    outcome: SettlementOutcome | None = None
    error: str | None = None
    started_at: datetime
    elapsed_seconds: float = 0.0
