"""Ledger state models: Transaction records and read-only snapshots."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict


class TransactionKind(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"


# Sign of each kind's effect on cash.
CASH_DIRECTION: dict[TransactionKind, int] = {
    TransactionKind.DEPOSIT: 1,
    TransactionKind.SELL: 1,
    TransactionKind.WITHDRAW: -1,
    TransactionKind.BUY: -1,
}


class Transaction(BaseModel):
    """Single settled cash or asset movement. Created once by the ledger.

    For DEPOSIT/WITHDRAW the symbol is the currency tag and ``unit_price`` is 1.
    """

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    kind: TransactionKind
    symbol: str
    unit_price: Decimal
    quantity: Decimal
    total: Decimal  # unit_price * quantity, always non-negative
    timestamp: datetime
    destination_ref: str | None = None  # Withdrawals only; audit metadata

    @property
    def signed_total(self) -> Decimal:
        """Cash effect of this transaction: positive for inflows. Never rounded."""
        if CASH_DIRECTION[self.kind] < 0:
            return self.total.copy_negate()
        return self.total


class LedgerSnapshot(BaseModel):
    """Cash, holdings (symbol -> quantity) and history at one point in time.

    History is newest-first. The snapshot holds copies; mutating it never
    touches the live ledger.
    """

    model_config = ConfigDict(frozen=True)

    cash: Decimal
    holdings: dict[str, Decimal]
    history: tuple[Transaction, ...] = ()
