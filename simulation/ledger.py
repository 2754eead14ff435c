"""In-memory ledger: cash, holdings and the append-only transaction log.

The ledger validates every operation before mutating anything, so an
operation either fully succeeds (and records exactly one transaction) or
leaves cash, holdings and history untouched.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import (
    MAX_EMAX,
    MAX_PREC,
    MIN_EMIN,
    ROUND_FLOOR,
    Context,
    Decimal,
    InvalidOperation,
    localcontext,
)
from itertools import count
from typing import Callable

from models.config import LedgerConfig, SizingMode
from models.ledger import LedgerSnapshot, Transaction, TransactionKind
from models.outcome import SettlementOutcome, SettlementStatus
from models.signal import Recommendation, Signal
from simulation.errors import InsufficientFunds, InvalidAmount, LedgerInvariantError

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_ONE = Decimal("1")

# Sums and products of finite decimals never round in this context.
# Division must not run under it: use SIZING_CONTEXT instead.
EXACT_CONTEXT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)
# Quotients round toward zero, so a sized quantity never overspends.
SIZING_CONTEXT = Context(rounding=ROUND_FLOOR)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert *value* to a finite ``Decimal``; floats go through ``str``.

    Raises ``InvalidAmount`` for non-numeric or non-finite input.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise InvalidAmount(f"Not a number: {value!r}.") from exc
    if not result.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {value!r}.")
    return result


class Ledger:
    """Stateful ledger owned by one trading session.

    Instantiate one ``Ledger`` per session. It starts empty (zero cash, no
    holdings, no history) and is mutated only through ``deposit``,
    ``withdraw`` and ``settle_signal``.
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or LedgerConfig()
        self._clock = clock
        self._cash: Decimal = _ZERO
        self._holdings: dict[str, Decimal] = {}
        # Stored oldest-first; snapshots present it newest-first.
        self._history: list[Transaction] = []
        self._seq = count(1)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def cash(self) -> Decimal:
        return self._cash

    @property
    def sizing_mode(self) -> SizingMode:
        """The quantity rounding mode applied to buy signals."""
        return self._config.sizing_mode

    @property
    def fixed_fraction(self) -> Decimal:
        return self._config.fixed_fraction

    @property
    def history_length(self) -> int:
        return len(self._history)

    def holding(self, symbol: str) -> Decimal:
        return self._holdings.get(symbol, _ZERO)

    def snapshot(self) -> LedgerSnapshot:
        """Return a copy of cash, holdings and history (newest-first)."""
        return LedgerSnapshot(
            cash=self._cash,
            holdings=dict(self._holdings),
            history=tuple(reversed(self._history)),
        )

    def has_funding_history(self) -> bool:
        """True once any deposit has ever been recorded."""
        return any(t.kind is TransactionKind.DEPOSIT for t in self._history)

    def is_idle(self) -> bool:
        """True when there is nothing to trade with: no cash, no positions, never funded."""
        has_positions = any(qty > 0 for qty in self._holdings.values())
        return self._cash <= 0 and not has_positions and not self.has_funding_history()

    # ------------------------------------------------------------------
    # Cash movements
    # ------------------------------------------------------------------

    def deposit(self, amount: Decimal | float | int | str) -> Transaction:
        """Add *amount* to cash and record a DEPOSIT.

        Raises ``InvalidAmount`` unless ``amount > 0``.
        """
        value = to_decimal(amount)
        if value <= 0:
            raise InvalidAmount(f"Deposit amount must be positive, got {value}.")

        with localcontext(EXACT_CONTEXT):
            transaction = self._record(
                TransactionKind.DEPOSIT,
                symbol=self._config.currency,
                unit_price=_ONE,
                quantity=value,
            )
            self._cash += transaction.total
        logger.debug("Deposited %s, cash now %s", value, self._cash)
        return transaction

    def withdraw(
        self,
        amount: Decimal | float | int | str,
        destination_ref: str | None = None,
    ) -> Transaction:
        """Remove *amount* from cash and record a WITHDRAW.

        *destination_ref* (e.g. a payout key) is kept on the transaction for
        audit only; no transfer is performed.

        Raises ``InvalidAmount`` unless ``amount > 0`` and
        ``InsufficientFunds`` if ``amount > cash``.
        """
        value = to_decimal(amount)
        if value <= 0:
            raise InvalidAmount(f"Withdrawal amount must be positive, got {value}.")
        if value > self._cash:
            raise InsufficientFunds(
                f"Cannot withdraw {value}: only {self._cash} available."
            )

        with localcontext(EXACT_CONTEXT):
            transaction = self._record(
                TransactionKind.WITHDRAW,
                symbol=self._config.currency,
                unit_price=_ONE,
                quantity=value,
                destination_ref=destination_ref,
            )
            self._cash -= transaction.total
        logger.debug("Withdrew %s to %r, cash now %s", value, destination_ref, self._cash)
        return transaction

    # ------------------------------------------------------------------
    # Signal settlement
    # ------------------------------------------------------------------

    def settle_signal(self, signal: Signal) -> SettlementOutcome:
        """Translate an oracle *signal* into at most one trade.

        Returns a ``SettlementOutcome`` naming the branch that executed and
        the recorded transaction, if any. Never raises for rejected trades.
        """
        symbol = signal.symbol
        price = signal.current_price

        if not price.is_finite() or price <= 0:
            return SettlementOutcome(
                status=SettlementStatus.INVALID_PRICE,
                symbol=symbol,
                message=f"Invalid price {price} for {symbol}; signal ignored.",
            )

        if signal.recommendation is Recommendation.BUY:
            return self._settle_buy(symbol, price)
        if signal.recommendation is Recommendation.SELL:
            return self._settle_sell(symbol, price)

        return SettlementOutcome(
            status=SettlementStatus.HOLD,
            symbol=symbol,
            message=f"Hold: no trade on {symbol} for now.",
        )

    def _settle_buy(self, symbol: str, price: Decimal) -> SettlementOutcome:
        with localcontext(EXACT_CONTEXT):
            return self._settle_buy_exact(symbol, price)

    def _settle_buy_exact(self, symbol: str, price: Decimal) -> SettlementOutcome:
        invest_amount = self._cash * self._config.fixed_fraction
        floor = self._config.min_cash_floor

        if self._cash < floor or invest_amount < price:
            return SettlementOutcome(
                status=SettlementStatus.INSUFFICIENT_FUNDS,
                symbol=symbol,
                message=(
                    f"Insufficient funds to buy {symbol} at {price}: "
                    f"invest amount {invest_amount:.2f}, cash {self._cash:.2f}, "
                    f"floor {floor}."
                ),
            )

        quantity = SIZING_CONTEXT.divide(invest_amount, price)
        if self._config.sizing_mode is SizingMode.INTEGRAL:
            quantity = quantity.to_integral_value(rounding=ROUND_FLOOR)
        else:
            # Bounded precision keeps cost exact and never above invest_amount.
            step = Decimal(1).scaleb(-self._config.quantity_decimals)
            quantity = quantity.quantize(step, rounding=ROUND_FLOOR)

        if quantity <= 0:
            return SettlementOutcome(
                status=SettlementStatus.NO_QUANTITY,
                symbol=symbol,
                message=f"Buy of {symbol} at {price} sizes to zero units.",
            )

        cost = quantity * price
        if cost > self._cash:
            raise LedgerInvariantError(
                f"Buy of {quantity} {symbol} costs {cost}, more than cash {self._cash}."
            )

        transaction = self._record(
            TransactionKind.BUY,
            symbol=symbol,
            unit_price=price,
            quantity=quantity,
        )
        self._cash -= transaction.total
        self._holdings[symbol] = self._holdings.get(symbol, _ZERO) + quantity
        return SettlementOutcome(
            status=SettlementStatus.BOUGHT,
            symbol=symbol,
            transaction=transaction,
            message=f"Bought {quantity}x {symbol} at {price:.2f} (cost {cost:.2f}).",
        )

    def _settle_sell(self, symbol: str, price: Decimal) -> SettlementOutcome:
        held = self._holdings.get(symbol, _ZERO)
        if held <= 0:
            return SettlementOutcome(
                status=SettlementStatus.NO_POSITION,
                symbol=symbol,
                message=f"Sell signal for {symbol}, but no position is held.",
            )

        # Partial sells are not supported: the whole position is liquidated.
        with localcontext(EXACT_CONTEXT):
            transaction = self._record(
                TransactionKind.SELL,
                symbol=symbol,
                unit_price=price,
                quantity=held,
            )
            self._cash += transaction.total
        self._holdings[symbol] = _ZERO
        return SettlementOutcome(
            status=SettlementStatus.SOLD,
            symbol=symbol,
            transaction=transaction,
            message=(
                f"Sold {held}x {symbol} at {price:.2f} "
                f"(proceeds {transaction.total:.2f})."
            ),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _record(
        self,
        kind: TransactionKind,
        symbol: str,
        unit_price: Decimal,
        quantity: Decimal,
        destination_ref: str | None = None,
    ) -> Transaction:
        """Build and append a transaction; callers mutate cash after this returns.

        Must run under ``EXACT_CONTEXT`` so ``total`` is not rounded.
        """
        timestamp = self._clock()
        seq = next(self._seq)
        transaction = Transaction(
            transaction_id=f"{int(timestamp.timestamp() * 1000)}-{seq:06d}",
            kind=kind,
            symbol=symbol,
            unit_price=unit_price,
            quantity=quantity,
            total=unit_price * quantity,
            timestamp=timestamp,
            destination_ref=destination_ref,
        )
        self._history.append(transaction)
        return transaction
