"""Accounting and reporting over a ledger's transaction history.

All functions here are pure: they read a history or a snapshot and return
derived figures, so they are safe to call at any time and any frequency.

Net worth is cash only. Open positions are not marked to market, so P&L
under- or overstates performance while positions are open. The explicit
``position_values``/``book_value`` helpers are available for callers that
have prices, but they never feed into ``net_worth`` or ``profit_and_loss``.
"""

from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Iterable, Mapping

from models.ledger import LedgerSnapshot, Transaction, TransactionKind
from models.report import ReportSnapshot
from simulation.ledger import EXACT_CONTEXT

_ZERO = Decimal("0")


def _sum_kind(history: Iterable[Transaction], kind: TransactionKind) -> Decimal:
    with localcontext(EXACT_CONTEXT):
        return sum((t.total for t in history if t.kind is kind), _ZERO)


def total_deposits(history: Iterable[Transaction]) -> Decimal:
    return _sum_kind(history, TransactionKind.DEPOSIT)


def total_withdrawals(history: Iterable[Transaction]) -> Decimal:
    return _sum_kind(history, TransactionKind.WITHDRAW)


def net_worth(cash: Decimal) -> Decimal:
    """Cash balance; holdings are excluded (no mark-to-market)."""
    return cash


def profit_and_loss(cash: Decimal, history: Iterable[Transaction]) -> Decimal:
    """``(net_worth + withdrawals) - deposits``."""
    history = tuple(history)
    with localcontext(EXACT_CONTEXT):
        return (net_worth(cash) + total_withdrawals(history)) - total_deposits(history)


def open_positions(holdings: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Holdings with a strictly positive quantity."""
    return {symbol: qty for symbol, qty in holdings.items() if qty > 0}


def build_report(snapshot: LedgerSnapshot) -> ReportSnapshot:
    """Derive the reporting snapshot from a ledger snapshot."""
    return ReportSnapshot(
        total_deposits=total_deposits(snapshot.history),
        total_withdrawals=total_withdrawals(snapshot.history),
        net_worth=net_worth(snapshot.cash),
        profit_and_loss=profit_and_loss(snapshot.cash, snapshot.history),
        open_positions=open_positions(snapshot.holdings),
    )


# ------------------------------------------------------------------
# Mark-to-market helpers (not part of net worth)
# ------------------------------------------------------------------

def position_values(
    holdings: Mapping[str, Decimal],
    prices: Mapping[str, Decimal],
) -> dict[str, Decimal]:
    """Per-position market value; symbols without a price are valued at 0."""
    with localcontext(EXACT_CONTEXT):
        return {
            symbol: qty * prices.get(symbol, _ZERO)
            for symbol, qty in open_positions(holdings).items()
        }


def book_value(snapshot: LedgerSnapshot, prices: Mapping[str, Decimal]) -> Decimal:
    """Cash plus open positions valued at *prices*."""
    values = position_values(snapshot.holdings, prices).values()
    with localcontext(EXACT_CONTEXT):
        return snapshot.cash + sum(values, _ZERO)
