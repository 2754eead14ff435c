"""
Tests for the in-memory ledger.

Tests verify:
  1. Deposits and withdrawals (validation, transactions, audit metadata)
  2. Buy settlement in integral and fractional sizing modes
  3. Sell settlement liquidates the whole position
  4. Hold / invalid price / no position leave the ledger untouched
  5. Solvency and conservation over random operation sequences
  6. Snapshots never expose live state
"""

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal, localcontext

import pytest

from models.config import LedgerConfig, SizingMode
from models.ledger import TransactionKind
from models.outcome import SettlementStatus
from models.signal import Recommendation, Signal
from simulation.errors import InsufficientFunds, InvalidAmount
from simulation.ledger import EXACT_CONTEXT, Ledger


# =============================================================================
# FIXTURES
# =============================================================================


class FixedClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self):
        self.now = datetime(2025, 3, 15, 10, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def make_signal(symbol: str, price, recommendation: str) -> Signal:
    return Signal(
        symbol=symbol,
        current_price=Decimal(str(price)),
        recommendation=Recommendation(recommendation),
    )


@pytest.fixture
def ledger() -> Ledger:
    """Integral-lot ledger investing 20% per buy."""
    return Ledger(
        LedgerConfig(fixed_fraction=Decimal("0.20"), sizing_mode=SizingMode.INTEGRAL),
        clock=FixedClock(),
    )


@pytest.fixture
def fractional_ledger() -> Ledger:
    return Ledger(
        LedgerConfig(fixed_fraction=Decimal("0.20"), sizing_mode=SizingMode.FRACTIONAL),
        clock=FixedClock(),
    )


# =============================================================================
# 1. CASH MOVEMENTS
# =============================================================================


class TestCashMovements:

    def test_new_ledger_is_empty(self):
        ledger = Ledger()
        snap = ledger.snapshot()
        assert snap.cash == 0
        assert snap.holdings == {}
        assert snap.history == ()
        assert ledger.is_idle()

    def test_deposit_adds_cash_and_records_transaction(self, ledger: Ledger):
        tx = ledger.deposit(Decimal("1000"))
        assert ledger.cash == Decimal("1000")
        assert tx.kind is TransactionKind.DEPOSIT
        assert tx.symbol == "EUR"
        assert tx.unit_price == 1
        assert tx.quantity == Decimal("1000")
        assert tx.total == Decimal("1000")
        assert ledger.history_length == 1

    @pytest.mark.parametrize("amount", [0, -1, "-0.01", "abc", float("nan"), float("inf")])
    def test_deposit_rejects_invalid_amount(self, ledger: Ledger, amount):
        with pytest.raises(InvalidAmount):
            ledger.deposit(amount)
        assert ledger.cash == 0
        assert ledger.history_length == 0

    def test_deposit_accepts_float_without_binary_noise(self, ledger: Ledger):
        ledger.deposit(0.1)
        ledger.deposit(0.2)
        assert ledger.cash == Decimal("0.3")

    def test_withdraw_removes_cash_and_keeps_destination(self, ledger: Ledger):
        ledger.deposit(500)
        tx = ledger.withdraw(Decimal("200"), destination_ref="pix-key-123")
        assert ledger.cash == Decimal("300")
        assert tx.kind is TransactionKind.WITHDRAW
        assert tx.destination_ref == "pix-key-123"
        assert tx.total == Decimal("200")

    def test_withdraw_whole_balance_is_allowed(self, ledger: Ledger):
        ledger.deposit(100)
        ledger.withdraw(100)
        assert ledger.cash == 0

    def test_withdraw_more_than_cash_is_rejected(self, ledger: Ledger):
        ledger.deposit(100)
        with pytest.raises(InsufficientFunds):
            ledger.withdraw(Decimal("100.01"))
        assert ledger.cash == Decimal("100")
        assert ledger.history_length == 1

    @pytest.mark.parametrize("amount", [0, -5])
    def test_withdraw_rejects_non_positive(self, ledger: Ledger, amount):
        ledger.deposit(100)
        with pytest.raises(InvalidAmount):
            ledger.withdraw(amount)
        assert ledger.history_length == 1

    def test_transaction_ids_are_unique(self, ledger: Ledger):
        for _ in range(20):
            ledger.deposit(1)
        ids = {t.transaction_id for t in ledger.snapshot().history}
        assert len(ids) == 20


# =============================================================================
# 2. BUY SETTLEMENT
# =============================================================================


class TestBuy:

    def test_integral_buy(self, ledger: Ledger):
        ledger.deposit(1000)
        outcome = ledger.settle_signal(make_signal("SYM", 100, "BUY"))
        assert outcome.status is SettlementStatus.BOUGHT
        assert ledger.cash == Decimal("800")
        assert ledger.holding("SYM") == 2
        assert outcome.transaction.kind is TransactionKind.BUY
        assert outcome.transaction.unit_price == Decimal("100")
        assert outcome.transaction.total == Decimal("200")

    def test_integral_buy_rounds_down(self, ledger: Ledger):
        ledger.deposit(1000)
        # invest 200 / 70 = 2.857 -> 2 units, cost 140
        ledger.settle_signal(make_signal("SYM", 70, "BUY"))
        assert ledger.holding("SYM") == 2
        assert ledger.cash == Decimal("860")

    def test_fractional_buy(self, fractional_ledger: Ledger):
        fractional_ledger.deposit(1000)
        # invest 200 / 160 = 1.25 units, cost 200
        outcome = fractional_ledger.settle_signal(make_signal("BTC", 160, "BUY"))
        assert outcome.status is SettlementStatus.BOUGHT
        assert fractional_ledger.holding("BTC") == Decimal("1.25")
        assert outcome.transaction.total == Decimal("200")
        assert fractional_ledger.cash == Decimal("800")

    def test_fractional_buy_needs_invest_amount_above_price(self, fractional_ledger: Ledger):
        fractional_ledger.deposit(1000)
        before = fractional_ledger.snapshot()

        outcome = fractional_ledger.settle_signal(make_signal("BTC", 400, "BUY"))

        assert outcome.status is SettlementStatus.INSUFFICIENT_FUNDS
        assert outcome.transaction is None
        assert fractional_ledger.snapshot() == before

    def test_sizing_mode_is_exposed(self, ledger: Ledger, fractional_ledger: Ledger):
        assert ledger.sizing_mode is SizingMode.INTEGRAL
        assert fractional_ledger.sizing_mode is SizingMode.FRACTIONAL

    def test_affordability_guard(self):
        ledger = Ledger(LedgerConfig(fixed_fraction=Decimal("0.10")))
        ledger.deposit(100)
        before = ledger.snapshot()

        outcome = ledger.settle_signal(make_signal("SYM", 50, "BUY"))

        assert outcome.status is SettlementStatus.INSUFFICIENT_FUNDS
        assert outcome.transaction is None
        assert ledger.snapshot() == before

    def test_cash_floor_blocks_buy(self):
        ledger = Ledger(
            LedgerConfig(
                fixed_fraction=Decimal("1"),
                sizing_mode=SizingMode.FRACTIONAL,
                min_cash_floor=Decimal("10"),
            )
        )
        ledger.deposit(8)
        outcome = ledger.settle_signal(make_signal("ETH", 1, "BUY"))
        assert outcome.status is SettlementStatus.INSUFFICIENT_FUNDS
        assert ledger.cash == Decimal("8")
        assert ledger.history_length == 1

    def test_repeated_buys_accumulate(self, ledger: Ledger):
        ledger.deposit(1000)
        ledger.settle_signal(make_signal("SYM", 100, "BUY"))  # 2 units, cash 800
        ledger.settle_signal(make_signal("SYM", 80, "BUY"))  # 160/80 = 2 units, cash 640
        assert ledger.holding("SYM") == 4
        assert ledger.cash == Decimal("640")


# =============================================================================
# 3. SELL SETTLEMENT
# =============================================================================


class TestSell:

    def test_sell_clears_position(self, ledger: Ledger):
        ledger.deposit(1000)
        ledger.settle_signal(make_signal("SYM", 100, "BUY"))
        cash_before = ledger.cash

        outcome = ledger.settle_signal(make_signal("SYM", 120, "SELL"))

        assert outcome.status is SettlementStatus.SOLD
        assert ledger.holding("SYM") == 0
        assert ledger.cash - cash_before == Decimal("240")
        assert outcome.transaction.quantity == 2
        assert outcome.transaction.total == Decimal("240")

    def test_sell_without_position_is_informational(self, ledger: Ledger):
        ledger.deposit(1000)
        outcome = ledger.settle_signal(make_signal("SYM", 100, "SELL"))
        assert outcome.status is SettlementStatus.NO_POSITION
        assert ledger.history_length == 1

    def test_sell_after_liquidation_is_no_position(self, ledger: Ledger):
        ledger.deposit(1000)
        ledger.settle_signal(make_signal("SYM", 100, "BUY"))
        ledger.settle_signal(make_signal("SYM", 100, "SELL"))
        outcome = ledger.settle_signal(make_signal("SYM", 100, "SELL"))
        assert outcome.status is SettlementStatus.NO_POSITION
        # Zero-quantity entry may remain present.
        assert ledger.snapshot().holdings.get("SYM", 0) == 0


# =============================================================================
# 4. NO-OP BRANCHES
# =============================================================================


class TestNoOps:

    def test_hold_changes_nothing(self, ledger: Ledger):
        ledger.deposit(1000)
        before = ledger.snapshot()
        outcome = ledger.settle_signal(make_signal("SYM", 100, "HOLD"))
        assert outcome.status is SettlementStatus.HOLD
        assert ledger.snapshot() == before

    @pytest.mark.parametrize("price", [0, -10])
    @pytest.mark.parametrize("recommendation", ["BUY", "SELL", "HOLD"])
    def test_invalid_price_is_ignored(self, ledger: Ledger, price, recommendation):
        ledger.deposit(1000)
        before = ledger.snapshot()
        outcome = ledger.settle_signal(make_signal("SYM", price, recommendation))
        assert outcome.status is SettlementStatus.INVALID_PRICE
        assert ledger.snapshot() == before


# =============================================================================
# 5. INVARIANTS
# =============================================================================


class TestInvariants:

    @pytest.mark.parametrize("mode", [SizingMode.INTEGRAL, SizingMode.FRACTIONAL])
    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_solvency_and_conservation(self, mode, seed):
        rng = random.Random(seed)
        ledger = Ledger(LedgerConfig(fixed_fraction=Decimal("0.15"), sizing_mode=mode))
        symbols = ["BTC", "ETH", "AAPL"]

        for _ in range(300):
            cash_before = ledger.cash
            length_before = ledger.history_length
            op = rng.choice(["deposit", "withdraw", "signal", "signal", "signal"])
            appended = None

            if op == "deposit":
                appended = ledger.deposit(Decimal(rng.randint(1, 500)))
            elif op == "withdraw":
                amount = Decimal(rng.randint(1, 800))
                if amount <= ledger.cash:
                    appended = ledger.withdraw(amount)
                else:
                    with pytest.raises(InsufficientFunds):
                        ledger.withdraw(amount)
            else:
                signal = make_signal(
                    rng.choice(symbols),
                    round(rng.uniform(1, 200), 2),
                    rng.choice(["BUY", "SELL", "HOLD"]),
                )
                appended = ledger.settle_signal(signal).transaction

            assert ledger.cash >= 0
            assert all(qty >= 0 for qty in ledger.snapshot().holdings.values())
            if appended is None:
                assert ledger.cash == cash_before
                assert ledger.history_length == length_before
            else:
                assert ledger.history_length == length_before + 1
                assert ledger.cash - cash_before == appended.signed_total

    def test_conservation_with_long_decimals(self, fractional_ledger: Ledger):
        fractional_ledger.deposit(Decimal("123456789.123456789"))
        prices = [Decimal("0.1234567891234567") + Decimal(i) / 7 for i in range(15)]
        changes = []

        for i, price in enumerate(prices):
            cash_before = fractional_ledger.cash
            outcome = fractional_ledger.settle_signal(make_signal(f"SYM{i}", price, "BUY"))
            assert outcome.status is SettlementStatus.BOUGHT
            changes.append((cash_before, fractional_ledger.cash, outcome.transaction))

        for i, price in enumerate(prices):
            cash_before = fractional_ledger.cash
            outcome = fractional_ledger.settle_signal(
                make_signal(f"SYM{i}", price + Decimal("0.0000000001"), "SELL")
            )
            assert outcome.status is SettlementStatus.SOLD
            changes.append((cash_before, fractional_ledger.cash, outcome.transaction))

        # Amounts outgrow the default 28 digits, so compare them without rounding.
        with localcontext(EXACT_CONTEXT):
            for cash_before, cash_after, transaction in changes:
                assert cash_after - cash_before == transaction.signed_total
                assert transaction.total == transaction.unit_price * transaction.quantity
            snap = fractional_ledger.snapshot()
            assert snap.cash == sum((t.signed_total for t in snap.history), Decimal("0"))
            assert snap.cash > 0

    def test_history_is_newest_first(self, ledger: Ledger):
        ledger.deposit(1000)
        ledger.settle_signal(make_signal("SYM", 100, "BUY"))
        history = ledger.snapshot().history
        assert [t.kind for t in history] == [TransactionKind.BUY, TransactionKind.DEPOSIT]
        assert history[0].timestamp > history[1].timestamp


# =============================================================================
# 6. SNAPSHOTS
# =============================================================================


class TestSnapshot:

    def test_snapshot_is_a_copy(self, ledger: Ledger):
        ledger.deposit(1000)
        ledger.settle_signal(make_signal("SYM", 100, "BUY"))
        snap = ledger.snapshot()
        snap.holdings["SYM"] = Decimal("999")
        assert ledger.holding("SYM") == 2

    def test_idle_and_funding_flags(self, ledger: Ledger):
        assert ledger.is_idle()
        ledger.deposit(10)
        ledger.withdraw(10)
        assert ledger.cash == 0
        assert ledger.has_funding_history()
        assert not ledger.is_idle()


# =============================================================================
# 7. END-TO-END SCENARIO
# =============================================================================


@pytest.mark.parametrize("mode", [SizingMode.INTEGRAL, SizingMode.FRACTIONAL])
def test_deposit_buy_sell_scenario(mode):
    from simulation.accounting import build_report

    ledger = Ledger(LedgerConfig(fixed_fraction=Decimal("0.20"), sizing_mode=mode))
    ledger.deposit(1000)
    ledger.settle_signal(make_signal("SYM", 100, "BUY"))

    assert ledger.cash == Decimal("800")
    assert ledger.holding("SYM") == Decimal("2")
    assert ledger.history_length == 2

    ledger.settle_signal(make_signal("SYM", 120, "SELL"))

    assert ledger.cash == Decimal("1040")
    assert ledger.holding("SYM") == 0
    assert ledger.history_length == 3
    assert build_report(ledger.snapshot()).profit_and_loss == Decimal("40")
