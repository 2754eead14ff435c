"""Error taxonomy for the trading engine.

Every error here is recovered locally by the session or the scheduler and
surfaced as an activity-log line or a result value.
"""


class TradingError(Exception):
    """Base class for engine errors."""


class InvalidAmount(TradingError):
    """Deposit or withdrawal amount is not strictly positive."""


class InsufficientFunds(TradingError):
    """Cash cannot cover the requested withdrawal or buy."""


class InvalidPrice(TradingError):
    """Oracle or price source returned a non-positive price.

    Listed for completeness of the error taxonomy. Settlement never raises it:
    ``Ledger.settle_signal`` reports the case as
    ``SettlementStatus.INVALID_PRICE`` instead.
    """


class OracleFailure(TradingError):
    """Signal or price source failed (network, provider or parse error)."""


class LedgerInvariantError(TradingError):
    """A mutation would leave the ledger in an invalid state."""
