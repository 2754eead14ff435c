"""Abstract interfaces for signal oracles and price sources.

Every oracle (LLM-backed, random, fallback chain) implements ``SignalOracle``
so the trading-cycle scheduler can query them interchangeably.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from models.config import OracleConfig
from models.signal import Signal


class SignalOracle(ABC):
    """Common interface for buy/sell/hold signal providers.

    Lifecycle:
        1. ``__init__``: receive oracle config.
        2. ``get_signal``: called once per trading cycle; may suspend.
        3. ``aclose``: called on session teardown.
    """

    def __init__(self, config: OracleConfig) -> None:
        self.config = config

    @abstractmethod
    async def get_signal(self, symbol: str) -> Signal:
        """Return a recommendation and current price for *symbol*.

        Implementations raise ``OracleFailure`` for network, provider or
        parse errors; the scheduler treats that as "no signal this cycle".
        """

    async def aclose(self) -> None:
        """Release any held resources. Default: nothing to release."""


class PriceSource(ABC):
    """Optional direct price lookup that overrides the oracle's bundled price."""

    @abstractmethod
    async def get_price(self, symbol: str) -> Decimal | None:
        """Return the latest price for *symbol*, or ``None`` when unavailable."""

    async def aclose(self) -> None:
        """Release any held resources. Default: nothing to release."""
