"""Oracle chain that answers from a fallback when the primary fails."""

from __future__ import annotations

import logging

from models.config import OracleConfig
from models.signal import Signal
from oracle.base import SignalOracle
from simulation.errors import OracleFailure

logger = logging.getLogger(__name__)


class FallbackSignalOracle(SignalOracle):
    """Query *primary*; on ``OracleFailure`` return *fallback*'s signal instead.

    Failures of the fallback itself propagate as ``OracleFailure``.
    """

    def __init__(
        self,
        config: OracleConfig,
        primary: SignalOracle,
        fallback: SignalOracle,
    ) -> None:
        super().__init__(config)
        self.primary = primary
        self.fallback = fallback

    async def get_signal(self, symbol: str) -> Signal:
        try:
            return await self.primary.get_signal(symbol)
        except OracleFailure as exc:
            logger.warning("Primary oracle failed for %s (%s); using fallback.", symbol, exc)
            return await self.fallback.get_signal(symbol)

    async def aclose(self) -> None:
        await self.primary.aclose()
        await self.fallback.aclose()
