"""Offline signal generator used when no LLM is configured.

Prices are drawn from ``100 + U(0, 1) * 50``; the recommendation is BUY
(medium risk) when another draw exceeds 0.4, otherwise HOLD (low risk). It
never emits SELL, so positions opened under this oracle stay open.
"""

from __future__ import annotations

import asyncio
import logging
import random
from decimal import Decimal

from models.config import OracleConfig
from models.signal import Recommendation, RiskLevel, Signal
from oracle.base import SignalOracle
from oracle.registry import register

logger = logging.getLogger(__name__)


@register("random")
class RandomSignalOracle(SignalOracle):
    """Seedable random oracle with an optional simulated response latency."""

    def __init__(
        self,
        config: OracleConfig,
        rng: random.Random | None = None,
        latency_seconds: float = 0.0,
    ) -> None:
        super().__init__(config)
        self._rng = rng or random.Random(config.seed)
        self._latency = latency_seconds

    async def get_signal(self, symbol: str) -> Signal:
        if self._latency > 0:
            await asyncio.sleep(self._latency)

        is_buy = self._rng.random() > 0.4
        price = Decimal(str(round(100 + self._rng.random() * 50, 2)))
        signal = Signal(
            symbol=symbol,
            current_price=price,
            recommendation=Recommendation.BUY if is_buy else Recommendation.HOLD,
            risk_level=RiskLevel.MEDIUM if is_buy else RiskLevel.LOW,
            summary="Simulated signal (no LLM configured).",
            key_points=["Locally generated data", "Configure an LLM provider for real analysis"],
        )
        logger.debug("Random signal for %s: %s @ %s", symbol, signal.recommendation.value, price)
        return signal
