"""Oracle signal models: Recommendation, RiskLevel, Signal, SignalResponse."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Recommendation(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# Labels emitted by the Portuguese prompt of the advisor UI.
_RECOMMENDATION_ALIASES = {
    "COMPRA": Recommendation.BUY,
    "VENDA": Recommendation.SELL,
    "MANTER": Recommendation.HOLD,
}

_RISK_ALIASES = {
    "BAIXO": RiskLevel.LOW,
    "MÉDIO": RiskLevel.MEDIUM,
    "MEDIO": RiskLevel.MEDIUM,
    "ALTO": RiskLevel.HIGH,
}


def _normalise_label(value: Any, aliases: dict[str, Enum]) -> Any:
    if isinstance(value, str):
        key = value.strip().upper()
        return aliases.get(key, key)
    return value


class Signal(BaseModel):
    """One oracle answer for a symbol. Consumed once per cycle, never stored.

    ``current_price`` is not validated as positive here: a non-positive price
    is a settlement outcome (``INVALID_PRICE``), not a parse error.
    """

    symbol: str
    current_price: Decimal
    recommendation: Recommendation
    risk_level: RiskLevel = RiskLevel.MEDIUM
    summary: str = ""
    key_points: list[str] = []

    @field_validator("recommendation", mode="before")
    @classmethod
    def _parse_recommendation(cls, value: Any) -> Any:
        return _normalise_label(value, _RECOMMENDATION_ALIASES)

    @field_validator("risk_level", mode="before")
    @classmethod
    def _parse_risk_level(cls, value: Any) -> Any:
        return _normalise_label(value, _RISK_ALIASES)


class SignalResponse(BaseModel):
    """Structured-output schema the LLM oracle asks the chat model to fill."""

    current_price: float = Field(
        description="Most recent numeric quote of the asset, e.g. 20.50.",
    )
    recommendation: Recommendation = Field(
        description="Immediate trading decision: BUY, SELL or HOLD.",
    )
    risk_level: RiskLevel = Field(
        description="Risk of acting on the recommendation: LOW, MEDIUM or HIGH.",
    )
    summary: str = Field(
        default="",
        description="One-sentence reason for the decision.",
    )
    key_points: list[str] = Field(
        default_factory=list,
        description="Short supporting facts from the last 24h of news.",
    )

    def to_signal(self, symbol: str) -> Signal:
        return Signal(
            symbol=symbol,
            current_price=Decimal(str(self.current_price)),
            recommendation=self.recommendation,
            risk_level=self.risk_level,
            summary=self.summary,
            key_points=list(self.key_points),
        )
