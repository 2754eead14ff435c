"""Session configuration models, loaded from YAML.

These live in ``models/`` because they are shared data contracts used by the
ledger, the trading-cycle scheduler and the oracle adapters.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

DEFAULT_WATCHLIST: list[str] = [
    "BTC",
    "ETH",
    "PETR4",
    "VALE3",
    "AAPL",
    "NVDA",
    "ITUB4",
    "AMZN",
]


class SizingMode(str, Enum):
    """How a buy signal's invest amount is turned into a quantity."""

    INTEGRAL = "integral"  # floor(invest / price) whole units
    FRACTIONAL = "fractional"  # invest / price, fractional units allowed


class LedgerConfig(BaseModel):
    """Position-sizing policy and cash rules for the ledger."""

    fixed_fraction: Decimal = Field(
        default=Decimal("0.10"),
        gt=0,
        le=1,
        description="Proportion of available cash invested per buy signal.",
    )
    sizing_mode: SizingMode = Field(
        default=SizingMode.INTEGRAL,
        description="Quantity rounding: 'integral' lots or 'fractional' units.",
    )
    quantity_decimals: int = Field(
        default=8,
        ge=0,
        le=12,
        description="Fractional sizing floors quantities to this many decimal places.",
    )
    min_cash_floor: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Buys are rejected while cash is below this absolute floor.",
    )
    currency: str = Field(
        default="EUR",
        min_length=1,
        description="Currency tag recorded as the symbol of deposits and withdrawals.",
    )


class SchedulerConfig(BaseModel):
    """Configuration for the periodic trading cycle."""

    interval_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Seconds between timer ticks.",
    )
    watchlist: list[str] = Field(
        default_factory=lambda: list(DEFAULT_WATCHLIST),
        min_length=1,
        description="Symbols a cycle picks from, uniformly and with replacement.",
    )
    oracle_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Optional cap on one oracle query. None waits indefinitely.",
    )
    activity_log_size: int = Field(
        default=50,
        ge=1,
        description="Number of human-readable activity lines kept for display.",
    )


class OracleConfig(BaseModel):
    """Configuration for the signal oracle and the optional price source."""

    kind: Literal["random", "llm"] = Field(
        default="random",
        description="Registered oracle name.",
    )
    llm_provider: str = Field(
        default="openai",
        description="LLM provider identifier, e.g. 'openai', 'anthropic'.",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model name, e.g. 'gpt-4o-mini', 'claude-sonnet-4-20250514'.",
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for the LLM.",
    )
    fallback_to_random: bool = Field(
        default=False,
        description="Answer from the random oracle when the LLM oracle fails.",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the random oracle (reproducible runs).",
    )
    use_exchange_prices: bool = Field(
        default=False,
        description="Override signal prices with the public exchange ticker when available.",
    )
    exchange_base_url: str = Field(
        default="https://api.binance.com",
        description="Base URL of the public price ticker API.",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for price lookups.",
    )


class SessionConfig(BaseModel):
    """Top-level configuration for one trading session, loaded from YAML."""

    initial_deposit: Decimal | None = Field(
        default=Decimal("10000"),
        gt=0,
        description="Cash deposited when the session opens. None starts empty.",
    )
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> SessionConfig:
        """Load and validate a ``SessionConfig`` from a YAML file.

        Raises ``FileNotFoundError`` if the file does not exist and
        ``ValueError`` if the content is not a valid YAML mapping.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open(encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)

        if not isinstance(raw, dict):
            raise ValueError(
                f"Expected a YAML mapping in {path}, got {type(raw).__name__}."
            )

        return cls(**raw)
