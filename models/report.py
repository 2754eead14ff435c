"""Reporting models."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class ReportSnapshot(BaseModel):
    """Derived accounting figures for the presentation layer.

    ``net_worth`` is cash only; open positions are not marked to market.
    """

    model_config = ConfigDict(frozen=True)

    total_deposits: Decimal
    total_withdrawals: Decimal
    net_worth: Decimal
    profit_and_loss: Decimal
    open_positions: dict[str, Decimal]
