"""Public exchange price lookup (no credentials).

Endpoint used:
  GET /api/v3/ticker/price?symbol=<SYM>USDT

Any HTTP, network or parse error yields ``None`` so the caller keeps the
oracle's own price.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

import httpx

from oracle.base import PriceSource

logger = logging.getLogger(__name__)

QUOTE_ASSET = "USDT"


def to_pair(symbol: str) -> str:
    """Normalise a ticker to the exchange pair, e.g. ``BTC`` -> ``BTCUSDT``."""
    symbol = symbol.upper()
    return symbol if symbol.endswith(QUOTE_ASSET) else f"{symbol}{QUOTE_ASSET}"


class BinancePriceSource(PriceSource):
    """Price source backed by the public Binance ticker endpoint."""

    def __init__(
        self,
        base_url: str = "https://api.binance.com",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def get_price(self, symbol: str) -> Decimal | None:
        pair = to_pair(symbol)
        try:
            resp = await self._client.get("/api/v3/ticker/price", params={"symbol": pair})
            resp.raise_for_status()
            price = Decimal(str(resp.json()["price"]))
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Ticker HTTP %s for %s: %s",
                exc.response.status_code,
                pair,
                exc.response.text[:200],
            )
            return None
        except (httpx.HTTPError, KeyError, TypeError, ValueError, InvalidOperation) as exc:
            logger.warning("Ticker lookup failed for %s: %s", pair, exc)
            return None

        if not price.is_finite() or price <= 0:
            logger.warning("Ticker returned unusable price %s for %s", price, pair)
            return None
        return price

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
