"""
OKX Spot Adapter

API Documentation:
    https://www.okx.com/docs-v5/en/#public-data-rest-api-get-ticker

Endpoint Used:
    GET /api/v5/market/ticker?instId=BTC-USDT

Response (abridged):
    {
        "code": "0",
        "msg": "",
        "data": [{
            "instId": "BTC-USDT",
            "last": "50123.4",
            "open24h": "49000",
            "volCcy24h": "1234567890.1",
            "ts": "1704110400000"
        }]
    }

OKX reports business errors with HTTP 200 and a non-"0" code, so the code is
checked before the payload is read.
"""

from typing import Optional

from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from core.exchange_interface import ExchangeAdapter
from core.schemas import PriceQuote
from core.utils.numbers import percent_change, to_decimal
from core.utils.time import parse_optional_timestamp


class OKXAdapter(ExchangeAdapter):
    """OKX spot ticker adapter (instrument ids look like BTC-USDT)."""

    name = "okx"
    display_name = "OKX"
    category = "cex"
    capabilities = {
        "volume_24h": True,
        "change_24h": True,
        "multi_chain": False,
        "requires_api_key": False,
    }

    QUOTE_ASSET = "USDT"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 rate_limit: Optional[float] = None):
        super().__init__(
            base_url=base_url or settings.okx_base_url,
            timeout=timeout or settings.cex_timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
        )

    @classmethod
    def pair_for(cls, symbol: str) -> str:
        """BTC -> BTC-USDT"""
        return f"{symbol.upper()}-{cls.QUOTE_ASSET}"

    async def fetch_quote(self, symbol: str, chain_id: Optional[int] = None) -> PriceQuote:
        inst_id = self.pair_for(symbol)
        data = await self.client.get("/api/v5/market/ticker", params={"instId": inst_id})

        code = str(data.get("code", ""))
        if code != "0":
            raise ExchangeError(
                f"OKX error {code}: {data.get('msg') or 'unknown error'}", exchange=self.name
            )

        rows = data.get("data") or []
        if not rows:
            raise ExchangeError(f"No ticker data for {inst_id}", exchange=self.name)

        ticker = rows[0]
        price = to_decimal(ticker.get("last"))
        if price is None or price <= 0:
            raise ExchangeError(f"No price data for {inst_id}", exchange=self.name)

        return PriceQuote(
            exchange=self.name,
            symbol=ticker.get("instId") or inst_id,
            price=price,
            volume_24h=to_decimal(ticker.get("volCcy24h")),
            change_24h_percent=percent_change(price, to_decimal(ticker.get("open24h"))),
            timestamp=parse_optional_timestamp(ticker.get("ts")),
        )
