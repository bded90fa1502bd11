"""
Binance Spot Adapter

Reads the public 24h rolling ticker for <SYMBOL>USDT.

API Documentation:
    https://developers.binance.com/docs/binance-spot-api-docs/rest-api/market-data-endpoints

Endpoint Used:
    GET /api/v3/ticker/24hr?symbol=BTCUSDT

Response (abridged):
    {
        "symbol": "BTCUSDT",
        "priceChangePercent": "1.234",
        "lastPrice": "50123.45000000",
        "quoteVolume": "1234567890.12",
        "closeTime": 1704110400000
    }

Unknown symbols come back as HTTP 400 {"code": -1121, "msg": "Invalid symbol."};
the body text ends up in the failure reason.
"""

from typing import Optional

from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from core.exchange_interface import ExchangeAdapter
from core.schemas import PriceQuote
from core.utils.numbers import to_decimal
from core.utils.time import parse_optional_timestamp


class BinanceAdapter(ExchangeAdapter):
    """
    Binance spot ticker adapter.

    Example:
        >>> adapter = BinanceAdapter()
        >>> outcome = await adapter.quote("BTC")
        >>> outcome.quote.symbol
        'BTCUSDT'
    """

    name = "binance"
    display_name = "Binance"
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
            base_url=base_url or settings.binance_base_url,
            timeout=timeout or settings.cex_timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
        )

    @classmethod
    def pair_for(cls, symbol: str) -> str:
        """BTC -> BTCUSDT"""
        return f"{symbol.upper()}{cls.QUOTE_ASSET}"

    async def fetch_quote(self, symbol: str, chain_id: Optional[int] = None) -> PriceQuote:
        pair = self.pair_for(symbol)
        data = await self.client.get("/api/v3/ticker/24hr", params={"symbol": pair})

        if not isinstance(data, dict):
            raise ExchangeError(f"Unexpected ticker payload for {pair}", exchange=self.name)

        price = to_decimal(data.get("lastPrice"))
        if price is None or price <= 0:
            raise ExchangeError(f"No price data for {pair}", exchange=self.name)

        return PriceQuote(
            exchange=self.name,
            symbol=data.get("symbol") or pair,
            price=price,
            volume_24h=to_decimal(data.get("quoteVolume")),
            change_24h_percent=to_decimal(data.get("priceChangePercent")),
            timestamp=parse_optional_timestamp(data.get("closeTime")),
        )
