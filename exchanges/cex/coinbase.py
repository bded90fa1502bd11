"""
Coinbase Exchange Adapter

API Documentation:
    https://docs.cdp.coinbase.com/exchange/reference/exchangerestapi_getproductticker

Endpoint Used:
    GET /products/BTC-USD/ticker

Response:
    {
        "trade_id": 86326522,
        "price": "50123.45",
        "size": "0.001",
        "bid": "50123.44",
        "ask": "50123.46",
        "volume": "12345.678",
        "time": "2024-01-01T12:00:00.123456Z"
    }

Coinbase quotes against USD (not USDT). Its `volume` is in base units;
it is reported as-is. The ticker has no 24h change.
"""

from typing import Optional

from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from core.exchange_interface import ExchangeAdapter
from core.schemas import PriceQuote
from core.utils.numbers import to_decimal
from core.utils.time import parse_optional_timestamp


class CoinbaseAdapter(ExchangeAdapter):
    """Coinbase Exchange product ticker adapter."""

    name = "coinbase"
    display_name = "Coinbase"
    category = "cex"
    capabilities = {
        "volume_24h": True,
        "change_24h": False,
        "multi_chain": False,
        "requires_api_key": False,
    }

    QUOTE_ASSET = "USD"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 rate_limit: Optional[float] = None):
        super().__init__(
            base_url=base_url or settings.coinbase_base_url,
            timeout=timeout or settings.cex_timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
        )

    @classmethod
    def pair_for(cls, symbol: str) -> str:
        """BTC -> BTC-USD"""
        return f"{symbol.upper()}-{cls.QUOTE_ASSET}"

    async def fetch_quote(self, symbol: str, chain_id: Optional[int] = None) -> PriceQuote:
        product = self.pair_for(symbol)
        data = await self.client.get(f"/products/{product}/ticker")

        if "message" in data and "price" not in data:
            raise ExchangeError(f"Coinbase error: {data['message']}", exchange=self.name)

        price = to_decimal(data.get("price"))
        if price is None or price <= 0:
            raise ExchangeError(f"No price data for {product}", exchange=self.name)

        return PriceQuote(
            exchange=self.name,
            symbol=product,
            price=price,
            volume_24h=to_decimal(data.get("volume")),
            timestamp=parse_optional_timestamp(data.get("time")),
        )
