"""
Kraken Spot Adapter

API Documentation:
    https://docs.kraken.com/api/docs/rest-api/get-ticker-information

Endpoint Used:
    GET /0/public/Ticker?pair=XBTUSDT

Response:
    {
        "error": [],
        "result": {
            "XBTUSDT": {
                "c": ["50123.4", "0.001"],      # last trade [price, lot volume]
                "v": ["123.4", "2345.6"],       # volume [today, last 24h]
                "o": "49000.0"                  # today's opening price
            }
        }
    }

Kraken names Bitcoin XBT and may key the result under a different pair name
than requested (e.g. XXBTZUSD for XBTUSD), so the first result entry is used.
Errors arrive as HTTP 200 with a non-empty `error` list.
"""

from typing import Dict, Optional

from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from core.exchange_interface import ExchangeAdapter
from core.schemas import PriceQuote
from core.utils.numbers import percent_change, to_decimal

# Kraken's own asset codes
SYMBOL_ALIASES: Dict[str, str] = {
    "BTC": "XBT",
    "DOGE": "XDG",
}


class KrakenAdapter(ExchangeAdapter):
    """Kraken public ticker adapter."""

    name = "kraken"
    display_name = "Kraken"
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
            base_url=base_url or settings.kraken_base_url,
            timeout=timeout or settings.cex_timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
        )

    @classmethod
    def pair_for(cls, symbol: str) -> str:
        """BTC -> XBTUSDT, ETH -> ETHUSDT"""
        base = symbol.upper()
        return f"{SYMBOL_ALIASES.get(base, base)}{cls.QUOTE_ASSET}"

    async def fetch_quote(self, symbol: str, chain_id: Optional[int] = None) -> PriceQuote:
        pair = self.pair_for(symbol)
        data = await self.client.get("/0/public/Ticker", params={"pair": pair})

        errors = data.get("error") or []
        if errors:
            raise ExchangeError(f"Kraken error: {', '.join(errors)}", exchange=self.name)

        result = data.get("result") or {}
        if not result:
            raise ExchangeError(f"No ticker data for {pair}", exchange=self.name)

        ticker = result.get(pair) or next(iter(result.values()))
        price = to_decimal((ticker.get("c") or [None])[0])
        if price is None or price <= 0:
            raise ExchangeError(f"No price data for {pair}", exchange=self.name)

        volume = ticker.get("v") or []
        return PriceQuote(
            exchange=self.name,
            symbol=pair,
            price=price,
            volume_24h=to_decimal(volume[1]) if len(volume) > 1 else None,
            change_24h_percent=percent_change(price, to_decimal(ticker.get("o"))),
        )
