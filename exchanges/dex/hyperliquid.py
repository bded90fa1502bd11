"""
Hyperliquid Adapter

Hyperliquid runs its own L1 and order book, so it is chain-agnostic: chain ids
are ignored and no token address resolution happens. Prices come from the
perpetuals context, which carries mid/mark price plus 24h notional volume and
the previous day's price.

API Documentation:
    https://hyperliquid.gitbook.io/hyperliquid-docs/for-developers/api/info-endpoint

Endpoint Used:
    POST /info with {"type": "metaAndAssetCtxs"}

Response Format:
    [
        {"universe": [{"name": "BTC", "szDecimals": 5}, {"name": "ETH", ...}]},
        [
            {"midPx": "50123.5", "markPx": "50120.0", "dayNtlVlm": "1234567.8", "prevDayPx": "49000.0"},
            ...
        ]
    ]

The two lists are parallel: asset i in `universe` has context i.
"""

from typing import Any, Optional, Tuple

from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from core.schemas import PriceQuote
from core.utils.numbers import percent_change, to_decimal
from exchanges.dex.base import DEXAdapter


class HyperliquidAdapter(DEXAdapter):
    """Hyperliquid perpetuals mid-price adapter."""

    name = "hyperliquid"
    display_name = "Hyperliquid"
    chain_agnostic = True
    capabilities = {
        "volume_24h": True,
        "change_24h": True,
        "multi_chain": False,
        "requires_api_key": False,
    }

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 rate_limit: Optional[float] = None, **kwargs):
        super().__init__(
            base_url=base_url or settings.hyperliquid_base_url,
            timeout=timeout or settings.dex_timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
            **kwargs,
        )

    @staticmethod
    def find_asset_context(payload: Any, coin: str) -> Tuple[dict, dict]:
        """
        Locate (asset meta, asset context) for coin in a metaAndAssetCtxs payload.

        Raises:
            ExchangeError: malformed payload or coin not listed
        """
        if not isinstance(payload, list) or len(payload) < 2:
            raise ExchangeError("Unexpected metaAndAssetCtxs payload", exchange="hyperliquid")

        universe = (payload[0] or {}).get("universe") or []
        contexts = payload[1] or []
        for index, asset in enumerate(universe):
            if str(asset.get("name", "")).upper() == coin and index < len(contexts):
                return asset, contexts[index]
        raise ExchangeError(f"{coin} is not listed on Hyperliquid", exchange="hyperliquid")

    async def fetch_quote(self, symbol: str, chain_id: Optional[int] = None) -> PriceQuote:
        payload = await self.client.post("/info", json_body={"type": "metaAndAssetCtxs"})
        _, context = self.find_asset_context(payload, symbol)

        price = to_decimal(context.get("midPx")) or to_decimal(context.get("markPx"))
        if price is None or price <= 0:
            raise ExchangeError(f"No price data for {symbol}", exchange=self.name)

        return PriceQuote(
            exchange=self.name,
            symbol=symbol,
            price=price,
            volume_24h=to_decimal(context.get("dayNtlVlm")),
            change_24h_percent=percent_change(price, to_decimal(context.get("prevDayPx"))),
        )
