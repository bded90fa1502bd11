"""
1inch Aggregation API Adapter

API Documentation:
    https://portal.1inch.dev/documentation/apis/swap/classic-swap/quick-start

Endpoint Used:
    GET /swap/v6.0/{chainId}/quote?src=<token>&dst=<usdc>&amount=<10**decimals>

Headers:
    Authorization: Bearer <ONEINCH_API_KEY>   (required by the Developer Portal)

Response:
    v6: {"dstAmount": "3000500000"}
    v5: {"fromTokenAmount": "1000000000000000000", "toTokenAmount": "3000500000"}

Both shapes are handled by the shared amount extractors.
"""

from typing import Any, Optional

from core.chains import ARBITRUM, BASE, BSC, ETHEREUM, OPTIMISM, POLYGON
from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from core.schemas import TokenRecord
from exchanges.dex.base import AggregatorQuoteAdapter, known_chains


class OneInchAdapter(AggregatorQuoteAdapter):
    """1inch classic swap quote adapter."""

    name = "1inch"
    display_name = "1inch"
    supported_chains = known_chains(ETHEREUM, OPTIMISM, BSC, POLYGON, BASE, ARBITRUM)
    capabilities = {
        "volume_24h": False,
        "change_24h": False,
        "multi_chain": True,
        "requires_api_key": True,
    }

    API_VERSION = "v6.0"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, rate_limit: Optional[float] = None, **kwargs):
        self.api_key = api_key if api_key is not None else settings.oneinch_api_key
        super().__init__(
            base_url=base_url or settings.oneinch_base_url,
            timeout=timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
            **kwargs,
        )

    async def request_quote(self, token: TokenRecord, reference: TokenRecord,
                            amount: int, chain_id: int) -> Any:
        if not self.api_key:
            raise ExchangeError("1inch API key not configured (set ONEINCH_API_KEY)", exchange=self.name)

        return await self.client.get(
            f"/swap/{self.API_VERSION}/{chain_id}/quote",
            params={"src": token.address, "dst": reference.address, "amount": str(amount)},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
