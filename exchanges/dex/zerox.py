"""
0x Swap API Adapter

API Documentation:
    https://0x.org/docs/api#tag/Swap/operation/swap::permit2::getPrice

Endpoint Used:
    GET /swap/permit2/price?chainId=1&sellToken=<token>&buyToken=<usdc>&sellAmount=<10**decimals>

Headers:
    0x-api-key: <ZEROX_API_KEY>   (required)
    0x-version: v2

Response (abridged):
    {"liquidityAvailable": true, "sellAmount": "1000000000000000000", "buyAmount": "3000500000", ...}
"""

from typing import Any, Optional

from core.chains import ARBITRUM, BASE, BSC, ETHEREUM, OPTIMISM, POLYGON
from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from core.schemas import TokenRecord
from exchanges.dex.base import AggregatorQuoteAdapter, known_chains


class ZeroExAdapter(AggregatorQuoteAdapter):
    """0x indicative price adapter."""

    name = "0x"
    display_name = "0x Protocol"
    supported_chains = known_chains(ETHEREUM, OPTIMISM, BSC, POLYGON, BASE, ARBITRUM)
    capabilities = {
        "volume_24h": False,
        "change_24h": False,
        "multi_chain": True,
        "requires_api_key": True,
    }

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, rate_limit: Optional[float] = None, **kwargs):
        self.api_key = api_key if api_key is not None else settings.zerox_api_key
        super().__init__(
            base_url=base_url or settings.zerox_base_url,
            timeout=timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
            **kwargs,
        )

    async def request_quote(self, token: TokenRecord, reference: TokenRecord,
                            amount: int, chain_id: int) -> Any:
        if not self.api_key:
            raise ExchangeError("0x API key not configured (set ZEROX_API_KEY)", exchange=self.name)

        payload = await self.client.get(
            "/swap/permit2/price",
            params={
                "chainId": chain_id,
                "sellToken": token.address,
                "buyToken": reference.address,
                "sellAmount": str(amount),
            },
            headers={"0x-api-key": self.api_key, "0x-version": "v2"},
        )
        if isinstance(payload, dict) and payload.get("liquidityAvailable") is False:
            raise ExchangeError(f"No 0x liquidity for {token.symbol} on chain {chain_id}", exchange=self.name)
        return payload
