"""
Jupiter Adapter (Solana)

Jupiter only routes on Solana, so this adapter is fixed to chain 101 and
rejects any EVM chain id passed in explicitly. Token mints come from the
resolver (SOL, USDC, USDT and JUP are in the static reference table).

API Documentation:
    https://dev.jup.ag/docs/swap-api/get-quote

Endpoint Used:
    GET /swap/v1/quote?inputMint=<mint>&outputMint=<usdc mint>&amount=<10**decimals>&slippageBps=50

Response (abridged):
    {"inputMint": "So111...", "inAmount": "1000000000", "outputMint": "EPjF...", "outAmount": "150250000", ...}
"""

from typing import Any, Optional

from core.chains import SOLANA
from core.config import DEFAULT_RATE_LIMITS, settings
from core.schemas import TokenRecord
from exchanges.dex.base import AggregatorQuoteAdapter, amounts_from_fields


class JupiterAdapter(AggregatorQuoteAdapter):
    """Jupiter swap quote adapter."""

    name = "jupiter"
    display_name = "Jupiter"
    fixed_chain_id = SOLANA
    supported_chains = frozenset({SOLANA})
    capabilities = {
        "volume_24h": False,
        "change_24h": False,
        "multi_chain": False,
        "requires_api_key": False,
    }

    extractors = (
        ("inAmount/outAmount", amounts_from_fields("inAmount", "outAmount")),
    ) + AggregatorQuoteAdapter.extractors

    SLIPPAGE_BPS = 50

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 rate_limit: Optional[float] = None, **kwargs):
        super().__init__(
            base_url=base_url or settings.jupiter_base_url,
            timeout=timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
            **kwargs,
        )

    async def request_quote(self, token: TokenRecord, reference: TokenRecord,
                            amount: int, chain_id: int) -> Any:
        return await self.client.get(
            "/swap/v1/quote",
            params={
                "inputMint": token.address,
                "outputMint": reference.address,
                "amount": str(amount),
                "slippageBps": self.SLIPPAGE_BPS,
            },
        )
