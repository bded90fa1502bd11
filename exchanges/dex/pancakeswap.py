"""
PancakeSwap V3 Adapter (BSC subgraph)

PancakeSwap's main deployment is BNB Smart Chain, so the adapter is fixed to
chain 56. Prices come from the V3 subgraph's USD-derived token price rather
than from pool reads.

Endpoint:
    The Graph gateway URL from PANCAKESWAP_SUBGRAPH_URL; a "{api_key}"
    placeholder is filled from THEGRAPH_API_KEY. Without a key such a URL
    cannot be queried and the quote fails.

Query:
    token(id: <lowercase address>) { derivedUSD volumeUSD }
"""

from typing import Optional

from core.chains import BSC
from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from exchanges.dex.base import SubgraphAdapter

API_KEY_PLACEHOLDER = "{api_key}"


class PancakeSwapAdapter(SubgraphAdapter):
    """PancakeSwap V3 subgraph adapter."""

    name = "pancakeswap"
    display_name = "PancakeSwap"
    fixed_chain_id = BSC
    supported_chains = frozenset({BSC})
    capabilities = {
        "volume_24h": True,
        "change_24h": False,
        "multi_chain": False,
        "requires_api_key": True,
    }

    QUERY = """
    query TokenPrice($id: ID!) {
      token(id: $id) {
        id
        symbol
        derivedUSD
        volumeUSD
      }
    }
    """

    def __init__(self, subgraph_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, rate_limit: Optional[float] = None, **kwargs):
        api_key = api_key if api_key is not None else settings.thegraph_api_key
        url = subgraph_url or settings.pancakeswap_subgraph_url
        if API_KEY_PLACEHOLDER in url and api_key:
            url = url.replace(API_KEY_PLACEHOLDER, api_key)
        super().__init__(
            base_url=url,
            timeout=timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
            **kwargs,
        )

    def check_endpoint(self) -> None:
        if API_KEY_PLACEHOLDER in self.base_url:
            raise ExchangeError(
                "PancakeSwap subgraph requires a The Graph API key (set THEGRAPH_API_KEY)",
                exchange=self.name,
            )
